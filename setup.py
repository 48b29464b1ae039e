#!/usr/bin/env python3

import setuptools

if __name__ == "__main__":
    setuptools.setup(
        name="pdcsi-e2e",
        version="0.1.0",
        packages=setuptools.find_packages(include=["pdcsi_e2e", "pdcsi_e2e.*"]),
        python_requires=">=3.8",
        install_requires=[
            "rich",
            "typer",
            "urllib3",
            "paramiko",
            "sshtunnel",
            "google-auth",
            "google-api-python-client",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": [
                "pdcsi-e2e=pdcsi_e2e.cli:app",
            ]
        },
    )
