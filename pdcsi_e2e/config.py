import configparser
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from typing import Any, Dict, Optional

from pdcsi_e2e.exceptions import BadConfigException

_FLAG_TYPES = {
    "acquire_timeout_minutes": float,
    "acquire_interval_minutes": float,
    "heartbeat_interval_minutes": float,
    "driver_port_min": int,
    "driver_port_max": int,
    "driver_ready_timeout_seconds": int,
    "driver_staging_version": str,
    "workspace_prefix": str,
    "ssh_user": str,
    "ssh_private_key": str,
    "verbosity": int,
}

_DEFAULT_FLAGS = {
    "acquire_timeout_minutes": 30.0,
    "acquire_interval_minutes": 1.0,
    "heartbeat_interval_minutes": 5.0,
    "driver_port_min": 1024,
    "driver_port_max": 11024,  # exclusive
    "driver_ready_timeout_seconds": 60,
    "driver_staging_version": "latest",
    "workspace_prefix": "gce-pd-e2e-",
    "ssh_user": os.environ.get("USER", "prow"),
    "ssh_private_key": "~/.ssh/google_compute_engine",
    "verbosity": 2,
}

# flag -> config file section
_FLAG_SECTIONS = {
    "acquire_timeout_minutes": "boskos",
    "acquire_interval_minutes": "boskos",
    "heartbeat_interval_minutes": "boskos",
    "driver_port_min": "driver",
    "driver_port_max": "driver",
    "driver_ready_timeout_seconds": "driver",
    "driver_staging_version": "driver",
    "workspace_prefix": "driver",
    "ssh_user": "ssh",
    "ssh_private_key": "ssh",
    "verbosity": "logging",
}

DEFAULT_BOSKOS_URL = "http://boskos"


def _map_type(value, val_type):
    if val_type is bool:
        if value.lower() in ["true", "yes", "1"]:
            return True
        elif value.lower() in ["false", "no", "0"]:
            return False
        else:
            raise ValueError(f"Invalid boolean value: {value}")
    else:
        return val_type(value)


@dataclass
class E2EConfig:
    job_name: Optional[str] = None
    boskos_url: str = DEFAULT_BOSKOS_URL
    flags: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def default_config(cls) -> "E2EConfig":
        return cls()

    @classmethod
    def load_config(cls, path) -> "E2EConfig":
        """Load from a config file."""
        path = Path(path)
        config = configparser.ConfigParser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        config.read(path)

        job_name = None
        boskos_url = DEFAULT_BOSKOS_URL
        if "boskos" in config:
            if "job_name" in config["boskos"]:
                job_name = config.get("boskos", "job_name")
            if "url" in config["boskos"]:
                boskos_url = config.get("boskos", "url")

        flags = {}
        for flag_name, section in _FLAG_SECTIONS.items():
            if section in config and flag_name in config[section]:
                try:
                    flags[flag_name] = _map_type(config.get(section, flag_name), _FLAG_TYPES[flag_name])
                except ValueError as e:
                    raise BadConfigException(f"Invalid value for {section}.{flag_name} in {path}: {e}") from e

        return cls(job_name=job_name, boskos_url=boskos_url, flags=flags)

    def with_env_overrides(self) -> "E2EConfig":
        """JOB_NAME and BOSKOS_URL in the environment take precedence over the config file."""
        overrides = {}
        if os.environ.get("JOB_NAME"):
            overrides["job_name"] = os.environ["JOB_NAME"]
        if os.environ.get("BOSKOS_URL"):
            overrides["boskos_url"] = os.environ["BOSKOS_URL"]
        if os.environ.get("PDCSI_E2E_VERBOSITY"):
            flags = dict(self.flags)
            flags["verbosity"] = _map_type(os.environ["PDCSI_E2E_VERBOSITY"], int)
            overrides["flags"] = flags
        return replace(self, **overrides) if overrides else self

    def to_config_file(self, path):
        path = Path(path)
        config = configparser.ConfigParser()
        if path.exists():
            config.read(os.path.expanduser(path))

        if "boskos" not in config:
            config.add_section("boskos")
        if self.job_name:
            config.set("boskos", "job_name", self.job_name)
        config.set("boskos", "url", self.boskos_url)

        for flag_name, value in self.flags.items():
            section = _FLAG_SECTIONS[flag_name]
            if section not in config:
                config.add_section(section)
            config.set(section, flag_name, str(value))

        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            config.write(f)

    def valid_flags(self):
        return list(_FLAG_TYPES.keys())

    def get_flag(self, flag_name):
        if flag_name not in self.valid_flags():
            raise KeyError(f"Invalid flag: {flag_name}")
        return self.flags.get(flag_name, _DEFAULT_FLAGS[flag_name])

    def set_flag(self, flag_name, value: Optional[str]):
        if flag_name not in self.valid_flags():
            raise KeyError(f"Invalid flag: {flag_name}")
        if value is None:
            self.flags.pop(flag_name, None)
        else:
            self.flags[flag_name] = _map_type(value, _FLAG_TYPES[flag_name]) if isinstance(value, str) else value

    @property
    def acquire_timeout(self) -> float:
        """Acquire deadline in seconds"""
        return self.get_flag("acquire_timeout_minutes") * 60

    @property
    def acquire_interval(self) -> float:
        return self.get_flag("acquire_interval_minutes") * 60

    @property
    def heartbeat_interval(self) -> float:
        return self.get_flag("heartbeat_interval_minutes") * 60
