from functools import lru_cache
from typing import Optional

from pdcsi_e2e.gcp.project import get_default_credentials
from pdcsi_e2e.utils import imports


@imports.inject("googleapiclient.discovery", pip_package="google-api-python-client")
def get_compute_client(discovery, credentials=None):
    if credentials is None:
        credentials = get_default_credentials()
    return discovery.build("compute", "v1", credentials=credentials, cache_discovery=False)


@lru_cache(maxsize=None)
def _default_compute_client():
    return get_compute_client()


def get_instance(project: str, zone: str, name: str, client=None) -> dict:
    client = client or _default_compute_client()
    return client.instances().get(project=project, zone=zone, instance=name).execute()


def get_external_ip(instance: dict) -> Optional[str]:
    """natIP of the first access config on the first network interface."""
    for interface in instance.get("networkInterfaces", []):
        for access_config in interface.get("accessConfigs", []):
            if access_config.get("natIP"):
                return access_config["natIP"]
    return None
