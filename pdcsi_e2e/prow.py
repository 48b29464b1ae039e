import threading
from dataclasses import dataclass
from typing import Optional

from pdcsi_e2e.config import E2EConfig
from pdcsi_e2e.config_paths import load_e2e_config
from pdcsi_e2e.exceptions import FatalE2EException
from pdcsi_e2e.gcp.project import get_default_service_account
from pdcsi_e2e.leasing.acquirer import get_boskos_project
from pdcsi_e2e.leasing.client import BoskosClient
from pdcsi_e2e.leasing.heartbeat import LeaseHeartbeat
from pdcsi_e2e.leasing.resource import Resource
from pdcsi_e2e.utils import logger


@dataclass
class ProwConfig:
    project: str
    service_account: str
    lease: Resource
    heartbeat: LeaseHeartbeat

    def stop(self):
        self.heartbeat.stop()


def new_boskos_client(config: Optional[E2EConfig] = None) -> BoskosClient:
    config = config or load_e2e_config()
    return BoskosClient(owner=config.job_name, url=config.boskos_url)


def setup_prow_config(
    resource_type: str,
    client: Optional[BoskosClient] = None,
    config: Optional[E2EConfig] = None,
    resource_manager=None,
    cancel: Optional[threading.Event] = None,
) -> ProwConfig:
    """Lease a project from Boskos and resolve its default compute service account.

    Exits the process if no project can be leased in time or the project cannot be looked up,
    a test run cannot proceed without them. The returned heartbeat keeps the lease alive until
    stopped; the lease itself is left to expire.
    """
    config = config or load_e2e_config()
    client = client or new_boskos_client(config)

    logger.debug("Running in PROW")
    logger.debug("Fetching a Boskos loaned project")
    try:
        lease = get_boskos_project(client, resource_type, config=config, cancel=cancel)
    except FatalE2EException as e:
        logger.fatal(str(e))
    project = lease.get_name()

    heartbeat = LeaseHeartbeat(client, lease.name, interval=config.heartbeat_interval)
    heartbeat.start()

    # If we're on CI overwrite the service account
    logger.debug("Fetching the default compute service account")
    try:
        service_account = get_default_service_account(project, client=resource_manager)
    except FatalE2EException as e:
        heartbeat.stop()
        logger.fatal(str(e))

    logger.info(f"Using project {project} and service account {service_account}")
    return ProwConfig(project=project, service_account=service_account, lease=lease, heartbeat=heartbeat)
