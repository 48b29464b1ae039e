from pdcsi_e2e.leasing.acquirer import LeaseAcquirer, get_boskos_project
from pdcsi_e2e.leasing.client import BoskosClient
from pdcsi_e2e.leasing.heartbeat import LeaseHeartbeat
from pdcsi_e2e.leasing.resource import BUSY, CLEANING, DIRTY, FREE, Resource

__all__ = [
    "BoskosClient",
    "LeaseAcquirer",
    "LeaseHeartbeat",
    "Resource",
    "get_boskos_project",
    "FREE",
    "BUSY",
    "DIRTY",
    "CLEANING",
]
