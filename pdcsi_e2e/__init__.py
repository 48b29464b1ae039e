from pathlib import Path

from pdcsi_e2e import exceptions
from pdcsi_e2e.config import E2EConfig
from pdcsi_e2e.leasing import BoskosClient, LeaseAcquirer, LeaseHeartbeat, Resource
from pdcsi_e2e.prow import ProwConfig, setup_prow_config

__version__ = "0.1.0"
__root__ = Path(__file__).parent.parent
__all__ = [
    "__version__",
    "__root__",
    "exceptions",
    "E2EConfig",
    "BoskosClient",
    "LeaseAcquirer",
    "LeaseHeartbeat",
    "Resource",
    "ProwConfig",
    "setup_prow_config",
]
