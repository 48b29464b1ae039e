from pdcsi_e2e.remote.driver import (
    ClientConfig,
    TestContext,
    gce_client_and_driver_setup,
    setup_new_driver_and_client,
    teardown_driver_and_client,
)
from pdcsi_e2e.remote.fs import force_chmod, get_block_size_in_gb, get_fs_size_in_gb, read_file, rm_all, write_file
from pdcsi_e2e.remote.instance import InstanceInfo

__all__ = [
    "InstanceInfo",
    "ClientConfig",
    "TestContext",
    "gce_client_and_driver_setup",
    "setup_new_driver_and_client",
    "teardown_driver_and_client",
    "force_chmod",
    "write_file",
    "read_file",
    "get_fs_size_in_gb",
    "get_block_size_in_gb",
    "rm_all",
]
