import os
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pdcsi_e2e.config import E2EConfig
from pdcsi_e2e.config_paths import load_e2e_config
from pdcsi_e2e.exceptions import BadConfigException, RemoteCommandException
from pdcsi_e2e.remote.instance import InstanceInfo
from pdcsi_e2e.utils import logger
from pdcsi_e2e.utils.fn import wait_for

DRIVER_PKG = "src/sigs.k8s.io/gcp-compute-persistent-disk-csi-driver/"
DRIVER_BINARY = "gce-pd-csi-driver"


@dataclass
class ClientConfig:
    pkg_path: str
    bin_path: str
    workspace_dir: str
    run_driver_cmd: str
    port: str


@dataclass
class TestContext:
    """A driver running on instance, reachable through local_port."""

    __test__ = False  # not a pytest test class

    instance: InstanceInfo
    config: ClientConfig
    local_port: Optional[int] = None

    @property
    def endpoint(self) -> str:
        return f"tcp://localhost:{self.local_port}"


def new_workspace_dir(prefix: str) -> str:
    return f"/tmp/{prefix}{time.strftime('%Y%m%dT%H%M%S')}"


def make_driver_run_cmd(workspace: str, endpoint: str) -> str:
    return (
        f"sh -c '/usr/bin/nohup {workspace}/{DRIVER_BINARY} --endpoint={endpoint} "
        f"> {workspace}/prog.out 2> {workspace}/prog.err < /dev/null &'"
    )


def gce_client_and_driver_setup(instance: InstanceInfo, config: Optional[E2EConfig] = None) -> TestContext:
    config = config or load_e2e_config()
    port = str(random.randrange(config.get_flag("driver_port_min"), config.get_flag("driver_port_max")))
    go_path = os.environ.get("GOPATH")
    if go_path is None:
        raise BadConfigException("Could not find environment variable GOPATH")
    pkg_path = os.path.join(go_path, DRIVER_PKG)
    bin_path = os.path.join(pkg_path, "bin", DRIVER_BINARY)

    endpoint = f"tcp://localhost:{port}"
    workspace = new_workspace_dir(config.get_flag("workspace_prefix"))
    client_config = ClientConfig(
        pkg_path=pkg_path,
        bin_path=bin_path,
        workspace_dir=workspace,
        run_driver_cmd=make_driver_run_cmd(workspace, endpoint),
        port=port,
    )

    os.environ["GCE_PD_CSI_STAGING_VERSION"] = config.get_flag("driver_staging_version")
    return setup_new_driver_and_client(instance, client_config, ready_timeout=config.get_flag("driver_ready_timeout_seconds"))


def _driver_listening(instance: InstanceInfo, port: str) -> bool:
    try:
        instance.ssh_no_sudo("ss", "-ltn", f"'sport = :{port}'", "|", "grep", "-q", "LISTEN")
    except RemoteCommandException:
        return False
    return True


def setup_new_driver_and_client(instance: InstanceInfo, config: ClientConfig, ready_timeout=60) -> TestContext:
    """Copy the driver binary to a fresh workspace on instance, start it and tunnel to its port."""
    if not Path(config.bin_path).exists():
        raise BadConfigException(f"Driver binary not found at {config.bin_path}, build it first")

    logger.info(f"Starting driver on {instance.name} in {config.workspace_dir}")
    instance.ssh_no_sudo("mkdir", "-p", config.workspace_dir)
    remote_bin = f"{config.workspace_dir}/{DRIVER_BINARY}"
    instance.upload_file(config.bin_path, remote_bin)
    instance.ssh_no_sudo("chmod", "+x", remote_bin)
    instance.ssh(config.run_driver_cmd)

    try:
        wait_for(lambda: _driver_listening(instance, config.port), timeout=ready_timeout, interval=1.0, desc=f"driver on port {config.port}")
    except TimeoutError as e:
        err = instance.ssh_no_sudo("cat", f"{config.workspace_dir}/prog.err", "||", "true")
        raise RemoteCommandException(f"driver did not start on {instance.name}: {e}", output=err) from e

    context = TestContext(instance=instance, config=config)
    context.local_port = instance.tunnel_port(int(config.port))
    logger.debug(f"Driver reachable at {context.endpoint}")
    return context


def teardown_driver_and_client(context: TestContext):
    instance, config = context.instance, context.config
    instance.close_tunnel(int(config.port))
    try:
        # bracketed so the pattern does not match the remote shell running pkill
        instance.ssh("pkill", "-f", f"'[{DRIVER_BINARY[0]}]{DRIVER_BINARY[1:]}'", "||", "true")
        instance.ssh("rm", "-rf", config.workspace_dir)
    except RemoteCommandException as e:
        logger.warning(f"Failed to clean up driver on {instance.name}: {e}")
    logger.info(f"Stopped driver on {instance.name}")
