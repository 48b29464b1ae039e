import os

import pytest

from pdcsi_e2e.config import E2EConfig
from pdcsi_e2e.exceptions import BadConfigException
from pdcsi_e2e.remote import driver
from pdcsi_e2e.remote.driver import ClientConfig, TestContext, gce_client_and_driver_setup, make_driver_run_cmd, teardown_driver_and_client
from tests.fakes import FakeInstance, remote_error


def test_driver_run_cmd():
    cmd = make_driver_run_cmd("/tmp/gce-pd-e2e-1", "tcp://localhost:5000")
    assert cmd == (
        "sh -c '/usr/bin/nohup /tmp/gce-pd-e2e-1/gce-pd-csi-driver --endpoint=tcp://localhost:5000 "
        "> /tmp/gce-pd-e2e-1/prog.out 2> /tmp/gce-pd-e2e-1/prog.err < /dev/null &'"
    )


def test_setup_requires_gopath(monkeypatch):
    monkeypatch.delenv("GOPATH", raising=False)
    with pytest.raises(BadConfigException, match="GOPATH"):
        gce_client_and_driver_setup(FakeInstance(), config=E2EConfig())


def test_gce_client_and_driver_setup(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setenv("GOPATH", str(tmp_path))
    monkeypatch.setenv("GCE_PD_CSI_STAGING_VERSION", "v1.0.0")
    monkeypatch.setattr(driver, "setup_new_driver_and_client", lambda instance, config, ready_timeout: calls.append(config) or "ctx")

    assert gce_client_and_driver_setup(FakeInstance(), config=E2EConfig()) == "ctx"
    config = calls[0]
    assert 1024 <= int(config.port) < 11024
    assert config.bin_path == str(tmp_path / "src/sigs.k8s.io/gcp-compute-persistent-disk-csi-driver/bin/gce-pd-csi-driver")
    assert config.workspace_dir.startswith("/tmp/gce-pd-e2e-")
    assert f"--endpoint=tcp://localhost:{config.port}" in config.run_driver_cmd
    assert os.environ["GCE_PD_CSI_STAGING_VERSION"] == "latest"


def test_setup_requires_binary(tmp_path):
    config = ClientConfig(str(tmp_path), str(tmp_path / "missing"), "/tmp/ws", "true", "5000")
    with pytest.raises(BadConfigException):
        driver.setup_new_driver_and_client(FakeInstance(), config)


class TunnelInstance(FakeInstance):
    def __init__(self, responses=None):
        super().__init__(responses)
        self.closed_tunnels = []
        self.uploads = []

    def upload_file(self, local_path, remote_path):
        self.uploads.append((str(local_path), remote_path))

    def tunnel_port(self, remote_port):
        return 40000

    def close_tunnel(self, remote_port):
        self.closed_tunnels.append(remote_port)


def test_setup_new_driver_and_client(tmp_path):
    binary = tmp_path / "gce-pd-csi-driver"
    binary.write_bytes(b"\x7fELF")
    config = ClientConfig(str(tmp_path), str(binary), "/tmp/ws", make_driver_run_cmd("/tmp/ws", "tcp://localhost:5000"), "5000")
    instance = TunnelInstance()

    context = driver.setup_new_driver_and_client(instance, config, ready_timeout=1)
    assert context.endpoint == "tcp://localhost:40000"
    assert instance.uploads == [(str(binary), "/tmp/ws/gce-pd-csi-driver")]
    assert instance.commands[:3] == ["mkdir -p /tmp/ws", "chmod +x /tmp/ws/gce-pd-csi-driver", "sudo " + config.run_driver_cmd]


def test_teardown_driver_and_client():
    instance = TunnelInstance({"sudo rm -rf /tmp/ws": remote_error()})
    config = ClientConfig("/pkg", "/pkg/bin", "/tmp/ws", "true", "5000")
    teardown_driver_and_client(TestContext(instance=instance, config=config, local_port=40000))
    assert instance.closed_tunnels == [5000]
    assert instance.commands == ["sudo pkill -f '[g]ce-pd-csi-driver' || true", "sudo rm -rf /tmp/ws"]
