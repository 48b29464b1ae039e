import json
import shlex
import socket
from contextlib import closing
from pathlib import Path
from typing import Dict, Optional, Tuple

import paramiko

from pdcsi_e2e.exceptions import RemoteCommandException
from pdcsi_e2e.gcp.compute import get_external_ip, get_instance
from pdcsi_e2e.utils import logger
from pdcsi_e2e.utils.fn import PathLike, wait_for
from pdcsi_e2e.utils.timer import Timer


class InstanceInfo:
    """A GCE VM that test commands are run on over SSH."""

    def __init__(
        self,
        project: str,
        zone: str,
        name: str,
        ssh_user: str,
        ssh_private_key: PathLike,
        external_ip: Optional[str] = None,
        compute_client=None,
        log_dir=None,
    ):
        self.project = project
        self.zone = zone
        self.name = name
        self.ssh_user = ssh_user
        self.ssh_private_key = Path(ssh_private_key).expanduser()
        self._external_ip = external_ip
        self.compute_client = compute_client
        self.command_log = []
        self.ssh_tunnels: Dict = {}
        if log_dir:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            self.command_log_file = str(log_dir / f"{self.name}.jsonl")
        else:
            self.command_log_file = None

    @classmethod
    def from_config(cls, project: str, zone: str, name: str, config, **kwargs) -> "InstanceInfo":
        return cls(project, zone, name, config.get_flag("ssh_user"), config.get_flag("ssh_private_key"), **kwargs)

    def __repr__(self):
        return f"InstanceInfo(project={self.project}, zone={self.zone}, name={self.name})"

    def __enter__(self):
        return self

    def __exit__(self, exc_typ, exc_val, exc_tb):
        self.close()

    def public_ip(self) -> str:
        if self._external_ip is None:
            instance = get_instance(self.project, self.zone, self.name, client=self.compute_client)
            ip = get_external_ip(instance)
            if ip is None:
                raise RemoteCommandException(f"Instance {self.name} has no external IP")
            self._external_ip = ip
        return self._external_ip

    def get_ssh_client_impl(self):
        """Return paramiko client that connects to this instance."""
        ssh_client = paramiko.SSHClient()
        ssh_client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        ssh_client.connect(
            hostname=self.public_ip(),
            username=self.ssh_user,
            key_filename=str(self.ssh_private_key),
            look_for_keys=False,
            banner_timeout=200,
        )
        return ssh_client

    @property
    def ssh_client(self):
        """Create SSH client and cache."""
        if not hasattr(self, "_ssh_client"):
            self._ssh_client = self.get_ssh_client_impl()
        return self._ssh_client

    def get_sftp_client(self):
        return self.ssh_client.open_sftp()

    def open_ssh_tunnel_impl(self, remote_port):
        import sshtunnel

        return sshtunnel.SSHTunnelForwarder(
            (self.public_ip(), 22),
            ssh_username=self.ssh_user,
            ssh_pkey=str(self.ssh_private_key),
            local_bind_address=("127.0.0.1", 0),
            remote_bind_address=("127.0.0.1", remote_port),
        )

    def tunnel_port(self, remote_port: int) -> int:
        """Returns a local port that tunnels to the remote port."""
        if remote_port not in self.ssh_tunnels:
            tunnel = self.open_ssh_tunnel_impl(remote_port)
            tunnel.start()
            self.ssh_tunnels[remote_port] = tunnel
        local_bind_port = self.ssh_tunnels[remote_port].local_bind_port
        logger.debug(f"Bound remote port {self.name}:{remote_port} to localhost:{local_bind_port}")
        return local_bind_port

    def close_tunnel(self, remote_port: int):
        tunnel = self.ssh_tunnels.pop(remote_port, None)
        if tunnel is not None:
            tunnel.stop()

    def wait_for_ssh_ready(self, timeout=120, interval=1.0):
        def is_up():
            try:
                ip = self.public_ip()
            except Exception:
                return False
            with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as sock:
                sock.settimeout(2)
                return sock.connect_ex((ip, 22)) == 0

        wait_for(is_up, timeout=timeout, interval=interval, desc=f"Waiting for {self.name} to accept SSH")

    def close(self):
        if hasattr(self, "_ssh_client"):
            self._ssh_client.close()
            del self._ssh_client
        for remote_port in list(self.ssh_tunnels.keys()):
            self.close_tunnel(remote_port)
        self.flush_command_log()

    def flush_command_log(self):
        if self.command_log_file and len(self.command_log) > 0:
            with open(self.command_log_file, "a") as f:
                for log_item in self.command_log:
                    f.write(json.dumps(log_item) + "\n")
            self.command_log = []

    def run_command(self, command: str) -> Tuple[int, str, str]:
        with Timer() as t:
            _, stdout, stderr = self.ssh_client.exec_command(command)
            exit_status = stdout.channel.recv_exit_status()
            stdout, stderr = (stdout.read().decode("utf-8"), stderr.read().decode("utf-8"))
        self.command_log.append(dict(command=command, exit_status=exit_status, stdout=stdout, stderr=stderr, runtime=t.elapsed))
        self.flush_command_log()
        logger.debug(f"[{self.name}] {command} -> {exit_status} in {t.elapsed:.2f}s")
        return exit_status, stdout, stderr

    def _ssh(self, command: str) -> str:
        exit_status, stdout, stderr = self.run_command(command)
        output = stdout + stderr
        if exit_status != 0:
            raise RemoteCommandException(f"command {command!r} on {self.name} exited with status {exit_status}", output=output)
        return output

    def ssh(self, *args: str) -> str:
        """Run args as root through sh -c so every command of a pipeline is privileged.

        Returns combined stdout and stderr.
        """
        return self._ssh("sudo sh -c " + shlex.quote(" ".join(args)))

    def ssh_no_sudo(self, *args: str) -> str:
        return self._ssh(" ".join(args))

    def upload_file(self, local_path: PathLike, remote_path: str):
        """Upload a file to the instance"""
        sftp_client = self.get_sftp_client()
        try:
            sftp_client.put(str(local_path), remote_path)
        finally:
            sftp_client.close()
