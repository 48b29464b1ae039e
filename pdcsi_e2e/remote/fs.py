"""Filesystem helpers run on the test instance, used by test assertions."""
from contextlib import contextmanager

from pdcsi_e2e.exceptions import RemoteCommandException
from pdcsi_e2e.remote.instance import InstanceInfo
from pdcsi_e2e.utils.fn import bytes_to_gb


@contextmanager
def _failed_to(desc: str):
    """Re-raise remote command failures with desc and the raw output."""
    try:
        yield
    except RemoteCommandException as e:
        raise RemoteCommandException(f"failed to {desc}. Output: {e.output}, error: {e}", output=e.output) from e


def force_chmod(instance: InstanceInfo, file_path: str, perms: str):
    """chmod -R with the umask cleared, restoring the original umask afterwards."""
    with _failed_to("umask"):
        original_umask = instance.ssh_no_sudo("umask").strip()
    with _failed_to("umask"):
        instance.ssh_no_sudo("umask", "0000")
    with _failed_to(f"chmod file {file_path}"):
        instance.ssh("chmod", "-R", perms, file_path)
    with _failed_to("umask"):
        instance.ssh_no_sudo("umask", original_umask)


def write_file(instance: InstanceInfo, file_path: str, file_contents: str):
    with _failed_to(f"write test file {file_path}"):
        instance.ssh_no_sudo("echo", file_contents, ">", file_path)


def read_file(instance: InstanceInfo, file_path: str) -> str:
    with _failed_to(f"read test file {file_path}"):
        return instance.ssh_no_sudo("cat", file_path)


def get_fs_size_in_gb(instance: InstanceInfo, mount_path: str) -> int:
    with _failed_to(f"get size of path {mount_path}"):
        output = instance.ssh_no_sudo("df", "--output=size", "-BG", mount_path, "|", "awk", "'NR==2'")
    size = output.strip()
    if size.endswith("G"):
        size = size[:-1]
    try:
        return int(size)
    except ValueError as e:
        raise RemoteCommandException(f"failed to parse size {size} into int", output=output) from e


def get_block_size_in_gb(instance: InstanceInfo, device_path: str) -> int:
    with _failed_to(f"get size of path {device_path}"):
        output = instance.ssh("blockdev", "--getsize64", device_path)
    try:
        n_bytes = int(output.strip())
    except ValueError as e:
        raise RemoteCommandException(f"failed to parse size {output} into int", output=output) from e
    return bytes_to_gb(n_bytes)


def rm_all(instance: InstanceInfo, file_path: str):
    with _failed_to(f"delete all {file_path}"):
        instance.ssh("rm", "-rf", file_path)
