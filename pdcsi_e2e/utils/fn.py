import time
from pathlib import Path
from typing import Callable, Optional, Union

from pdcsi_e2e.utils import logger

PathLike = Union[str, Path]

GiB = 1024 * 1024 * 1024


def bytes_to_gb(n_bytes: int) -> int:
    """Whole GiB, rounded down"""
    return n_bytes // GiB


def wait_for(fn: Callable[[], bool], timeout=60, interval=0.25, desc="Waiting") -> Optional[float]:
    """Wait for fn to return True. Returns number of seconds waited."""
    start = time.monotonic()
    while time.monotonic() - start < timeout:
        if fn():
            logger.debug(f"[wait_for] {desc} completed in {time.monotonic() - start:.2f}s")
            return time.monotonic() - start
        time.sleep(interval)
    raise TimeoutError(f"Timeout waiting for '{desc}' (timeout {timeout:.2f}s, interval {interval:.2f}s)")
