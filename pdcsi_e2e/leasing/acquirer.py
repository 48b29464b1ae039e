import math
import threading
import time
from typing import Callable, Optional

from pdcsi_e2e.exceptions import BoskosException, LeaseCancelledException, LeaseTimeoutException
from pdcsi_e2e.leasing.resource import BUSY, FREE, Resource
from pdcsi_e2e.utils import logger

DEFAULT_ACQUIRE_TIMEOUT = 30 * 60
DEFAULT_ACQUIRE_INTERVAL = 60


class LeaseAcquirer:
    """Polls the leasing service until a free resource of the requested type is leased.

    Each tick issues one acquire request (free -> busy). Service errors and empty pools are
    logged and retried on the next tick; the first lease returned ends the loop. If no lease
    is obtained before the deadline, LeaseTimeoutException is raised and the caller decides
    whether to abort the run.
    """

    def __init__(
        self,
        client,
        timeout: float = DEFAULT_ACQUIRE_TIMEOUT,
        interval: float = DEFAULT_ACQUIRE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval <= 0 or timeout <= 0:
            raise ValueError(f"timeout and interval must be positive (timeout={timeout}, interval={interval})")
        self.client = client
        self.timeout = timeout
        self.interval = interval
        self.clock = clock
        self.ticks = 0

    def try_acquire(self, resource_type: str) -> Optional[Resource]:
        """Single acquisition attempt, None on failure."""
        try:
            resource = self.client.acquire(resource_type, FREE, BUSY)
        except BoskosException as e:
            logger.warning(f"boskos failed to acquire project: {e}")
            return None
        if resource is None:
            logger.warning(f"boskos does not have a free {resource_type} at the moment")
        return resource

    def acquire(self, resource_type: str, cancel: Optional[threading.Event] = None) -> Resource:
        if not resource_type:
            raise ValueError("resource type must be non-empty")
        cancel = cancel or threading.Event()
        start = self.clock()
        deadline = start + self.timeout
        self.ticks = 0
        while True:
            # ticks stay on start + k * interval, a slow request skips the ticks it overran
            now = self.clock()
            next_tick = min(start + (math.floor((now - start) / self.interval) + 1) * self.interval, deadline)
            if cancel.wait(max(next_tick - now, 0)):
                raise LeaseCancelledException(f"cancelled while acquiring a {resource_type} after {self.ticks} attempts")
            if self.clock() >= deadline:
                raise LeaseTimeoutException(
                    f"timed out trying to acquire boskos {resource_type} after {self.timeout:.0f}s", resource_type=resource_type
                )
            self.ticks += 1
            resource = self.try_acquire(resource_type)
            if resource is not None:
                logger.debug(f"acquired {resource} after {self.ticks} attempts")
                return resource


def get_boskos_project(client, resource_type: str, config=None, cancel: Optional[threading.Event] = None) -> Resource:
    """Acquire a resource using the timing configured in E2EConfig."""
    if config is None:
        return LeaseAcquirer(client).acquire(resource_type, cancel=cancel)
    return LeaseAcquirer(client, timeout=config.acquire_timeout, interval=config.acquire_interval).acquire(resource_type, cancel=cancel)
