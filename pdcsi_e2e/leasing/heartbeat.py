import threading
from typing import Optional

from pdcsi_e2e.leasing.resource import BUSY
from pdcsi_e2e.utils import logger

DEFAULT_HEARTBEAT_INTERVAL = 5 * 60


class LeaseHeartbeat(threading.Thread):
    """Keeps a leased resource busy so the leasing service does not reclaim it.

    Runs as a daemon until stop() is called. A failed update is logged and the next beat
    is still attempted.
    """

    def __init__(self, client, name: str, interval: float = DEFAULT_HEARTBEAT_INTERVAL, state: str = BUSY):
        super().__init__(name=f"boskos-heartbeat-{name}", daemon=True)
        if interval <= 0:
            raise ValueError(f"heartbeat interval must be positive, got {interval}")
        self.client = client
        self.resource_name = name
        self.interval = interval
        self.state = state
        self.stop_event = threading.Event()
        self.n_beats = 0
        self.n_failures = 0

    def beat(self) -> bool:
        try:
            self.client.update_one(self.resource_name, self.state, None)
        except Exception as e:
            # logged only, the next beat retries
            self.n_failures += 1
            logger.warning(f"[Boskos] Update {self.resource_name} failed with {e}")
            return False
        self.n_beats += 1
        logger.debug(f"[Boskos] Updated {self.resource_name} to {self.state}")
        return True

    def run(self):
        while not self.stop_event.wait(self.interval):
            self.beat()

    def stop(self, timeout: Optional[float] = None):
        self.stop_event.set()
        if self.is_alive():
            self.join(timeout)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_typ, exc_val, exc_tb):
        self.stop()
