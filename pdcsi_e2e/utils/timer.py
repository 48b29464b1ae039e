import time

from pdcsi_e2e.utils import logger


class Timer:
    def __init__(self, print_desc=None):
        self.print_desc = print_desc
        self.start = time.monotonic()
        self.end = None

    def __enter__(self):
        return self

    def __exit__(self, exc_typ, exc_val, exc_tb):
        self.end = time.monotonic()
        if self.print_desc:
            logger.debug(f"{self.print_desc}: {self.elapsed:.2f}s")

    @property
    def elapsed(self):
        end = self.end if self.end is not None else time.monotonic()
        return end - self.start
