import os
import sys
from datetime import datetime
from functools import partial

from rich import print as rprint
from rich.markup import escape

log_file = None

# klog style verbosity, messages logged with a higher v are dropped
verbosity = int(os.environ.get("PDCSI_E2E_VERBOSITY", "2"))


def open_log_file(filename):
    global log_file
    log_file = open(filename, "a")


def set_verbosity(v: int):
    global verbosity
    verbosity = v


def log(msg, LEVEL="INFO", color="white", v=0, write_to_file=True, write_to_stderr=True, *args, **kwargs):
    if v > verbosity:
        return
    if args or kwargs:
        msg = msg.format(*args, **kwargs)
    level_prefix = ("[" + LEVEL.upper() + "]").ljust(7)
    time = datetime.now().strftime("%H:%M:%S")
    if write_to_file and log_file:
        log_file.write(f"{time} {level_prefix} {msg}\n")
        log_file.flush()
    if write_to_stderr:
        rprint(f"{time} {escape(level_prefix)} [{color}]{escape(str(msg))}[/]", flush=True, file=sys.stderr)


debug = partial(log, LEVEL="DEBUG", color="cyan", v=4)
info = partial(log, LEVEL="INFO", color="white")
warn = partial(log, LEVEL="WARN", color="yellow")
warning = partial(log, LEVEL="WARN", color="yellow")
error = partial(log, LEVEL="ERROR", color="red")


def exception(msg, print_traceback=True, *args, **kwargs):
    error(f"Exception: {msg}", *args, **kwargs)
    if print_traceback:
        import traceback

        if log_file:
            traceback.print_exc(file=log_file)
        traceback.print_exc()


def fatal(msg, code=1):
    """Log and terminate the test run."""
    log(msg, LEVEL="FATAL", color="bold red")
    if log_file:
        log_file.flush()
    raise SystemExit(code)
