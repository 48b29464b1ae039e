import threading

from pdcsi_e2e.exceptions import BoskosException, RemoteCommandException
from pdcsi_e2e.leasing.resource import Resource


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeCancel:
    """Stands in for threading.Event, waiting advances the fake clock instead of sleeping."""

    def __init__(self, clock, cancel_after=None):
        self.clock = clock
        self.cancel_after = cancel_after
        self.waits = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        self.clock.now += timeout
        return self.cancel_after is not None and len(self.waits) >= self.cancel_after


class FakeBoskos:
    """Scripted leasing service. Each acquire pops the next outcome, the last one repeats."""

    def __init__(self, outcomes=(None,), update_outcomes=()):
        self.outcomes = list(outcomes)
        self.update_outcomes = list(update_outcomes)
        self.acquire_calls = []
        self.update_calls = []
        self.updated = threading.Event()

    def acquire(self, rtype, state, dest):
        self.acquire_calls.append((rtype, state, dest))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def update_one(self, name, state, user_data=None):
        self.update_calls.append((name, state, user_data))
        outcome = self.update_outcomes.pop(0) if self.update_outcomes else None
        self.updated.set()
        if isinstance(outcome, Exception):
            raise outcome


def make_resource(name="proj-123", rtype="project", state="busy"):
    return Resource(name=name, type=rtype, state=state, owner="e2e-job")


def boskos_error(msg="boskos unavailable"):
    return BoskosException(msg, status=500)


class FakeInstance:
    """Records commands and answers them from a {command: output or exception} table."""

    def __init__(self, responses=None, name="test-vm"):
        self.name = name
        self.responses = responses or {}
        self.commands = []

    def _run(self, command):
        self.commands.append(command)
        response = self.responses.get(command, "")
        if isinstance(response, Exception):
            raise response
        return response

    def ssh(self, *args):
        return self._run("sudo " + " ".join(args))

    def ssh_no_sudo(self, *args):
        return self._run(" ".join(args))


def remote_error(output="permission denied"):
    return RemoteCommandException("command exited with status 1", output=output)
