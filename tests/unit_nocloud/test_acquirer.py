import json
import threading
from types import SimpleNamespace
from unittest import mock

import pytest

from pdcsi_e2e.config import E2EConfig
from pdcsi_e2e.exceptions import LeaseCancelledException, LeaseTimeoutException
from pdcsi_e2e.leasing import acquirer as acquirer_module
from pdcsi_e2e.leasing.acquirer import LeaseAcquirer, get_boskos_project
from pdcsi_e2e.leasing.client import BoskosClient
from tests.fakes import FakeBoskos, FakeCancel, FakeClock, boskos_error, make_resource


@pytest.fixture
def warnings(monkeypatch):
    messages = []
    monkeypatch.setattr(acquirer_module.logger, "warning", lambda msg, *args, **kwargs: messages.append(msg))
    return messages


def test_acquire_after_empty_pool_and_error(warnings):
    lease = make_resource("proj-123")
    boskos = FakeBoskos([None, boskos_error(), lease])
    clock = FakeClock()
    cancel = FakeCancel(clock)

    acquirer = LeaseAcquirer(boskos, clock=clock)
    result = acquirer.acquire("project", cancel=cancel)

    assert result is lease
    assert result.get_name() == "proj-123"
    assert acquirer.ticks == 3
    assert boskos.acquire_calls == [("project", "free", "busy")] * 3
    assert clock.now == 180
    assert len(warnings) == 2
    assert "does not have a free project" in warnings[0]
    assert "failed to acquire" in warnings[1]


def test_acquire_returns_first_lease_without_more_ticks(warnings):
    lease = make_resource("proj-1")
    boskos = FakeBoskos([lease, make_resource("proj-2")])
    clock = FakeClock()
    cancel = FakeCancel(clock)

    assert LeaseAcquirer(boskos, clock=clock).acquire("project", cancel=cancel) is lease
    assert len(boskos.acquire_calls) == 1
    assert len(cancel.waits) == 1
    assert warnings == []


def test_acquire_times_out_after_deadline(warnings):
    boskos = FakeBoskos([None])
    clock = FakeClock()
    cancel = FakeCancel(clock)

    acquirer = LeaseAcquirer(boskos, clock=clock)
    with pytest.raises(LeaseTimeoutException) as exc_info:
        acquirer.acquire("project", cancel=cancel)

    assert exc_info.value.resource_type == "project"
    assert clock.now == 30 * 60
    # first tick fires one interval after the call, the deadline wins the last one
    assert len(boskos.acquire_calls) == 29
    assert len(warnings) == 29


def test_acquire_times_out_when_service_always_errors(warnings):
    boskos = FakeBoskos([boskos_error()])
    clock = FakeClock()
    with pytest.raises(LeaseTimeoutException):
        LeaseAcquirer(boskos, timeout=300, interval=60, clock=clock).acquire("project", cancel=FakeCancel(clock))
    assert len(boskos.acquire_calls) == 4


def test_acquire_deadline_not_multiple_of_interval(warnings):
    boskos = FakeBoskos([None])
    clock = FakeClock()
    cancel = FakeCancel(clock)
    with pytest.raises(LeaseTimeoutException):
        LeaseAcquirer(boskos, timeout=150, interval=60, clock=clock).acquire("project", cancel=cancel)
    assert cancel.waits == [60, 60, 30]
    assert clock.now == 150


def test_acquire_cancelled(warnings):
    boskos = FakeBoskos([None])
    clock = FakeClock()
    with pytest.raises(LeaseCancelledException):
        LeaseAcquirer(boskos, clock=clock).acquire("project", cancel=FakeCancel(clock, cancel_after=3))
    assert len(boskos.acquire_calls) == 2


def test_acquire_with_real_event_already_set(warnings):
    boskos = FakeBoskos([make_resource()])
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(LeaseCancelledException):
        LeaseAcquirer(boskos, timeout=1, interval=0.01).acquire("project", cancel=cancel)
    assert boskos.acquire_calls == []


def test_acquire_with_real_clock(warnings):
    lease = make_resource()
    boskos = FakeBoskos([None, lease])
    assert LeaseAcquirer(boskos, timeout=5, interval=0.01).acquire("project") is lease
    assert len(boskos.acquire_calls) == 2


def test_acquire_rejects_empty_type():
    with pytest.raises(ValueError):
        LeaseAcquirer(FakeBoskos()).acquire("")


def test_acquirer_rejects_bad_timing():
    with pytest.raises(ValueError):
        LeaseAcquirer(FakeBoskos(), interval=0)
    with pytest.raises(ValueError):
        LeaseAcquirer(FakeBoskos(), timeout=-1)


def test_get_boskos_project_uses_config_timing(warnings):
    config = E2EConfig()
    config.set_flag("acquire_timeout_minutes", "0.001")
    config.set_flag("acquire_interval_minutes", "0.0001")
    with pytest.raises(LeaseTimeoutException):
        get_boskos_project(FakeBoskos([None]), "project", config=config)


class SlowBoskos(FakeBoskos):
    """Each acquire request takes latency seconds on the fake clock."""

    def __init__(self, clock, latency, outcomes):
        super().__init__(outcomes)
        self.clock = clock
        self.latency = latency

    def acquire(self, rtype, state, dest):
        self.clock.now += self.latency
        return super().acquire(rtype, state, dest)


def test_acquire_ticks_do_not_drift_with_request_latency(warnings):
    clock = FakeClock()
    cancel = FakeCancel(clock)
    boskos = SlowBoskos(clock, 10, [None, None, make_resource()])

    LeaseAcquirer(boskos, clock=clock).acquire("project", cancel=cancel)
    assert cancel.waits == [60, 50, 50]
    assert clock.now == 190


def test_acquire_skips_ticks_overrun_by_slow_request(warnings):
    clock = FakeClock()
    cancel = FakeCancel(clock)
    boskos = SlowBoskos(clock, 90, [None, make_resource()])

    LeaseAcquirer(boskos, clock=clock).acquire("project", cancel=cancel)
    assert cancel.waits == [60, 30]
    assert len(boskos.acquire_calls) == 2


def test_acquire_retries_after_non_object_response(warnings):
    pool = mock.Mock()
    pool.request.side_effect = [
        SimpleNamespace(status=200, data=b"null"),
        SimpleNamespace(status=200, data=json.dumps({"name": "proj-123", "type": "project", "state": "busy"}).encode("utf-8")),
    ]
    client = BoskosClient(owner="e2e-job", url="http://boskos", http_pool=pool)
    clock = FakeClock()

    resource = LeaseAcquirer(client, clock=clock).acquire("project", cancel=FakeCancel(clock))
    assert resource.name == "proj-123"
    assert len(warnings) == 1
    assert "failed to acquire" in warnings[0]
