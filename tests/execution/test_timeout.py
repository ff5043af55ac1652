"""Tests for advisory deadlines."""

from unittest.mock import patch

import pytest

from jobspine.execution import timeout as timeout_module
from jobspine.execution.timeout import (
    TimeoutExpired,
    advisory_deadline,
    check_deadline,
    get_current_deadline,
    remaining_time,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    fake = FakeClock()
    with patch.object(timeout_module.time, "monotonic", fake):
        yield fake


class TestAdvisoryDeadline:
    def test_zero_disables_tracking(self):
        with advisory_deadline(0) as ctx:
            assert ctx is None
            assert get_current_deadline() is None

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            with advisory_deadline(-1):
                pass

    def test_context_active_inside_block(self, clock):
        with advisory_deadline(30, operation="Heartbeat") as ctx:
            assert get_current_deadline() is ctx
            assert remaining_time() == 30
        assert get_current_deadline() is None

    def test_overrun_reported_after_block(self, clock):
        """The block is never interrupted; the overrun is reported on exit."""
        overruns = []
        with advisory_deadline(10, on_overrun=overruns.append):
            clock.now += 15
            assert overruns == []
        assert len(overruns) == 1
        assert overruns[0].timeout_seconds == 10
        assert overruns[0].elapsed == 15

    def test_no_overrun_within_budget(self, clock):
        overruns = []
        with advisory_deadline(10, on_overrun=overruns.append):
            clock.now += 5
        assert overruns == []

    def test_overrun_reported_when_block_raises(self, clock):
        overruns = []
        with pytest.raises(RuntimeError):
            with advisory_deadline(10, on_overrun=overruns.append):
                clock.now += 11
                raise RuntimeError("boom")
        assert len(overruns) == 1

    def test_nested_deadlines(self, clock):
        with advisory_deadline(60) as outer:
            with advisory_deadline(5) as inner:
                assert get_current_deadline() is inner
            assert get_current_deadline() is outer


class TestCheckDeadline:
    def test_noop_outside_deadline(self):
        check_deadline()
        assert remaining_time() is None

    def test_raises_once_expired(self, clock):
        with advisory_deadline(10, operation="Heartbeat"):
            check_deadline()
            clock.now += 10
            with pytest.raises(TimeoutExpired) as exc_info:
                check_deadline()
        assert exc_info.value.operation == "Heartbeat"
        assert exc_info.value.timeout == 10
