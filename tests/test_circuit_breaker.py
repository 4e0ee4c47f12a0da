"""
Circuit breaker state machine: CLOSED -> OPEN at the threshold, OPEN rejects
without invoking the wrapped call, one HALF_OPEN trial after the reset timeout.
"""
from __future__ import annotations

import pytest

from payout_ledger.core.errors import CircuitOpenError
from payout_ledger.providers.resilience import CircuitBreaker, CircuitState
from tests.fakes import FakeClock, RecordingAlertSink


def _fail():
    raise RuntimeError("provider down")


def _trip(breaker: CircuitBreaker, n: int) -> None:
    for _ in range(n):
        with pytest.raises(RuntimeError):
            breaker.execute(_fail)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def breaker(clock: FakeClock) -> CircuitBreaker:
    return CircuitBreaker("test", failure_threshold=3, reset_timeout_s=60.0, clock=clock)


class TestClosed:
    def test_starts_closed_and_executes(self, breaker):
        assert breaker.execute(lambda: 42) == 42
        state = breaker.get_state()
        assert state.state == "CLOSED"
        assert state.failure_count == 0
        assert state.next_attempt_allowed_at is None

    def test_stays_closed_below_threshold(self, breaker):
        _trip(breaker, 2)
        assert breaker.state == CircuitState.CLOSED.value
        assert breaker.get_state().failure_count == 2

    def test_success_resets_failure_count(self, breaker):
        _trip(breaker, 2)
        breaker.execute(lambda: "ok")
        assert breaker.get_state().failure_count == 0
        _trip(breaker, 2)
        assert breaker.state == "CLOSED"


class TestOpen:
    def test_opens_at_threshold(self, breaker, clock):
        _trip(breaker, 3)
        state = breaker.get_state()
        assert state.state == "OPEN"
        assert state.failure_count == 3
        assert state.next_attempt_allowed_at == clock.now + 60.0

    def test_rejects_without_calling_fn(self, breaker):
        _trip(breaker, 3)
        calls = []
        with pytest.raises(CircuitOpenError):
            breaker.execute(lambda: calls.append(1))
        assert calls == []

    def test_still_open_just_before_timeout(self, breaker, clock):
        _trip(breaker, 3)
        clock.advance(59.9)
        with pytest.raises(CircuitOpenError):
            breaker.execute(lambda: "ok")

    def test_trip_sends_critical_alert(self, clock):
        sink = RecordingAlertSink()
        breaker = CircuitBreaker("arbiscan", failure_threshold=2, reset_timeout_s=60.0, clock=clock, alert_sink=sink)
        _trip(breaker, 2)
        assert len(sink.texts) == 1
        assert "[CRITICAL] arbiscan" in sink.texts[0]
        assert "failure_count=2" in sink.texts[0]
        assert "next_attempt_allowed_at=1970-01-12T13:47:40+00:00" in sink.texts[0]

    def test_failed_trial_sends_second_alert(self, clock):
        sink = RecordingAlertSink()
        breaker = CircuitBreaker("arbiscan", failure_threshold=2, reset_timeout_s=60.0, clock=clock, alert_sink=sink)
        _trip(breaker, 2)
        clock.advance(60.0)
        _trip(breaker, 1)
        assert len(sink.texts) == 2
        assert "failure_count=3" in sink.texts[1]


class TestHalfOpen:
    def test_trial_allowed_after_timeout_and_success_closes(self, breaker, clock):
        _trip(breaker, 3)
        clock.advance(60.0)
        assert breaker.execute(lambda: "recovered") == "recovered"
        state = breaker.get_state()
        assert state.state == "CLOSED"
        assert state.failure_count == 0
        assert state.next_attempt_allowed_at is None

    def test_trial_failure_reopens_with_restarted_timer(self, breaker, clock):
        _trip(breaker, 3)
        clock.advance(61.0)
        with pytest.raises(RuntimeError):
            breaker.execute(_fail)
        state = breaker.get_state()
        assert state.state == "OPEN"
        assert state.failure_count == 4
        assert state.next_attempt_allowed_at == clock.now + 60.0
        with pytest.raises(CircuitOpenError):
            breaker.execute(lambda: "ok")

    def test_only_one_trial_while_in_flight(self, breaker, clock):
        _trip(breaker, 3)
        clock.advance(60.0)
        inner_errors = []

        def trial():
            # A second caller during the trial is rejected.
            try:
                breaker.execute(lambda: "second")
            except CircuitOpenError as exc:
                inner_errors.append(exc)
            return "first"

        assert breaker.execute(trial) == "first"
        assert len(inner_errors) == 1
        assert breaker.state == "CLOSED"


def test_reset_returns_to_closed(breaker):
    _trip(breaker, 3)
    breaker.reset()
    assert breaker.get_state().state == "CLOSED"
    assert breaker.execute(lambda: 1) == 1


def test_state_to_dict_formats_next_attempt(breaker):
    _trip(breaker, 3)
    d = breaker.get_state().to_dict()
    assert d["state"] == "OPEN"
    assert d["next_attempt_allowed_at"].endswith("+00:00")
