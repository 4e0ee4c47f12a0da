"""Daily usage budget: lazy UTC-day rollover, threshold alerts once per day."""
from __future__ import annotations

import logging

import pytest

from payout_ledger.providers import usage as usage_mod
from payout_ledger.providers.usage import UsageTracker
from tests.fakes import RecordingAlertSink


@pytest.fixture
def day(monkeypatch):
    """Controllable UTC day key."""
    current = {"day": "2026-01-01"}
    monkeypatch.setattr(usage_mod, "_utc_day_key", lambda: current["day"])
    return current


def test_track_call_increments_and_returns_usage(day):
    tracker = UsageTracker(limit=100)
    u = tracker.track_call()
    assert (u.calls, u.limit, u.percentage, u.day) == (1, 100, 1, "2026-01-01")
    assert tracker.track_call().calls == 2


def test_get_usage_has_no_side_effect(day):
    tracker = UsageTracker(limit=100)
    tracker.track_call()
    assert tracker.get_usage().calls == 1
    assert tracker.get_usage().calls == 1


def test_new_day_reads_zero_then_restarts(day):
    tracker = UsageTracker(limit=100)
    for _ in range(5):
        tracker.track_call()
    day["day"] = "2026-01-02"
    u = tracker.get_usage()
    assert u.calls == 0 and u.percentage == 0 and u.day == "2026-01-02"
    assert tracker.track_call().calls == 1


def test_reset_clears_count(day):
    tracker = UsageTracker(limit=100)
    tracker.track_call()
    tracker.reset()
    assert tracker.get_usage().calls == 0


def test_threshold_alert_logged_and_sent_once(day, caplog):
    sink = RecordingAlertSink()
    tracker = UsageTracker(limit=10, alert_thresholds=[80], alert_sink=sink, provider_name="arbiscan")
    with caplog.at_level(logging.WARNING, logger="payout_ledger.providers.usage"):
        for _ in range(7):
            tracker.track_call()
        assert sink.texts == []
        tracker.track_call()  # 8/10 = 80%
        tracker.track_call()
        tracker.track_call()
    assert sink.texts == ["arbiscan usage at 80%: 8/10 calls today (2026-01-01)"]
    warnings = [r for r in caplog.records if "usage at 80%" in r.getMessage()]
    assert len(warnings) == 1


def test_each_threshold_alerts_separately(day):
    sink = RecordingAlertSink()
    tracker = UsageTracker(limit=20, alert_thresholds=[80, 90, 95], alert_sink=sink)
    for _ in range(20):
        tracker.track_call()
    assert [t.split(":")[0] for t in sink.texts] == [
        "explorer usage at 80%",
        "explorer usage at 90%",
        "explorer usage at 95%",
    ]


def test_alerts_rearm_on_new_day(day):
    sink = RecordingAlertSink()
    tracker = UsageTracker(limit=1, alert_thresholds=[80], alert_sink=sink)
    tracker.track_call()
    day["day"] = "2026-01-02"
    tracker.track_call()
    assert len(sink.texts) == 2


def test_alert_sink_failure_never_raises(day):
    class Broken(RecordingAlertSink):
        def _deliver(self, text):
            raise ConnectionError("webhook down")

    tracker = UsageTracker(limit=1, alert_thresholds=[80], alert_sink=Broken())
    assert tracker.track_call().percentage == 100


def test_no_cap_enforced(day):
    tracker = UsageTracker(limit=2)
    for _ in range(5):
        tracker.track_call()
    assert tracker.get_usage().calls == 5
    assert tracker.get_usage().percentage == 250
