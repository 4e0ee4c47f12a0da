"""
Daily API call budget tracking.

Counts every HTTP round-trip against the provider's daily quota (UTC day).
Rollover is lazy: the day key is compared on each read/write, no timers.
Threshold crossings are logged once per day and forwarded to the alert sink.
The tracker never blocks calls.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence, Set

from ..alerts import AlertSink, NullAlertSink

logger = logging.getLogger(__name__)

DEFAULT_DAILY_LIMIT = 100_000
DEFAULT_ALERT_THRESHOLDS = (80, 90, 95)


def _utc_day_key() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


@dataclass(frozen=True)
class Usage:
    calls: int
    limit: int
    percentage: int
    day: str

    def to_dict(self) -> dict:
        return asdict(self)


class UsageTracker:
    """Process-wide daily call counter for the explorer API."""

    def __init__(
        self,
        limit: int = DEFAULT_DAILY_LIMIT,
        *,
        alert_thresholds: Sequence[int] = DEFAULT_ALERT_THRESHOLDS,
        alert_sink: Optional[AlertSink] = None,
        provider_name: str = "explorer",
    ) -> None:
        self.limit = limit
        self._thresholds = sorted(int(t) for t in alert_thresholds)
        self._alert_sink = alert_sink or NullAlertSink()
        self._provider_name = provider_name
        self._calls = 0
        self._day_key: Optional[str] = None
        self._alerted: Set[int] = set()
        self._lock = threading.Lock()

    def _percentage(self, calls: int) -> int:
        return round(calls / self.limit * 100) if self.limit > 0 else 0

    def track_call(self) -> Usage:
        """Record one API round-trip and return usage after it."""
        day = _utc_day_key()
        with self._lock:
            if day != self._day_key:
                self._day_key = day
                self._calls = 0
                self._alerted.clear()
            self._calls += 1
            usage = Usage(self._calls, self.limit, self._percentage(self._calls), day)
            crossed = [t for t in self._thresholds if usage.percentage >= t and t not in self._alerted]
            self._alerted.update(crossed)
        for threshold in crossed:
            self._alert(threshold, usage)
        return usage

    def get_usage(self) -> Usage:
        """Current usage without side effects; a new day reads as zero."""
        day = _utc_day_key()
        with self._lock:
            if day != self._day_key:
                return Usage(0, self.limit, 0, day)
            return Usage(self._calls, self.limit, self._percentage(self._calls), day)

    def reset(self) -> None:
        with self._lock:
            self._calls = 0
            self._day_key = None
            self._alerted.clear()

    def _alert(self, threshold: int, usage: Usage) -> None:
        logger.warning(
            "%s usage at %d%% (%d/%d calls today, day=%s)",
            self._provider_name, threshold, usage.calls, usage.limit, usage.day,
        )
        self._alert_sink.send(
            f"{self._provider_name} usage at {threshold}%: "
            f"{usage.calls}/{usage.limit} calls today ({usage.day})"
        )
