"""
Single source for "now" time. Supports deterministic mode for tests via
PAYOUT_LEDGER_DETERMINISTIC_TIME (ISO format, e.g. 2026-01-01T00:00:00Z).
"""

from __future__ import annotations

import os
from datetime import datetime, timezone


def now_utc() -> datetime:
    """
    Return the current UTC time as an aware datetime.
    If env PAYOUT_LEDGER_DETERMINISTIC_TIME is set, return that instant instead.
    """
    fixed = os.environ.get("PAYOUT_LEDGER_DETERMINISTIC_TIME", "").strip()
    if fixed:
        parsed = datetime.fromisoformat(fixed.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return datetime.now(timezone.utc)


def now_utc_iso() -> str:
    """Current UTC time in ISO format (seconds)."""
    return to_iso(now_utc())


def to_iso(dt: datetime) -> str:
    """Canonical ledger timestamp: UTC, seconds precision, +00:00 offset."""
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def from_unix(ts: int) -> datetime:
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)


def parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp (accepts a trailing Z); naive values are treated as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
