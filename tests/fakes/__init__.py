"""Fake explorer sources, HTTP responses, sleeps, alert sinks and stores for tests (no live network)."""

from .explorer import (
    FakeClock,
    FakeExplorerSource,
    FakeResponse,
    FakeSession,
    RecordingAlertSink,
    RecordingSleep,
    make_native_tx,
    make_token_tx,
)
from .store import FailingStore

__all__ = [
    "FailingStore",
    "FakeClock",
    "FakeExplorerSource",
    "FakeResponse",
    "FakeSession",
    "RecordingAlertSink",
    "RecordingSleep",
    "make_native_tx",
    "make_token_tx",
]
