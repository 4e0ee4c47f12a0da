"""SyncContext lifecycle and wiring from config."""
from __future__ import annotations

from pathlib import Path

import pytest

from payout_ledger.core.errors import MissingApiKeyError
from payout_ledger.db.migrations import FIRMS_TABLE
from payout_ledger.ingest import get_sync_context
from payout_ledger.providers.explorer import ExplorerClient
from payout_ledger.providers.resilience import CircuitBreaker
from payout_ledger.providers.usage import UsageTracker
from tests.fakes import FakeResponse, FakeSession, RecordingAlertSink, RecordingSleep


def test_close_is_idempotent(tmp_path: Path) -> None:
    ctx = get_sync_context(str(tmp_path / "ledger.sqlite"), alert_sink=RecordingAlertSink())
    ctx.close()
    ctx.close()
    assert ctx._closed


def test_context_manager_closes_on_exception(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="oops"):
        with get_sync_context(str(tmp_path / "ledger.sqlite")) as ctx:
            raise ValueError("oops")
    assert ctx._closed


def test_wires_from_config_and_migrates(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("EXPLORER_API_KEY", "KEY")
    with get_sync_context(str(tmp_path / "ledger.sqlite")) as ctx:
        assert ctx.store.count(FIRMS_TABLE) == 0
        assert ctx.client.api_key == "KEY"
        assert ctx.service.api_key == "KEY"
        assert ctx.history.source is ctx.client
        status = ctx.status()
        assert status["circuit"]["state"] == "CLOSED"
        assert status["usage"]["calls"] == 0
        assert status["usage"]["limit"] == 100_000


def test_missing_key_aborts_pass(tmp_path: Path) -> None:
    with get_sync_context(str(tmp_path / "ledger.sqlite")) as ctx:
        with pytest.raises(MissingApiKeyError):
            ctx.service.sync_all_firms()


def test_injected_client_end_to_end(tmp_path: Path) -> None:
    rows = [
        {"hash": "0xe2e", "from": "0xfirm", "to": "0xtrader", "value": str(2 * 10**18), "timeStamp": "0"},
    ]
    session = FakeSession([FakeResponse({"status": "1", "message": "OK", "result": rows})])
    client = ExplorerClient(
        "KEY",
        circuit_breaker=CircuitBreaker(),
        usage_tracker=UsageTracker(),
        session=session,
        sleep=RecordingSleep(),
    )
    with get_sync_context(str(tmp_path / "ledger.sqlite"), client=client, sleep=RecordingSleep()) as ctx:
        ctx.store.upsert(FIRMS_TABLE, [{"id": "f", "name": "F", "addresses": '["0xfirm"]'}], on_conflict="id")
        summary = ctx.service.sync_all_firms()
        # timeStamp 0 is far outside the rolling window.
        assert summary.firms == 1
        assert summary.total_payouts == 0
        assert ctx.status()["usage"]["calls"] == 2
