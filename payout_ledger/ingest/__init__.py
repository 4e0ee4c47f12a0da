"""
Ingestion API: sync context and pass execution.

CLI must use this module instead of wiring store, migrations and explorer
clients itself. One context holds the process-wide breaker and usage tracker.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .. import config
from ..alerts import AlertSink, create_alert_sink
from ..db.migrations import run_migrations
from ..payouts.processor import PayoutRules
from ..providers.defaults import create_explorer_client, create_history_fetcher
from ..providers.explorer import ExplorerClient
from ..providers.history import HistoryFetcher
from ..store.sqlite_backend import SQLiteStore
from .payout_sync import CleanupResult, FirmSyncResult, PayoutSyncService, SyncSummary

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Holds the store, explorer client and sync service. Use as context manager or call close()."""

    store: SQLiteStore
    client: ExplorerClient
    history: HistoryFetcher
    service: PayoutSyncService
    alert_sink: AlertSink
    _closed: bool = field(default=False, repr=False)

    def close(self) -> None:
        """Close the store. Idempotent: safe to call multiple times."""
        if self._closed:
            return
        try:
            self.alert_sink.flush()
            self.store.close()
        finally:
            self._closed = True

    def status(self) -> dict:
        """Breaker and usage snapshot for operators."""
        return {
            "circuit": self.client.circuit_breaker.get_state().to_dict(),
            "usage": self.client.usage_tracker.get_usage().to_dict(),
        }

    def __enter__(self) -> SyncContext:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def get_sync_context(
    db_path: Optional[str] = None,
    *,
    client: Optional[ExplorerClient] = None,
    alert_sink: Optional[AlertSink] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SyncContext:
    """
    Open the store, run migrations, and build the explorer client and sync service.
    Use as: with get_sync_context(db_path) as ctx: ctx.service.sync_all_firms()
    If client is provided it is used instead of building one from config (for tests).
    """
    sink = alert_sink or create_alert_sink(config.slack_webhook_url())
    path = db_path or config.db_path()
    store = SQLiteStore.open(path, busy_timeout_ms=config.db_busy_timeout_ms())
    run_migrations(store.conn)
    logger.debug("Sync context opened db=%s", path)
    if client is None:
        client = create_explorer_client(alert_sink=sink, sleep=sleep)
    history = create_history_fetcher(client, sleep=sleep)
    sync_cfg = config.sync_settings()
    service = PayoutSyncService(
        store,
        history,
        api_key=client.api_key,
        rules=PayoutRules.from_settings(config.payout_settings()),
        address_delay_s=float(sync_cfg["address_delay_s"]),
        firm_delay_s=float(sync_cfg["firm_delay_s"]),
        retention_hours=float(sync_cfg["retention_hours"]),
        sleep=sleep,
    )
    return SyncContext(store=store, client=client, history=history, service=service, alert_sink=sink)


__all__ = [
    "CleanupResult",
    "FirmSyncResult",
    "PayoutSyncService",
    "SyncContext",
    "SyncSummary",
    "get_sync_context",
]
