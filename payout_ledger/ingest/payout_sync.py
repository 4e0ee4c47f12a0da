"""
Payout sync: explorer -> processor -> rolling ledger.

One pass walks every firm sequentially; within a firm every address is
fetched sequentially with a fixed delay between addresses. The shared
explorer rate limit is the bottleneck, so there is no fan-out.

Failure isolation:
- missing API key, or the firm list cannot be loaded: the pass aborts.
- provider or store failure for one firm: recorded in that firm's result,
  the pass continues.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from ..core.errors import MissingApiKeyError, StoreError, SyncError
from ..db.migrations import FIRMS_TABLE, PAYOUTS_TABLE
from ..payouts.models import Firm, Payout
from ..payouts.processor import PayoutRules, latest_payout, process_payouts
from ..providers.base import RawTransaction
from ..providers.history import HistoryFetcher
from ..store.backend import Store, eq, lt
from ..timeutils import now_utc, parse_iso, to_iso

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS_DELAY_S = 0.5
DEFAULT_FIRM_DELAY_S = 1.0
DEFAULT_RETENTION_HOURS = 24


@dataclass
class FirmSyncResult:
    firm_id: str
    new_payouts: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CleanupResult:
    deleted: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SyncSummary:
    firms: int = 0
    total_payouts: int = 0
    errors: List[Dict[str, Optional[str]]] = field(default_factory=list)
    deleted: int = 0
    duration_s: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PayoutSyncService:
    """
    Orchestrates per-firm and all-firm payout syncs against a Store.

    The history fetcher (and through it the explorer client, circuit breaker
    and usage tracker) is injected so one instance serves the whole process.
    """

    def __init__(
        self,
        store: Store,
        history: HistoryFetcher,
        *,
        api_key: Optional[str],
        rules: Optional[PayoutRules] = None,
        address_delay_s: float = DEFAULT_ADDRESS_DELAY_S,
        firm_delay_s: float = DEFAULT_FIRM_DELAY_S,
        retention_hours: float = DEFAULT_RETENTION_HOURS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.store = store
        self.history = history
        self.api_key = api_key
        self.rules = rules or PayoutRules()
        self.address_delay_s = address_delay_s
        self.firm_delay_s = firm_delay_s
        self.retention_hours = retention_hours
        self._sleep = sleep
        self._clock = clock

    def _require_api_key(self) -> None:
        if not self.api_key:
            logger.error("Missing explorer API key; set EXPLORER_API_KEY or explorer.api_key in config.yaml")
            raise MissingApiKeyError()

    def _fetch_firm_transactions(self, firm: Firm) -> tuple:
        all_native: List[RawTransaction] = []
        all_tokens: List[RawTransaction] = []
        for i, address in enumerate(firm.addresses):
            if i > 0 and self.address_delay_s > 0:
                self._sleep(self.address_delay_s)
            native, tokens = self.history.fetch_recent(address)
            all_native.extend(native)
            all_tokens.extend(tokens)
        return all_native, all_tokens

    def sync_firm_payouts(self, firm: Union[Firm, Dict[str, Any]]) -> FirmSyncResult:
        """
        Sync the trailing window of payouts for one firm.

        Raises MissingApiKeyError when no key is configured; every other
        failure is captured in the returned result's error.
        """
        self._require_api_key()
        if not isinstance(firm, Firm):
            try:
                firm = Firm.from_row(firm)
            except (KeyError, TypeError, ValueError) as exc:
                firm_id = str(firm.get("id")) if isinstance(firm, dict) else repr(firm)
                logger.error("Invalid firm row firm=%s: %s: %s", firm_id, type(exc).__name__, exc)
                return FirmSyncResult(firm_id=firm_id, error=f"Invalid firm row: {exc}")
        result = FirmSyncResult(firm_id=firm.id)

        try:
            logger.info("Starting sync firm=%s name=%s addresses=%d", firm.id, firm.name, len(firm.addresses))
            native, tokens = self._fetch_firm_transactions(firm)
            logger.info("Fetched txs firm=%s native=%d token=%d", firm.id, len(native), len(tokens))

            payouts = process_payouts(native, tokens, firm.addresses, firm.id, rules=self.rules, now=self._clock())
            logger.info("Processed payouts firm=%s count=%d", firm.id, len(payouts))
            if not payouts:
                return result

            try:
                self.store.upsert(PAYOUTS_TABLE, [p.to_row() for p in payouts], on_conflict="tx_hash")
            except StoreError as exc:
                raise StoreError(f"Upsert failed: {exc}") from exc
            result.new_payouts = len(payouts)

            latest = latest_payout(payouts)
            if latest is not None:
                self.update_firm_last_payout(firm.id, latest)
            logger.info("Synced payouts firm=%s count=%d", firm.id, len(payouts))
        except Exception as exc:
            logger.error("Error syncing firm=%s name=%s: %s: %s", firm.id, firm.name, type(exc).__name__, exc)
            result.error = str(exc)

        return result

    @staticmethod
    def _stored_last_payout_at(firm_id: str, value: Any) -> Optional[datetime]:
        """Stored last_payout_at as a datetime; unparseable values count as absent."""
        if not value:
            return None
        try:
            return parse_iso(str(value))
        except ValueError:
            logger.warning("Ignoring unparseable last_payout_at firm=%s value=%r", firm_id, value)
            return None

    def update_firm_last_payout(self, firm_id: str, latest: Payout) -> None:
        """
        Record latest as the firm's last payout when it is newer than the stored one.
        last_synced_at/updated_at are written either way. Store errors are logged.
        """
        now_iso = to_iso(self._clock())
        values: Dict[str, Any] = {"last_synced_at": now_iso, "updated_at": now_iso}
        try:
            rows = self.store.select(FIRMS_TABLE, columns=["last_payout_at"], filters=[eq("id", firm_id)], limit=1)
            existing = self._stored_last_payout_at(firm_id, rows[0].get("last_payout_at") if rows else None)
            if existing is None or parse_iso(latest.timestamp) > existing:
                values.update(
                    {
                        "last_payout_at": latest.timestamp,
                        "last_payout_amount": float(latest.amount),
                        "last_payout_tx_hash": latest.tx_hash,
                        "last_payout_method": latest.payment_method.value,
                    }
                )
            self.store.update(FIRMS_TABLE, values, filters=[eq("id", firm_id)])
        except StoreError as exc:
            logger.error("Failed to update firm=%s last payout: %s", firm_id, exc)

    def cleanup_old_payouts(self, hours: Optional[float] = None) -> CleanupResult:
        """Delete ledger rows older than now - hours. Never raises on store errors."""
        hours = self.retention_hours if hours is None else hours
        cutoff = to_iso(self._clock() - timedelta(hours=hours))
        logger.info("Cleaning up payouts older than %s", cutoff)
        try:
            deleted = self.store.delete(PAYOUTS_TABLE, filters=[lt("timestamp", cutoff)])
        except StoreError as exc:
            logger.error("Cleanup failed: %s", exc)
            return CleanupResult(deleted=0, error=str(exc))
        logger.info("Cleaned up %d old payouts", deleted)
        return CleanupResult(deleted=deleted)

    def load_firms(self) -> List[Dict[str, Any]]:
        """
        Raw firm rows. Rows are parsed per firm during the pass so one
        malformed row fails only that firm.
        """
        try:
            return self.store.select(FIRMS_TABLE, columns=["id", "name", "addresses"], order_by="id")
        except StoreError as exc:
            raise SyncError(f"Failed to fetch firms: {exc}") from exc

    def sync_all_firms(self) -> SyncSummary:
        """
        One full pass: every firm, then retention cleanup.
        Raises SyncError if firms cannot be loaded, MissingApiKeyError without a key.
        """
        start = time.monotonic()
        self._require_api_key()
        logger.info("Starting full sync")

        firms = self.load_firms()
        if not firms:
            logger.info("No firms found in store")
            return SyncSummary()

        logger.info("Found %d firms to sync", len(firms))
        results: List[FirmSyncResult] = []
        for i, firm in enumerate(firms):
            if i > 0 and self.firm_delay_s > 0:
                self._sleep(self.firm_delay_s)
            results.append(self.sync_firm_payouts(firm))

        cleanup = self.cleanup_old_payouts(self.retention_hours)

        summary = SyncSummary(
            firms=len(firms),
            total_payouts=sum(r.new_payouts for r in results),
            errors=[{"firm_id": r.firm_id, "error": r.error} for r in results if r.error],
            deleted=cleanup.deleted,
            duration_s=round(time.monotonic() - start, 3),
        )
        logger.info(
            "Sync complete: firms=%d payouts=%d errors=%d deleted=%d duration=%.1fs",
            summary.firms, summary.total_payouts, len(summary.errors), summary.deleted, summary.duration_s,
        )
        if summary.errors:
            logger.warning("Sync had errors: %s", summary.errors)
        return summary

    def backfill_firm_payouts(self, firm: Union[Firm, Dict[str, Any]], since: datetime) -> List[Payout]:
        """
        Full-history payouts for one firm from since up to now, via the
        paginating fetcher. Does not write to the rolling ledger.
        """
        self._require_api_key()
        if not isinstance(firm, Firm):
            firm = Firm.from_row(firm)
        cutoff = int(since.timestamp())
        native: List[RawTransaction] = []
        tokens: List[RawTransaction] = []
        for i, address in enumerate(firm.addresses):
            if i > 0 and self.address_delay_s > 0:
                self._sleep(self.address_delay_s)
            native.extend(self.history.fetch_all_native_transactions(address, cutoff_timestamp=cutoff))
            tokens.extend(self.history.fetch_all_token_transactions(address, cutoff_timestamp=cutoff))
        payouts = process_payouts(
            native, tokens, firm.addresses, firm.id, rules=self.rules, now=self._clock(), since=since
        )
        logger.info("Backfilled firm=%s since=%s payouts=%d", firm.id, to_iso(since), len(payouts))
        return payouts
