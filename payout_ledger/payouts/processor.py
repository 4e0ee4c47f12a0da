"""
Raw explorer transactions -> normalized payout records.

Pure transformation: no I/O, "now" is read once per call. Steps, in order:
direction filter, time-window filter, USD conversion, payment-method mapping
(unsupported tokens dropped), spam floor, dedup by tx_hash (first wins).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..providers.base import RawTransaction
from ..timeutils import from_unix, now_utc, to_iso
from .models import PaymentMethod, Payout

NATIVE_DECIMALS = 18
DEFAULT_TOKEN_DECIMALS = 18

DEFAULT_TOKEN_METHODS: Dict[str, PaymentMethod] = {
    "RISEPAY": PaymentMethod.RISE,
    "USDC": PaymentMethod.CRYPTO,
    "USDT": PaymentMethod.CRYPTO,
}


def _dec(x: Any) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x))


@dataclass(frozen=True)
class PayoutRules:
    """Conversion and filtering constants for payout classification."""

    window_hours: float = 24
    min_amount_usd: Decimal = Decimal("10")
    native_price_usd: Decimal = Decimal("2500")
    token_methods: Mapping[str, PaymentMethod] = field(default_factory=lambda: dict(DEFAULT_TOKEN_METHODS))
    # Symbols absent here are priced 1:1 with USD (stable-value tokens).
    token_prices: Mapping[str, Decimal] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "PayoutRules":
        methods = settings.get("token_methods") or {}
        prices = settings.get("token_prices") or {}
        return cls(
            window_hours=float(settings.get("window_hours", 24)),
            min_amount_usd=_dec(settings.get("min_amount_usd", 10)),
            native_price_usd=_dec(settings.get("native_price_usd", 2500)),
            token_methods={str(k).upper(): PaymentMethod(v) for k, v in methods.items()},
            token_prices={str(k).upper(): _dec(v) for k, v in prices.items()},
        )

    def token_price(self, symbol: str) -> Decimal:
        return self.token_prices.get(symbol, Decimal(1))


def _base_units(value: str, decimals: int) -> Optional[Decimal]:
    try:
        return Decimal(value).scaleb(-decimals)
    except (InvalidOperation, ValueError):
        return None


def _outbound(txs: Iterable[RawTransaction], sources: frozenset, cutoff: int) -> List[RawTransaction]:
    return [
        tx for tx in txs
        if tx.from_address and tx.from_address.lower() in sources and tx.timestamp >= cutoff
    ]


def _payout(tx: RawTransaction, firm_id: str, amount: Decimal, method: PaymentMethod) -> Payout:
    return Payout(
        tx_hash=tx.hash,
        firm_id=firm_id,
        amount=amount,
        payment_method=method,
        timestamp=to_iso(from_unix(tx.timestamp)),
        from_address=tx.from_address,
        to_address=tx.to_address,
    )


def process_payouts(
    native_txs: Sequence[RawTransaction],
    token_txs: Sequence[RawTransaction],
    firm_addresses: Sequence[str],
    firm_id: str,
    *,
    rules: Optional[PayoutRules] = None,
    now: Optional[datetime] = None,
    since: Optional[datetime] = None,
) -> List[Payout]:
    """
    Build the deduplicated payout list for one firm.

    Only transfers sent *from* one of firm_addresses count. The window is the
    trailing rules.window_hours up to now, or [since, now] when since is given.
    """
    rules = rules or PayoutRules()
    now = now or now_utc()
    start = since if since is not None else now - timedelta(hours=rules.window_hours)
    cutoff = int(start.timestamp())
    sources = frozenset(a.lower() for a in firm_addresses)

    candidates: List[Payout] = []

    for tx in _outbound(native_txs, sources, cutoff):
        amount = _base_units(tx.value, NATIVE_DECIMALS)
        if amount is None:
            continue
        candidates.append(_payout(tx, firm_id, amount * rules.native_price_usd, PaymentMethod.CRYPTO))

    for tx in _outbound(token_txs, sources, cutoff):
        symbol = (tx.token_symbol or "").upper()
        method = rules.token_methods.get(symbol)
        if method is None:
            continue
        decimals = tx.decimals if tx.decimals is not None else DEFAULT_TOKEN_DECIMALS
        amount = _base_units(tx.value, decimals)
        if amount is None:
            continue
        candidates.append(_payout(tx, firm_id, amount * rules.token_price(symbol), method))

    unique: Dict[str, Payout] = {}
    for p in candidates:
        if p.amount < rules.min_amount_usd:
            continue
        unique.setdefault(p.tx_hash, p)
    return list(unique.values())


def latest_payout(payouts: Iterable[Payout]) -> Optional[Payout]:
    """Most recent payout by timestamp (ties broken by tx_hash for determinism)."""
    return max(payouts, key=lambda p: (p.timestamp, p.tx_hash), default=None)
