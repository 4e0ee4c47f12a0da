"""
Payout ledger entities.

Payout is the normalized, persisted record (natural key tx_hash). Firm carries
the configured source addresses plus denormalized last-payout fields that the
sync pass maintains; firms themselves are owned elsewhere.
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple


class PaymentMethod(str, enum.Enum):
    """Payout rail a transfer was made on."""

    CRYPTO = "crypto"
    RISE = "rise"


@dataclass(frozen=True)
class Payout:
    """Immutable normalized outbound transfer from a firm address, in USD."""

    tx_hash: str
    firm_id: str
    amount: Decimal
    payment_method: PaymentMethod
    timestamp: str
    from_address: Optional[str] = None
    to_address: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "firm_id": self.firm_id,
            "amount": float(self.amount),
            "payment_method": self.payment_method.value,
            "timestamp": self.timestamp,
            "from_address": self.from_address,
            "to_address": self.to_address,
        }


def _parse_addresses(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return ()
        if value.startswith("["):
            value = json.loads(value)
        else:
            value = [a for a in value.split(",")]
    return tuple(str(a).strip() for a in value if str(a).strip())


@dataclass(frozen=True)
class Firm:
    id: str
    name: Optional[str] = None
    addresses: Tuple[str, ...] = field(default_factory=tuple)
    last_payout_at: Optional[str] = None
    last_payout_amount: Optional[float] = None
    last_payout_tx_hash: Optional[str] = None
    last_payout_method: Optional[str] = None
    last_synced_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Firm":
        """
        Build from a store row; addresses may be a JSON array, comma list, or sequence.
        Raises ValueError when a JSON address list is malformed.
        """
        return cls(
            id=str(row["id"]),
            name=row.get("name"),
            addresses=_parse_addresses(row.get("addresses")),
            last_payout_at=row.get("last_payout_at"),
            last_payout_amount=row.get("last_payout_amount"),
            last_payout_tx_hash=row.get("last_payout_tx_hash"),
            last_payout_method=row.get("last_payout_method"),
            last_synced_at=row.get("last_synced_at"),
        )
