"""
Explorer data contracts.

Raw transactions are returned via frozen dataclasses for immutability; they
mirror the provider's row shape and are never persisted as-is.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


class TxKind(enum.Enum):
    """Which explorer query produced a transaction."""

    NATIVE = "txlist"
    TOKEN = "tokentx"


def _to_int(x: Any) -> Optional[int]:
    if x is None or x == "":
        return None
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class RawTransaction:
    """Immutable provider-shape transaction (native transfer or token transfer event)."""

    hash: str
    from_address: Optional[str]
    to_address: Optional[str]
    value: str
    time_stamp: str
    token_symbol: Optional[str] = None
    token_decimal: Optional[str] = None

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "RawTransaction":
        symbol = row.get("tokenSymbol")
        decimal = row.get("tokenDecimal")
        return cls(
            hash=str(row.get("hash", "")),
            from_address=row.get("from") or None,
            to_address=row.get("to") or None,
            value=str(row.get("value", "0") or "0"),
            time_stamp=str(row.get("timeStamp", "0") or "0"),
            token_symbol=str(symbol) if symbol not in (None, "") else None,
            token_decimal=str(decimal) if decimal not in (None, "") else None,
        )

    @property
    def timestamp(self) -> int:
        """Unix seconds; 0 when the provider value is unparseable."""
        ts = _to_int(self.time_stamp)
        return ts if ts is not None else 0

    @property
    def decimals(self) -> Optional[int]:
        return _to_int(self.token_decimal)

    @property
    def is_token_transfer(self) -> bool:
        return self.token_symbol is not None


@runtime_checkable
class TransactionSource(Protocol):
    """Anything that can return one page of native or token transactions for an address."""

    def fetch_native_transactions(
        self, address: str, page: Optional[int] = None, offset: Optional[int] = None
    ) -> List[RawTransaction]:
        ...

    def fetch_token_transactions(
        self, address: str, page: Optional[int] = None, offset: Optional[int] = None
    ) -> List[RawTransaction]:
        ...
