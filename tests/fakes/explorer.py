"""
Fake explorer pieces: scripted transaction pages, scripted HTTP responses,
sleep/alert recorders. Deterministic; no live network.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import requests

from payout_ledger.alerts import AlertSink
from payout_ledger.providers.base import RawTransaction

WEI_PER_ETH = 10**18


def make_native_tx(
    tx_hash: str,
    from_address: str,
    timestamp: int,
    *,
    eth: float = 1.0,
    to_address: str = "0xtrader",
    value: Optional[str] = None,
) -> RawTransaction:
    return RawTransaction(
        hash=tx_hash,
        from_address=from_address,
        to_address=to_address,
        value=value if value is not None else str(int(round(eth * WEI_PER_ETH))),
        time_stamp=str(timestamp),
    )


def make_token_tx(
    tx_hash: str,
    from_address: str,
    timestamp: int,
    *,
    amount: float = 100.0,
    symbol: str = "USDC",
    decimals: int = 6,
    to_address: str = "0xtrader",
) -> RawTransaction:
    return RawTransaction(
        hash=tx_hash,
        from_address=from_address,
        to_address=to_address,
        value=str(int(round(amount * 10**decimals))),
        time_stamp=str(timestamp),
        token_symbol=symbol,
        token_decimal=str(decimals),
    )


class FakeExplorerSource:
    """
    TransactionSource returning scripted data per address.

    native/tokens map address -> list of pages (each page a list of txs).
    Unpaged calls (page=None) return the first page. Every call is recorded.
    """

    def __init__(
        self,
        native: Optional[Dict[str, List[List[RawTransaction]]]] = None,
        tokens: Optional[Dict[str, List[List[RawTransaction]]]] = None,
        *,
        fail_addresses: Sequence[str] = (),
    ) -> None:
        self._native = native or {}
        self._tokens = tokens or {}
        self._fail = set(fail_addresses)
        self.calls: List[tuple] = []

    def _page(self, pages: Dict[str, List[List[RawTransaction]]], address: str, page: Optional[int]) -> List[RawTransaction]:
        if address in self._fail:
            raise RuntimeError(f"simulated provider failure for {address}")
        data = pages.get(address, [])
        idx = (page or 1) - 1
        return list(data[idx]) if idx < len(data) else []

    def fetch_native_transactions(
        self, address: str, page: Optional[int] = None, offset: Optional[int] = None
    ) -> List[RawTransaction]:
        self.calls.append(("native", address, page, offset))
        return self._page(self._native, address, page)

    def fetch_token_transactions(
        self, address: str, page: Optional[int] = None, offset: Optional[int] = None
    ) -> List[RawTransaction]:
        self.calls.append(("token", address, page, offset))
        return self._page(self._tokens, address, page)


class FakeResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, payload: Any = None, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    """
    requests.Session stand-in. responses is consumed in order; an Exception
    entry is raised instead of returned. The last entry repeats once exhausted.
    """

    def __init__(self, responses: Sequence[Any]) -> None:
        self._responses = list(responses)
        self.requests: List[Dict[str, Any]] = []

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> FakeResponse:
        self.requests.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    """Sleep replacement that records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class RecordingAlertSink(AlertSink):
    """Collects alert texts synchronously."""

    def __init__(self) -> None:
        self.texts: List[str] = []

    def _deliver(self, text: str) -> None:
        self.texts.append(text)


class FakeClock:
    """Mutable clock for breaker tests: call returns the current value."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
