"""
Block-explorer provider (Etherscan V2 API, Arbitrum chain).

  GET https://api.etherscan.io/v2/api?chainid=42161&module=account&action=txlist&address=...
  GET https://api.etherscan.io/v2/api?chainid=42161&module=account&action=tokentx&address=...

Envelope: {"status": "0"|"1", "message": str, "result": list|str}.
status "1" carries the transaction list; status "0" is either "no data"
(empty result) or an error that parse_explorer_response classifies.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from ..core.errors import InvalidApiKeyError, RateLimitError
from .base import RawTransaction, TxKind
from .resilience import CircuitBreaker, RetryConfig, fetch_with_retry
from .usage import UsageTracker

logger = logging.getLogger(__name__)

EXPLORER_BASE_URL = "https://api.etherscan.io/v2/api"
ARBITRUM_CHAIN_ID = "42161"
HTTP_TIMEOUT_S = 10.0

_NO_DATA_MESSAGES = ("no transactions found", "no token transfers found", "no records found")


def parse_explorer_response(data: Any, address: str) -> List[Dict[str, Any]]:
    """
    Classify an explorer JSON envelope.

    Returns the raw row list, or raises RateLimitError / InvalidApiKeyError.
    Unrecognized status "0" messages resolve to an empty list with a warning.
    """
    if not isinstance(data, dict):
        raise RuntimeError(f"Unexpected explorer response type: {type(data).__name__}")

    result = data.get("result")
    if str(data.get("status")) != "0":
        return result if isinstance(result, list) else []

    message = str(data.get("message") or "")
    msg = message.lower()
    result_text = result.lower() if isinstance(result, str) else ""

    if any(m in msg for m in _NO_DATA_MESSAGES):
        return []

    if "rate limit" in msg or "rate limit" in result_text:
        raise RateLimitError(f"Rate limit for {address}: {result_text or message}")

    if "invalid api key" in msg or "invalid api key" in result_text or message == "NOTOK":
        raise InvalidApiKeyError(result if isinstance(result, str) and result else message or "Invalid API Key")

    logger.warning(
        "Unrecognized explorer status=0 for %s treated as no data: message=%r result=%r",
        address, message, result_text[:200],
    )
    return []


class ExplorerClient:
    """
    Fetch native and token transactions for an address.

    Every request is routed through the shared circuit breaker and retried via
    fetch_with_retry; each HTTP round-trip is counted by the shared usage tracker.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        circuit_breaker: CircuitBreaker,
        usage_tracker: UsageTracker,
        retry_config: Optional[RetryConfig] = None,
        base_url: str = EXPLORER_BASE_URL,
        chain_id: str = ARBITRUM_CHAIN_ID,
        timeout_s: float = HTTP_TIMEOUT_S,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_key = api_key
        self.circuit_breaker = circuit_breaker
        self.usage_tracker = usage_tracker
        self.retry_config = retry_config or RetryConfig()
        self._base_url = base_url
        self._chain_id = chain_id
        self._timeout_s = timeout_s
        self._session = session or requests.Session()
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return "arbiscan"

    def fetch_native_transactions(
        self, address: str, page: Optional[int] = None, offset: Optional[int] = None
    ) -> List[RawTransaction]:
        return self._fetch(TxKind.NATIVE, address, page, offset)

    def fetch_token_transactions(
        self, address: str, page: Optional[int] = None, offset: Optional[int] = None
    ) -> List[RawTransaction]:
        return self._fetch(TxKind.TOKEN, address, page, offset)

    def _params(self, kind: TxKind, address: str, page: Optional[int], offset: Optional[int]) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "chainid": self._chain_id,
            "module": "account",
            "action": kind.value,
            "address": address,
            "sort": "desc",
            "apikey": self.api_key or "",
        }
        if page is not None:
            params["page"] = page
        if offset is not None:
            params["offset"] = offset
        return params

    def _fetch(
        self, kind: TxKind, address: str, page: Optional[int], offset: Optional[int]
    ) -> List[RawTransaction]:
        params = self._params(kind, address, page, offset)

        def request() -> List[RawTransaction]:
            resp = self._session.get(self._base_url, params=params, timeout=self._timeout_s)
            if resp.status_code == 429:
                raise RateLimitError("HTTP 429")
            resp.raise_for_status()
            rows = parse_explorer_response(resp.json(), address)
            return [RawTransaction.from_api(r) for r in rows if isinstance(r, dict)]

        context = f"{kind.name.lower()} {address}"
        if page is not None:
            context += f" page={page}"
        return self.circuit_breaker.execute(
            lambda: fetch_with_retry(
                request,
                retry_config=self.retry_config,
                usage_tracker=self.usage_tracker,
                sleep=self._sleep,
                context=context,
            )
        )
