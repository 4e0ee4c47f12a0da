"""
Block-explorer ingestion: typed transactions, resilient HTTP client,
circuit breaker, daily usage budget, and history pagination.
"""

from __future__ import annotations

from .base import RawTransaction, TransactionSource, TxKind
from .explorer import ExplorerClient, parse_explorer_response
from .history import HistoryFetcher
from .resilience import BreakerState, CircuitBreaker, CircuitState, RetryConfig, fetch_with_retry
from .usage import Usage, UsageTracker

__all__ = [
    "RawTransaction",
    "TransactionSource",
    "TxKind",
    "ExplorerClient",
    "parse_explorer_response",
    "HistoryFetcher",
    "BreakerState",
    "CircuitBreaker",
    "CircuitState",
    "RetryConfig",
    "fetch_with_retry",
    "Usage",
    "UsageTracker",
]
