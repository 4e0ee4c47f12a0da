"""
Stable facade: shared exception types only. No providers, store, or cli.
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    CircuitOpenError,
    ExplorerError,
    InvalidApiKeyError,
    MissingApiKeyError,
    PayoutLedgerError,
    RateLimitError,
    StoreError,
    SyncError,
)

# Do not add exports without updating __all__.
__all__ = [
    "PayoutLedgerError",
    "MissingApiKeyError",
    "ExplorerError",
    "InvalidApiKeyError",
    "RateLimitError",
    "CircuitOpenError",
    "StoreError",
    "SyncError",
]
