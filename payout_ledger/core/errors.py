"""
Shared exception types for payout_ledger.

Explorer errors are split by retry semantics: InvalidApiKeyError is never
retried, RateLimitError is retried with backoff, CircuitOpenError is raised
without contacting the provider at all.
"""

from __future__ import annotations


class PayoutLedgerError(Exception):
    """Base exception for payout_ledger; catch this for any package-raised error."""

    pass


class MissingApiKeyError(PayoutLedgerError):
    """No explorer API key configured. Fatal for a sync pass."""

    def __init__(self, message: str = "Missing explorer API key (set EXPLORER_API_KEY)") -> None:
        super().__init__(message)


class ExplorerError(PayoutLedgerError):
    """Typed failure reported by the block-explorer API."""

    pass


class InvalidApiKeyError(ExplorerError):
    """Provider rejected the API key. Never retried."""

    pass


class RateLimitError(ExplorerError):
    """Provider throttled the request (HTTP 429 or rate-limit message). Retryable."""

    pass


class CircuitOpenError(ExplorerError):
    """Circuit breaker is OPEN; the request was not sent."""

    def __init__(self, message: str = "Circuit breaker is open") -> None:
        super().__init__(message)


class StoreError(PayoutLedgerError):
    """Persistence layer failure (select/upsert/update/delete)."""

    pass


class SyncError(PayoutLedgerError):
    """Pass-level sync failure, e.g. the firm list could not be loaded."""

    pass


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
