"""
Database layer: schema migrations for the firm table and the rolling payout ledger.
"""

from __future__ import annotations

from .migrations import FIRMS_TABLE, PAYOUTS_TABLE, run_migrations

__all__ = ["run_migrations", "FIRMS_TABLE", "PAYOUTS_TABLE"]
