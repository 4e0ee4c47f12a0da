"""
Idempotent database migrations.

All schema changes use CREATE TABLE IF NOT EXISTS so they can be re-run
safely at any time.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

FIRMS_TABLE = "firms"
PAYOUTS_TABLE = "recent_payouts"


def run_migrations(conn: sqlite3.Connection) -> None:
    """
    Apply all schema migrations idempotently.

    Safe to call on every startup: only creates what's missing.
    """
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {FIRMS_TABLE} (
            id TEXT PRIMARY KEY,
            name TEXT,
            addresses TEXT NOT NULL DEFAULT '[]',
            last_payout_at TEXT,
            last_payout_amount REAL,
            last_payout_tx_hash TEXT,
            last_payout_method TEXT,
            last_synced_at TEXT,
            updated_at TEXT
        );
        """
    )

    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {PAYOUTS_TABLE} (
            tx_hash TEXT PRIMARY KEY,
            firm_id TEXT NOT NULL,
            amount REAL NOT NULL,
            payment_method TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            from_address TEXT,
            to_address TEXT
        );
        """
    )
    conn.execute(f"CREATE INDEX IF NOT EXISTS idx_recent_payouts_ts ON {PAYOUTS_TABLE}(timestamp);")
    conn.execute(
        f"CREATE INDEX IF NOT EXISTS idx_recent_payouts_firm_ts ON {PAYOUTS_TABLE}(firm_id, timestamp);"
    )
    conn.commit()
    logger.debug("Migrations applied")
