"""
Payout sync entrypoints for the scheduler (cron) or a long-running loop.

  payout-ledger sync                  one pass, JSON summary on stdout
  payout-ledger sync --interval 600   one pass every 10 minutes until interrupted
  payout-ledger cleanup --hours 24    retention purge only
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import List, Optional

from payout_ledger.cli import add_logging_args, configure_logging
from payout_ledger.core.errors import PayoutLedgerError
from payout_ledger.ingest import SyncContext, get_sync_context
from payout_ledger.timeutils import now_utc_iso

logger = logging.getLogger(__name__)


def run_pass(ctx: SyncContext) -> int:
    """One sync pass; prints a JSON report. Returns 0 on success, 1 on pass-level failure."""
    started = now_utc_iso()
    try:
        summary = ctx.service.sync_all_firms()
    except PayoutLedgerError as e:
        logger.error("Sync failed: %s", e)
        print(json.dumps({"success": False, "error": str(e), "timestamp": started, **ctx.status()}))
        return 1
    print(json.dumps({"success": True, "timestamp": started, **summary.to_dict(), **ctx.status()}))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(prog="payout-ledger sync", description="Sync recent payouts for all firms.")
    ap.add_argument("--db", default=None, help="DB path (default: db.path from config.yaml)")
    ap.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between passes; omit for a single pass",
    )
    add_logging_args(ap)
    args = ap.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    with get_sync_context(args.db) as ctx:
        if args.interval is None:
            return run_pass(ctx)
        logger.info("Sync loop every %.0fs (Ctrl+C to stop)", args.interval)
        try:
            while True:
                run_pass(ctx)
                time.sleep(args.interval)
        except KeyboardInterrupt:
            logger.info("Stopped")
    return 0


def main_cleanup(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(prog="payout-ledger cleanup", description="Purge old ledger rows.")
    ap.add_argument("--db", default=None, help="DB path (default: db.path from config.yaml)")
    ap.add_argument("--hours", type=float, default=None, help="Retention window (default: sync.retention_hours)")
    add_logging_args(ap)
    args = ap.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    with get_sync_context(args.db) as ctx:
        result = ctx.service.cleanup_old_payouts(args.hours)
    print(json.dumps(result.to_dict()))
    return 0 if result.error is None else 1


if __name__ == "__main__":
    raise SystemExit(main())
