"""
One-off historical backfill: page through a firm's full explorer history back
to --since and write payouts grouped by UTC month as JSON files
(<out>/<firm_id>/<YYYY-MM>.json). The rolling ledger is not touched.

Use: payout-ledger backfill --firm fundednext --since 2025-01-01 [--out data/propfirms]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import requests

from payout_ledger.cli import add_logging_args, configure_logging
from payout_ledger.core.errors import PayoutLedgerError
from payout_ledger.db.migrations import FIRMS_TABLE
from payout_ledger.ingest import get_sync_context
from payout_ledger.payouts.models import Firm, Payout
from payout_ledger.store.backend import eq

logger = logging.getLogger(__name__)


def group_by_month(payouts: List[Payout]) -> Dict[str, List[Payout]]:
    months: Dict[str, List[Payout]] = defaultdict(list)
    for p in payouts:
        months[p.timestamp[:7]].append(p)
    return dict(months)


def write_month_files(firm_id: str, payouts: List[Payout], out_dir: Path) -> List[Path]:
    """Write one JSON file per month, payouts newest first. Returns written paths."""
    firm_dir = out_dir / firm_id
    firm_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for month, items in sorted(group_by_month(payouts).items()):
        items = sorted(items, key=lambda p: p.timestamp, reverse=True)
        doc = {
            "firm_id": firm_id,
            "month": month,
            "count": len(items),
            "total_usd": round(sum(float(p.amount) for p in items), 2),
            "payouts": [p.to_row() for p in items],
        }
        path = firm_dir / f"{month}.json"
        path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
        written.append(path)
    return written


def _parse_since(value: str) -> datetime:
    dt = datetime.strptime(value, "%Y-%m-%d" if len(value) > 7 else "%Y-%m")
    return dt.replace(tzinfo=timezone.utc)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(prog="payout-ledger backfill", description="Backfill historical payouts to JSON.")
    ap.add_argument("--firm", required=True, help="Firm id (must exist in the firms table)")
    ap.add_argument("--since", required=True, help="Start date, YYYY-MM or YYYY-MM-DD (UTC)")
    ap.add_argument("--out", default="data/propfirms", help="Output directory (default: data/propfirms)")
    ap.add_argument("--db", default=None, help="DB path (default: db.path from config.yaml)")
    add_logging_args(ap)
    args = ap.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    try:
        since = _parse_since(args.since)
    except ValueError:
        print(f"Invalid --since {args.since!r}; expected YYYY-MM or YYYY-MM-DD", file=sys.stderr)
        return 2

    with get_sync_context(args.db) as ctx:
        rows = ctx.store.select(FIRMS_TABLE, filters=[eq("id", args.firm)], limit=1)
        if not rows:
            print(f"Unknown firm {args.firm!r}", file=sys.stderr)
            return 2
        try:
            payouts = ctx.service.backfill_firm_payouts(Firm.from_row(rows[0]), since)
        except (PayoutLedgerError, requests.RequestException, ValueError) as e:
            logger.error("Backfill failed for %s: %s", args.firm, e)
            return 1

    paths = write_month_files(args.firm, payouts, Path(args.out))
    for p in paths:
        print(p)
    print(f"{len(payouts)} payouts in {len(paths)} month files")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
