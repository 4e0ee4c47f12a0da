"""
Ledger aggregates for operators: payouts per firm in the rolling window and
each firm's denormalized last-payout fields.
Use: payout-ledger status [--db PATH] [--json]
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from payout_ledger import config
from payout_ledger.core.errors import StoreError
from payout_ledger.db.migrations import FIRMS_TABLE, PAYOUTS_TABLE, run_migrations
from payout_ledger.store.backend import Store, eq
from payout_ledger.store.sqlite_backend import SQLiteStore


def collect_status(store: Store) -> Dict[str, Any]:
    """Per-firm ledger counts and last-payout info, plus the ledger total."""
    firms = store.select(
        FIRMS_TABLE,
        columns=[
            "id",
            "name",
            "last_payout_at",
            "last_payout_amount",
            "last_payout_method",
            "last_synced_at",
        ],
        order_by="id",
    )
    rows: List[Dict[str, Any]] = []
    for firm in firms:
        rows.append({**firm, "ledger_payouts": store.count(PAYOUTS_TABLE, filters=[eq("firm_id", firm["id"])])})
    return {"firms": rows, "ledger_payouts": store.count(PAYOUTS_TABLE)}


def _print_table(status: Dict[str, Any]) -> None:
    print(f"{'firm':<24} {'payouts':>8}  {'last payout':<26} {'amount':>12}  {'method':<8} last synced")
    for r in status["firms"]:
        amount = r.get("last_payout_amount")
        print(
            f"{str(r['id']):<24} {r['ledger_payouts']:>8}  {str(r.get('last_payout_at') or '-'):<26} "
            f"{(f'{amount:,.2f}' if amount is not None else '-'):>12}  "
            f"{str(r.get('last_payout_method') or '-'):<8} {r.get('last_synced_at') or '-'}"
        )
    print(f"total ledger payouts: {status['ledger_payouts']}")


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(prog="payout-ledger status", description="Print ledger aggregates per firm.")
    ap.add_argument("--db", default=None, help="DB path (default: db.path from config.yaml)")
    ap.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    args = ap.parse_args(argv)

    store = SQLiteStore.open(args.db or config.db_path(), busy_timeout_ms=config.db_busy_timeout_ms())
    try:
        run_migrations(store.conn)
        status = collect_status(store)
    except StoreError as e:
        print(f"Status failed: {e}", file=sys.stderr)
        return 1
    finally:
        store.close()

    if args.json:
        print(json.dumps(status, indent=2))
    else:
        _print_table(status)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
