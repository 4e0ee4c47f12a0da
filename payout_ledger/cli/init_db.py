"""
Initialize a local SQLite DB: create file, run migrations, optionally seed firms.
Use: payout-ledger init [--db PATH] [--firms firms.yaml]

Seed file shape:
    firms:
      - id: fundednext
        name: FundedNext
        addresses: ["0xabc...", "0xdef..."]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from payout_ledger import config
from payout_ledger.cli import add_logging_args, configure_logging
from payout_ledger.core.errors import StoreError
from payout_ledger.db.migrations import FIRMS_TABLE, run_migrations
from payout_ledger.store.sqlite_backend import SQLiteStore

logger = logging.getLogger(__name__)


def load_firm_seed(path: Path) -> List[Dict[str, Any]]:
    """Read firm rows from a seed YAML. Rows without id or addresses are rejected."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    firms = data.get("firms", []) if isinstance(data, dict) else data
    rows: List[Dict[str, Any]] = []
    for item in firms or []:
        if not isinstance(item, dict) or not item.get("id"):
            raise ValueError(f"Firm entry without id: {item!r}")
        addresses = item.get("addresses") or []
        if not addresses:
            raise ValueError(f"Firm {item['id']} has no addresses")
        rows.append(
            {
                "id": str(item["id"]),
                "name": item.get("name"),
                "addresses": json.dumps([str(a) for a in addresses]),
            }
        )
    return rows


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(
        prog="payout-ledger init",
        description="Create local SQLite DB, run migrations, optionally seed firms.",
    )
    ap.add_argument("--db", default=None, help="DB path (default: db.path from config.yaml)")
    ap.add_argument("--firms", default=None, help="YAML file with firms to upsert")
    add_logging_args(ap)
    args = ap.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    db_path = args.db or config.db_path()
    try:
        store = SQLiteStore.open(db_path, busy_timeout_ms=config.db_busy_timeout_ms())
    except Exception as e:
        print(f"Cannot open DB {db_path}: {e}", file=sys.stderr)
        return 1
    try:
        run_migrations(store.conn)
        if args.firms:
            rows = load_firm_seed(Path(args.firms))
            written = store.upsert(FIRMS_TABLE, rows, on_conflict="id")
            logger.info("Seeded firms from %s: %s", args.firms, [r["id"] for r in rows])
            print(f"Seeded {written} firms")
    except (ValueError, OSError, yaml.YAMLError) as e:
        print(f"Invalid firm seed: {e}", file=sys.stderr)
        return 2
    except StoreError as e:
        print(f"Init failed: {e}", file=sys.stderr)
        return 1
    finally:
        store.close()
    print(f"Initialized {db_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
