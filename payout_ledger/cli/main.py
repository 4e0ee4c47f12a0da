"""
Top-level CLI dispatcher: payout-ledger <command> [args...].
All commands dispatch to package CLI modules.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

_COMMANDS = {
    "init": "Create the DB, run migrations, optionally seed firms",
    "sync": "Run one payout sync pass (or loop with --interval)",
    "cleanup": "Delete ledger rows older than the retention window",
    "status": "Print ledger aggregates per firm",
    "backfill": "Write full-history payouts for a firm as monthly JSON files",
}


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="payout-ledger",
        description="Prop-firm payout ledger sync CLI",
    )
    subparsers = parser.add_subparsers(dest="command", help="command")
    for name, help_text in _COMMANDS.items():
        subparsers.add_parser(name, help=help_text, add_help=False)

    args, rest = parser.parse_known_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    cmd = args.command

    if cmd == "init":
        from payout_ledger.cli import init_db as mod

        return mod.main(rest)
    if cmd == "sync":
        from payout_ledger.cli import sync as mod

        return mod.main(rest)
    if cmd == "cleanup":
        from payout_ledger.cli import sync as mod

        return mod.main_cleanup(rest)
    if cmd == "status":
        from payout_ledger.cli import status as mod

        return mod.main(rest)
    if cmd == "backfill":
        from payout_ledger.cli import backfill as mod

        return mod.main(rest)

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
