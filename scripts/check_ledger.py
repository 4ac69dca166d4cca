#!/usr/bin/env python3
"""
Check that every account balance agrees with its cash history.

Prints one JSON object per account (expected vs actual balance) and exits
with status 1 when any account diverges.  Run from the project root.

Usage:
  python3 scripts/check_ledger.py [--config settings.yaml] [--db-url ...] [--account ID]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile account balances with the cash history.")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    parser.add_argument("--db-url", type=str, default=None, help="Overrides the configured database URL")
    parser.add_argument("--account", type=str, default=None, help="Only check this account id")
    parser.add_argument("--all", action="store_true", help="Also print consistent accounts")
    args = parser.parse_args(argv)

    from dataclasses import replace

    from cashflow_kernel.config import load_settings
    from cashflow_kernel.db.engine import init_engine_from_settings, session_scope
    from cashflow_kernel.db.types import round_money
    from cashflow_kernel.selectors.ledger_selector import LedgerSelector

    settings = load_settings(args.config)
    if args.db_url:
        settings = replace(settings, database_url=args.db_url)
    init_engine_from_settings(settings)

    places = settings.display_decimal_places
    with session_scope() as session:
        rows = LedgerSelector(session).reconcile(args.account, decimal_places=places)

    diverged = [r for r in rows if not r.is_consistent]
    for row in rows:
        if row.is_consistent and not args.all:
            continue
        print(
            json.dumps(
                {
                    "account_id": str(row.account_id),
                    "account_name": row.account_name,
                    "expected_balance": str(round_money(row.expected_balance, places)),
                    "actual_balance": str(round_money(row.actual_balance, places)),
                    "difference": str(round_money(row.difference, places)),
                    "settled_advances": str(round_money(row.settled_advances, places)),
                    "consistent": row.is_consistent,
                }
            )
        )

    print(f"{len(rows)} accounts checked, {len(diverged)} diverged", file=sys.stderr)
    return 1 if diverged else 0


if __name__ == "__main__":
    sys.exit(main())
