#!/usr/bin/env python3
"""
Seed the database with demo accounts and a day of cash movements.

Drops all tables, recreates them, and books a small run of operations
through the CashLedger facade: opening balances, a sale deposit, a
transfer, an expense and an employee advance with a partial repayment.

Usage:
  python3 scripts/seed_data.py [--config settings.yaml] [--db-url ...]
"""

from __future__ import annotations

import argparse
import sys
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed demo cash-flow data.")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file")
    parser.add_argument("--db-url", type=str, default=None)
    args = parser.parse_args(argv)

    from dataclasses import replace

    from cashflow_kernel.config import load_settings
    from cashflow_kernel.db.engine import (
        create_tables,
        drop_tables,
        init_engine_from_settings,
        session_scope,
    )
    from cashflow_kernel.domain.actor import Actor
    from cashflow_kernel.facade import CashLedger
    from cashflow_kernel.models.account import AccountType

    settings = load_settings(args.config)
    if args.db_url:
        settings = replace(settings, database_url=args.db_url)
    init_engine_from_settings(settings)

    drop_tables()
    create_tables()

    actor = Actor.system()
    with session_scope() as session:
        ledger = CashLedger(session)
        cash = ledger.create_account("Kas Besar", AccountType.ASSET, Decimal("5000000"), is_payment_account=True)
        bank = ledger.create_account("Bank BCA", AccountType.ASSET, Decimal("25000000"), is_payment_account=True)
        petty = ledger.create_account("Kas Kecil", AccountType.ASSET, Decimal("500000"))

        ledger.cash_in(cash.id, Decimal("1250000"), "Cash sales deposit", actor)
        ledger.transfer(cash.id, bank.id, Decimal("2000000"), "Daily deposit", actor)
        ledger.transfer(bank.id, petty.id, Decimal("300000"), "Petty cash top-up", actor)
        ledger.record_expense("Printer ink", Decimal("175000"), petty.id, "Operasional", actor)
        ledger.record_expense("Paper supplier PO-0042", Decimal("3400000"), bank.id, "Pembayaran PO", actor)

        advance = ledger.issue_advance("EMP-007", "Budi", Decimal("400000"), cash.id, "Medical", actor)
        ledger.repay_advance(advance.id, Decimal("150000"), actor)

        for account in ledger.list_accounts():
            print(f"  {account.name:<12} {account.balance:>18,.2f}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
