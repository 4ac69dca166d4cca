"""
LedgerSelector tests.

Tests cover:
- Filtered cash-history listings, newest first
- Running balances per account and for mixed listings
- Daily summary derived backward from current balances
- Ledger-vs-balance reconciliation, including settled advances
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from cashflow_kernel.domain.classification import SourceType
from cashflow_kernel.exceptions import AccountNotFoundError
from cashflow_kernel.models.account import Account
from cashflow_kernel.selectors.ledger_selector import LedgerFilter, LedgerSelector


@pytest.fixture
def selector(session) -> LedgerSelector:
    return LedgerSelector(session)


@pytest.fixture
def two_days(ledger, clock, cash_account, bank_account, actor):
    """
    Day 1: cash-in 20,000 to cash, transfer 30,000 cash -> bank,
    expense 5,000 from bank.  Day 2: cash-out 10,000 from cash.
    """
    ledger.cash_in(cash_account.id, "20000", "Penjualan tunai", actor)
    clock.advance(60)
    ledger.transfer(cash_account.id, bank_account.id, "30000", "Setor", actor)
    clock.advance(60)
    ledger.record_expense("Tinta", "5000", bank_account.id, "Operasional", actor)
    clock.set_time(datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc))
    ledger.cash_out(cash_account.id, "10000", "Ambil kas", actor)


class TestListEntries:
    def test_newest_first(self, selector, two_days):
        entries = selector.list_entries()
        assert [e.seq for e in entries] == sorted((e.seq for e in entries), reverse=True)
        assert entries[0].source_type is SourceType.MANUAL_CASH_OUT
        assert len(entries) == 5

    def test_filter_by_account(self, selector, two_days, bank_account):
        entries = selector.list_entries(LedgerFilter(account_id=bank_account.id))
        assert [e.source_type for e in entries] == [SourceType.EXPENSE_PAYMENT, SourceType.TRANSFER_IN]
        assert all(e.account_name == "Bank BCA" for e in entries)

    def test_filter_by_source_type(self, selector, two_days):
        entries = selector.list_entries(LedgerFilter(source_type="transfer_out"))
        assert len(entries) == 1
        assert entries[0].signed_amount == Decimal("-30000")

    def test_filter_by_date(self, selector, two_days):
        day1 = selector.list_entries(LedgerFilter(date_from=date(2024, 1, 1), date_to=date(2024, 1, 1)))
        day2 = selector.list_entries(LedgerFilter(date_from=date(2024, 1, 2)))
        assert len(day1) == 4
        assert [e.source_type for e in day2] == [SourceType.MANUAL_CASH_OUT]

    def test_unknown_account(self, selector):
        with pytest.raises(AccountNotFoundError):
            selector.list_entries(LedgerFilter(account_id="nope"))


class TestRunningBalances:
    def test_single_account(self, selector, two_days, cash_account):
        rows = selector.running_balances(cash_account.id)

        assert [r.balance_after for r in rows] == [
            Decimal("80000"),
            Decimal("90000"),
            Decimal("120000"),
        ]
        assert rows[-1].balance_before == Decimal("100000")

    def test_mixed_listing(self, selector, two_days, cash_account, bank_account):
        entries = selector.list_entries()
        rows = selector.running_balances_for_listing(entries)

        by_account = {}
        for row in rows:
            by_account.setdefault(row.account_id, []).append(row.balance_after)
        assert by_account[cash_account.id] == [Decimal("80000"), Decimal("90000"), Decimal("120000")]
        assert by_account[bank_account.id] == [Decimal("75000"), Decimal("80000")]

    def test_empty_history(self, selector, cash_account):
        assert selector.running_balances(cash_account.id) == []


class TestDailySummary:
    def test_first_day(self, selector, two_days):
        summary = selector.daily_summary(date(2024, 1, 1))
        bank, cash = summary.accounts

        assert cash.account_name == "Kas Besar"
        assert cash.previous_balance == Decimal("100000")
        assert cash.inflow == Decimal("20000")
        assert cash.outflow == Decimal("30000")
        assert cash.closing_balance == Decimal("90000")

        assert bank.previous_balance == Decimal("50000")
        assert bank.inflow == Decimal("30000")
        assert bank.outflow == Decimal("5000")
        assert bank.closing_balance == Decimal("75000")

        # Transfers move money between accounts and are left out of totals.
        assert summary.total_inflow == Decimal("20000")
        assert summary.total_outflow == Decimal("5000")
        assert summary.total_net == Decimal("15000")
        assert summary.total_previous_balance == Decimal("150000")
        assert summary.total_closing_balance == Decimal("165000")

    def test_second_day(self, selector, two_days):
        summary = selector.daily_summary(date(2024, 1, 2))
        bank, cash = summary.accounts

        assert cash.previous_balance == Decimal("90000")
        assert cash.outflow == Decimal("10000")
        assert cash.closing_balance == Decimal("80000")
        assert bank.previous_balance == bank.closing_balance == Decimal("75000")
        assert summary.total_outflow == Decimal("10000")

    def test_quiet_day(self, selector, two_days):
        summary = selector.daily_summary(date(2024, 1, 3))
        assert summary.total_inflow == 0 and summary.total_outflow == 0
        assert [a.net for a in summary.accounts] == [0, 0]


class TestReconcile:
    def test_consistent_after_mixed_operations(self, selector, ledger, two_days, cash_account, actor):
        advance = ledger.issue_advance("EMP-1", "Budi", "20000", cash_account.id, None, actor)
        ledger.repay_advance(advance.id, "20000", actor)

        rows = {r.account_id: r for r in selector.reconcile()}
        cash = rows[cash_account.id]
        assert cash.is_consistent
        assert cash.settled_advances == Decimal("20000")
        assert cash.actual_balance == Decimal("60000")
        assert all(r.is_consistent for r in rows.values())

    def test_detects_tampered_balance(self, session, selector, two_days, cash_account):
        session.execute(
            update(Account)
            .where(Account.id == cash_account.id)
            .values(balance=Account.balance + 1)
            .execution_options(synchronize_session=False)
        )

        [row] = selector.reconcile(cash_account.id)
        assert not row.is_consistent
        assert row.difference == Decimal("1")
        assert row.expected_balance == Decimal("80000")
