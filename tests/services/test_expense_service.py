"""
ExpenseLifecycleManager unit tests.

Tests cover:
- Record: expense row, account debit, one entry typed by category
- Delete: reimbursement, entry removal, row deletion
- Delete refused when the expense has no cash-history entry
- Compensation when entry removal fails
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from cashflow_kernel.domain.classification import SourceType
from cashflow_kernel.exceptions import (
    AccountNotFoundError,
    ExpenseNotFoundError,
    InvalidAmountError,
    LedgerEntryNotFoundError,
)
from cashflow_kernel.models.expense import Expense
from cashflow_kernel.services.expense_service import ExpenseLifecycleManager
from cashflow_kernel.services.ledger_entry_store import LedgerEntryStore


@pytest.fixture
def expenses(session, clock) -> ExpenseLifecycleManager:
    return ExpenseLifecycleManager(session, clock)


def _expense_count(session) -> int:
    return session.execute(select(func.count()).select_from(Expense)).scalar_one()


class TestRecord:
    def test_debits_account_and_writes_entry(self, session, expenses, cash_account, actor, balance_of):
        expense = expenses.record("Tinta printer", Decimal("10000"), cash_account.id, "Operasional", actor)

        assert balance_of(cash_account.id) == Decimal("90000")
        assert expense.account_name == "Kas Besar"
        assert expense.expense_date == date(2024, 1, 1)

        entries = LedgerEntryStore(session).find_by_reference(expense.id, SourceType.EXPENSE_PAYMENT)
        assert len(entries) == 1
        assert entries[0].amount == Decimal("10000")
        assert entries[0].description == "Operasional: Tinta printer"
        assert entries[0].created_by_name == actor.display_name

    def test_purchase_order_payment(self, session, expenses, bank_account, actor):
        expense = expenses.record("PO-0042 kertas", "3400", bank_account.id, "Pembayaran PO", actor)

        store = LedgerEntryStore(session)
        assert store.find_by_reference(expense.id, SourceType.EXPENSE_PAYMENT) == []
        assert len(store.find_by_reference(expense.id, SourceType.PURCHASE_ORDER_PAYMENT)) == 1

    def test_may_overdraw(self, expenses, cash_account, actor, balance_of):
        expenses.record("Sewa mesin", "125000", cash_account.id, "Operasional", actor)
        assert balance_of(cash_account.id) == Decimal("-25000")

    def test_invalid_amount(self, session, expenses, cash_account, actor):
        with pytest.raises(InvalidAmountError):
            expenses.record("x", "-1", cash_account.id, "Operasional", actor)
        assert _expense_count(session) == 0

    def test_unknown_account(self, session, expenses, actor):
        with pytest.raises(AccountNotFoundError):
            expenses.record("x", "1", uuid4(), "Operasional", actor)
        assert _expense_count(session) == 0


class TestDelete:
    def test_reimburses_and_removes_entry(self, session, expenses, cash_account, actor, balance_of):
        expense = expenses.record("Tinta", "10000", cash_account.id, "Operasional", actor)
        deleted = expenses.delete(expense.id, actor)

        assert deleted.id == expense.id
        assert balance_of(cash_account.id) == Decimal("100000")
        assert LedgerEntryStore(session).find_by_reference(expense.id, SourceType.EXPENSE_PAYMENT) == []
        with pytest.raises(ExpenseNotFoundError):
            expenses.get(expense.id)

    def test_purchase_order_payment_entry_removed(self, session, expenses, bank_account, actor, balance_of):
        expense = expenses.record("PO-0042", "3400", bank_account.id, "Pembayaran PO", actor)
        expenses.delete(expense.id, actor)

        assert balance_of(bank_account.id) == Decimal("50000")
        store = LedgerEntryStore(session)
        assert store.find_by_reference(expense.id, SourceType.PURCHASE_ORDER_PAYMENT) == []

    def test_missing_entry_refuses_deletion(self, session, expenses, cash_account, actor, balance_of):
        expense = expenses.record("Tinta", "10000", cash_account.id, "Operasional", actor)
        store = LedgerEntryStore(session)
        for entry in store.find_by_reference(expense.id, SourceType.EXPENSE_PAYMENT):
            store.remove(entry.id)

        with pytest.raises(LedgerEntryNotFoundError) as exc_info:
            expenses.delete(expense.id, actor)

        assert exc_info.value.reference_id == str(expense.id)
        assert balance_of(cash_account.id) == Decimal("90000")
        assert expenses.get(expense.id) is not None

    def test_failed_entry_removal_restores_balance(
        self, session, expenses, cash_account, actor, balance_of, monkeypatch
    ):
        expense = expenses.record("Tinta", "10000", cash_account.id, "Operasional", actor)

        def failing_remove(self, entry_id):
            raise RuntimeError("row locked")

        monkeypatch.setattr(LedgerEntryStore, "remove", failing_remove)

        with pytest.raises(RuntimeError, match="row locked"):
            expenses.delete(expense.id, actor)

        monkeypatch.undo()
        assert balance_of(cash_account.id) == Decimal("90000")
        assert len(LedgerEntryStore(session).find_by_reference(expense.id, SourceType.EXPENSE_PAYMENT)) == 1
        assert _expense_count(session) == 1

    def test_unknown_expense(self, expenses, actor):
        with pytest.raises(ExpenseNotFoundError):
            expenses.delete(uuid4(), actor)
