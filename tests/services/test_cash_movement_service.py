"""CashMovementService tests: manual cash in/out, deletion, balance corrections."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from cashflow_kernel.domain.classification import SourceType
from cashflow_kernel.exceptions import (
    InsufficientBalanceError,
    LedgerEntryNotDeletableError,
    LedgerEntryNotFoundError,
)
from cashflow_kernel.models.ledger_entry import LedgerEntry
from cashflow_kernel.services.cash_movement_service import CashMovementService
from cashflow_kernel.services.expense_service import ExpenseLifecycleManager
from cashflow_kernel.services.ledger_entry_store import LedgerEntryStore


@pytest.fixture
def movements(session, clock) -> CashMovementService:
    return CashMovementService(session, clock)


class TestCashInOut:
    def test_cash_in(self, movements, cash_account, actor, balance_of):
        entry = movements.cash_in(cash_account.id, "25000", "Modal tambahan", actor)

        assert entry.source_type == SourceType.MANUAL_CASH_IN.value
        assert entry.direction == "inflow"
        assert entry.description == "Modal tambahan"
        assert balance_of(cash_account.id) == Decimal("125000")

    def test_cash_out(self, movements, cash_account, actor, balance_of):
        entry = movements.cash_out(cash_account.id, "40000", "Ambil kas", actor)

        assert entry.direction == "outflow"
        assert balance_of(cash_account.id) == Decimal("60000")

    def test_cash_out_floored_at_zero(self, session, movements, cash_account, actor, balance_of):
        with pytest.raises(InsufficientBalanceError):
            movements.cash_out(cash_account.id, "100001", "", actor)

        assert balance_of(cash_account.id) == Decimal("100000")
        count = session.execute(
            select(func.count()).where(LedgerEntry.account_id == cash_account.id)
        ).scalar_one()
        assert count == 0

    def test_each_movement_has_its_own_reference(self, movements, cash_account, actor):
        first = movements.cash_in(cash_account.id, "1", "", actor)
        second = movements.cash_in(cash_account.id, "1", "", actor)
        assert first.reference_id != second.reference_id
        assert second.seq > first.seq


class TestDelete:
    def test_delete_cash_in_reverses_balance(self, session, movements, cash_account, actor, balance_of):
        entry = movements.cash_in(cash_account.id, "25000", "", actor)
        movements.delete(entry.id, actor)

        assert balance_of(cash_account.id) == Decimal("100000")
        with pytest.raises(LedgerEntryNotFoundError):
            LedgerEntryStore(session).get(entry.id)

    def test_delete_cash_out_reverses_balance(self, movements, cash_account, actor, balance_of):
        entry = movements.cash_out(cash_account.id, "100000", "", actor)
        movements.delete(entry.id, actor)
        assert balance_of(cash_account.id) == Decimal("100000")

    def test_delete_cash_in_floored_at_zero(self, movements, cash_account, actor, balance_of):
        entry = movements.cash_in(cash_account.id, "1000", "", actor)
        movements.cash_out(cash_account.id, "100500", "", actor)

        with pytest.raises(InsufficientBalanceError):
            movements.delete(entry.id, actor)

        assert balance_of(cash_account.id) == Decimal("500")
        assert LedgerEntryStore(movements.session).get(entry.id).amount == Decimal("1000")

    def test_lifecycle_entries_not_deletable(self, session, clock, movements, cash_account, actor, balance_of):
        expense = ExpenseLifecycleManager(session, clock).record(
            "Tinta", "500", cash_account.id, "Operasional", actor
        )
        entry = LedgerEntryStore(session).find_by_reference(expense.id, SourceType.EXPENSE_PAYMENT)[0]

        with pytest.raises(LedgerEntryNotDeletableError) as exc_info:
            movements.delete(entry.id, actor)

        assert exc_info.value.source_type == "expense_payment"
        assert balance_of(cash_account.id) == Decimal("99500")

    def test_unknown_entry(self, movements, actor):
        with pytest.raises(LedgerEntryNotFoundError):
            movements.delete(uuid4(), actor)


class TestCorrectBalance:
    def test_upward_correction(self, movements, cash_account, actor, balance_of):
        entry = movements.correct_balance(cash_account.id, "100750", "hitung fisik", actor)

        assert entry.source_type == SourceType.MANUAL_CASH_IN.value
        assert entry.amount == Decimal("750")
        assert entry.description == "Balance correction: hitung fisik"
        assert balance_of(cash_account.id) == Decimal("100750")

    def test_downward_correction_may_reach_negative(self, movements, cash_account, actor, balance_of):
        entry = movements.correct_balance(cash_account.id, "-200", "selisih", actor)

        assert entry.source_type == SourceType.MANUAL_CASH_OUT.value
        assert entry.amount == Decimal("100200")
        assert balance_of(cash_account.id) == Decimal("-200")

    def test_no_difference(self, movements, cash_account, actor):
        assert movements.correct_balance(cash_account.id, "100000", "ok", actor) is None
