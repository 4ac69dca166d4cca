"""
CashLedger -- the function-level API of the cash-flow kernel.

Responsibility:
    One object per session that exposes the operations used by the UI and
    reporting collaborators: account listings, cash history, advances,
    expenses, transfers, manual cash movements and running balances.

Architecture position:
    Outermost kernel layer.  Delegates writes to services/ and reads to
    selectors/.  Never commits; wrap calls in ``session_scope()``.

Usage:
    with session_scope() as session:
        ledger = CashLedger(session)
        ledger.transfer(cash_id, bank_id, Decimal("50000"), "deposit", actor)
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from cashflow_kernel.domain.actor import Actor
from cashflow_kernel.domain.clock import Clock, SystemClock
from cashflow_kernel.domain.running_balance import RunningBalance
from cashflow_kernel.models.account import AccountType
from cashflow_kernel.selectors.account_selector import AccountSelector, AccountSnapshot
from cashflow_kernel.selectors.advance_selector import AdvanceSelector, AdvanceView
from cashflow_kernel.selectors.expense_selector import ExpenseSelector, ExpenseView
from cashflow_kernel.selectors.ledger_selector import (
    DailySummary,
    LedgerEntryView,
    LedgerFilter,
    LedgerSelector,
    ReconciliationRow,
)
from cashflow_kernel.services.account_store import AccountStore
from cashflow_kernel.services.advance_service import AdvanceLifecycleManager
from cashflow_kernel.services.cash_movement_service import CashMovementService
from cashflow_kernel.services.expense_service import ExpenseLifecycleManager
from cashflow_kernel.services.transfer_service import TransferResult, TransferService


class CashLedger:
    """
    Facade over the kernel services and selectors.

    Write methods return read-side DTOs so that callers never hold ORM
    instances bound to the session.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

        self._accounts = AccountStore(session, self.clock)
        self._transfers = TransferService(session, self.clock)
        self._advances = AdvanceLifecycleManager(session, self.clock)
        self._expenses = ExpenseLifecycleManager(session, self.clock)
        self._cash = CashMovementService(session, self.clock)

        self._account_reads = AccountSelector(session)
        self._ledger_reads = LedgerSelector(session)
        self._advance_reads = AdvanceSelector(session)
        self._expense_reads = ExpenseSelector(session)

    # -- accounts ------------------------------------------------------------

    def list_accounts(self, payment_only: bool = False) -> list[AccountSnapshot]:
        return self._account_reads.list_accounts(payment_only=payment_only)

    def get_account(self, account_id: UUID | str) -> AccountSnapshot:
        return self._account_reads.get_account(account_id)

    def create_account(
        self,
        name: str,
        account_type: AccountType | str,
        initial_balance: Decimal | int | str = 0,
        is_payment_account: bool = False,
    ) -> AccountSnapshot:
        account = self._accounts.create(name, account_type, initial_balance, is_payment_account)
        return AccountSnapshot.from_model(account)

    def set_initial_balance(self, account_id: UUID | str, initial_balance: Decimal | int | str) -> AccountSnapshot:
        return AccountSnapshot.from_model(self._accounts.set_initial_balance(account_id, initial_balance))

    def update_account(
        self,
        account_id: UUID | str,
        name: str | None = None,
        is_payment_account: bool | None = None,
    ) -> AccountSnapshot:
        return AccountSnapshot.from_model(
            self._accounts.update_details(account_id, name=name, is_payment_account=is_payment_account)
        )

    def delete_account(self, account_id: UUID | str) -> None:
        self._accounts.delete(account_id)

    # -- cash history --------------------------------------------------------

    def list_ledger_entries(self, ledger_filter: LedgerFilter | None = None) -> list[LedgerEntryView]:
        return self._ledger_reads.list_entries(ledger_filter)

    def reconstruct_running_balances(
        self,
        account_id: UUID | str,
        entries: list[LedgerEntryView] | None = None,
    ) -> list[RunningBalance]:
        return self._ledger_reads.running_balances(account_id, entries)

    def daily_summary(self, day: date | None = None) -> DailySummary:
        return self._ledger_reads.daily_summary(day or self.clock.today())

    def reconcile(self, account_id: UUID | str | None = None) -> list[ReconciliationRow]:
        return self._ledger_reads.reconcile(account_id)

    # -- transfers -----------------------------------------------------------

    def transfer(
        self,
        from_account_id: UUID | str,
        to_account_id: UUID | str,
        amount: Decimal | int | str,
        description: str,
        actor: Actor,
    ) -> TransferResult:
        return self._transfers.transfer(from_account_id, to_account_id, amount, description, actor)

    def reverse_transfer(self, transfer_reference: str, actor: Actor) -> TransferResult:
        return self._transfers.reverse(transfer_reference, actor)

    # -- manual cash movements -----------------------------------------------

    def cash_in(self, account_id: UUID | str, amount: Decimal | int | str, description: str, actor: Actor) -> LedgerEntryView:
        return LedgerEntryView.from_model(self._cash.cash_in(account_id, amount, description, actor))

    def cash_out(self, account_id: UUID | str, amount: Decimal | int | str, description: str, actor: Actor) -> LedgerEntryView:
        return LedgerEntryView.from_model(self._cash.cash_out(account_id, amount, description, actor))

    def correct_balance(
        self,
        account_id: UUID | str,
        target_balance: Decimal | int | str,
        reason: str,
        actor: Actor,
    ) -> LedgerEntryView | None:
        entry = self._cash.correct_balance(account_id, target_balance, reason, actor)
        return None if entry is None else LedgerEntryView.from_model(entry)

    def delete_cash_movement(self, entry_id: UUID | str, actor: Actor) -> None:
        self._cash.delete(entry_id, actor)

    # -- advances ------------------------------------------------------------

    def issue_advance(
        self,
        employee_id: str,
        employee_name: str,
        amount: Decimal | int | str,
        account_id: UUID | str,
        notes: str | None,
        actor: Actor,
        advance_date: date | None = None,
    ) -> AdvanceView:
        advance = self._advances.issue(
            employee_id, employee_name, amount, account_id, notes, actor, advance_date
        )
        return AdvanceView.from_model(advance)

    def repay_advance(
        self,
        advance_id: UUID | str,
        amount: Decimal | int | str,
        recorded_by: Actor,
        repayment_date: date | None = None,
    ) -> AdvanceView:
        return AdvanceView.from_model(
            self._advances.repay(advance_id, amount, recorded_by, repayment_date)
        )

    def delete_advance(self, advance_id: UUID | str, actor: Actor) -> None:
        self._advances.delete(advance_id, actor)

    def list_advances(self, outstanding_only: bool = False, employee_id: str | None = None) -> list[AdvanceView]:
        return self._advance_reads.list_advances(outstanding_only, employee_id)

    def get_advance(self, advance_id: UUID | str) -> AdvanceView:
        return self._advance_reads.get_advance(advance_id)

    # -- expenses ------------------------------------------------------------

    def record_expense(
        self,
        description: str,
        amount: Decimal | int | str,
        account_id: UUID | str,
        category: str,
        actor: Actor,
        expense_date: date | None = None,
    ) -> ExpenseView:
        expense = self._expenses.record(description, amount, account_id, category, actor, expense_date)
        return ExpenseView.from_model(expense)

    def delete_expense(self, expense_id: UUID | str, actor: Actor) -> ExpenseView:
        return ExpenseView.from_model(self._expenses.delete(expense_id, actor))

    def list_expenses(self, date_from: date | None = None, date_to: date | None = None) -> list[ExpenseView]:
        return self._expense_reads.list_expenses(date_from, date_to)
