"""
ExpenseLifecycleManager -- record and delete manual expenses.

Responsibility:
    Records an expense paid from an account (expense row, debit, cash-history
    entry) and deletes it again (reimbursement, entry removal, row delete).

Architecture position:
    Kernel > Services.  Orchestrates AccountStore and LedgerEntryStore
    through a CompensatingTransaction.

Invariants enforced:
    - While an expense exists, exactly one cash-history entry references it.
      Its source type follows the expense category (purchase-order payments
      are kept apart from other expenses).
    - Deletion fails as a whole when the entry is missing or cannot be
      removed; the account is never reimbursed without its entry going too.

Failure modes:
    - InvalidAmountError, AccountNotFoundError, ExpenseNotFoundError.
    - LedgerEntryNotFoundError: expense without its cash-history entry.
    - PartialFailureError: a compensation failed.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from cashflow_kernel.domain.actor import Actor
from cashflow_kernel.domain.classification import expense_source_type
from cashflow_kernel.exceptions import ExpenseNotFoundError, LedgerEntryNotFoundError
from cashflow_kernel.logging_config import LogContext, get_logger
from cashflow_kernel.models.expense import Expense
from cashflow_kernel.services.account_store import AccountStore
from cashflow_kernel.services.base import BaseService, parse_id, positive_amount
from cashflow_kernel.services.compensation import CompensatingTransaction
from cashflow_kernel.services.ledger_entry_store import LedgerEntryStore

logger = get_logger("services.expense")


class ExpenseLifecycleManager(BaseService):
    """Expense recording and deletion, each all-or-nothing."""

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self.accounts = AccountStore(session, self.clock)
        self.ledger = LedgerEntryStore(session, self.clock)

    def get(self, expense_id: UUID | str) -> Expense:
        expense = self.session.execute(
            select(Expense)
            .where(Expense.id == parse_id(expense_id, ExpenseNotFoundError))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if expense is None:
            raise ExpenseNotFoundError(str(expense_id))
        return expense

    def record(
        self,
        description: str,
        amount: Decimal | int | str,
        account_id: UUID | str,
        category: str,
        actor: Actor,
        expense_date: date | None = None,
    ) -> Expense:
        value = positive_amount(amount)
        account = self.accounts.get(account_id)
        source_type = expense_source_type(category)
        now = self.clock.now()

        def insert_expense() -> Expense:
            expense = Expense(
                description=description,
                amount=value,
                account_id=account.id,
                account_name=account.name,
                expense_date=expense_date or now.date(),
                category=category,
                created_by=actor.id,
                created_at=now,
            )
            self.session.add(expense)
            self.session.flush()
            return expense

        def drop_expense() -> None:
            self.session.delete(expense)
            self.session.flush()

        with LogContext.bind(operation="record_expense", actor_id=actor.id, account_id=account.id):
            with CompensatingTransaction(
                self.session,
                "record_expense",
                context={"category": category, "amount": value},
            ) as saga:
                expense = saga.step("insert_expense", insert_expense, compensate=drop_expense)
                saga.step(
                    "debit_account",
                    lambda: self.accounts.mutate_balance(account.id, -value),
                    compensate=lambda: self.accounts.mutate_balance(account.id, value),
                )
                saga.step(
                    "append_expense_entry",
                    lambda: self.ledger.append(
                        account.id,
                        source_type,
                        value,
                        f"{category}: {description}",
                        expense.id,
                        actor,
                    ),
                )

            logger.info(
                "expense_recorded",
                extra={
                    "expense_id": str(expense.id),
                    "category": category,
                    "source_type": source_type.value,
                    "amount": str(value),
                },
            )
        return expense

    def delete(self, expense_id: UUID | str, actor: Actor) -> Expense:
        """
        Delete an expense and reimburse its account.

        Returns:
            The deleted expense (detached snapshot of its last state).
        """
        expense = self.get(expense_id)
        source_type = expense_source_type(expense.category)
        entries = self.ledger.find_by_reference(expense.id, source_type)
        if not entries:
            raise LedgerEntryNotFoundError(reference_id=str(expense.id), source_type=source_type.value)

        account_id = expense.account_id
        amount = expense.amount

        def remove_entries() -> None:
            for entry in entries:
                self.ledger.remove(entry.id)

        def restore_entries() -> None:
            for entry in entries:
                self.ledger.restore(entry)

        def delete_expense() -> None:
            self.session.delete(expense)
            self.session.flush()

        with LogContext.bind(operation="delete_expense", actor_id=actor.id, reference_id=expense.id):
            with CompensatingTransaction(
                self.session,
                "delete_expense",
                context={"expense_id": expense.id, "amount": amount},
            ) as saga:
                saga.step(
                    "reimburse_account",
                    lambda: self.accounts.mutate_balance(account_id, amount),
                    compensate=lambda: self.accounts.mutate_balance(account_id, -amount),
                )
                saga.step("remove_expense_entry", remove_entries, compensate=restore_entries)
                saga.step("delete_expense", delete_expense)

            logger.info(
                "expense_deleted",
                extra={"expense_id": str(expense.id), "reimbursed_amount": str(amount)},
            )
        return expense
