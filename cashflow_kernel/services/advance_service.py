"""
AdvanceLifecycleManager -- employee cash advances (issue, repay, delete).

Responsibility:
    Issues advances from a funding account, records partial repayments and
    maintains the outstanding amount, purges the issuance entry from the
    cash history once an advance is settled, and deletes advances.

Architecture position:
    Kernel > Services.  Orchestrates AccountStore and LedgerEntryStore
    through a CompensatingTransaction.

Invariants enforced:
    - ``remaining_amount == amount - sum(repayments)`` and never negative.
      It is decremented with a guarded UPDATE
      (``WHERE remaining_amount >= :amount``), so concurrent repayments
      cannot overdraw it.
    - Repayments do not move any account balance.  Cash received for a
      repayment is booked separately (a manual cash-in).
    - When ``remaining_amount`` reaches 0 the ADVANCE_ISSUANCE entry is
      removed from the cash history; the advance row is kept.
    - Deletion reimburses the ORIGINAL amount, because the issuance debited
      the full amount whatever was repaid afterwards.

Failure modes:
    - InvalidAmountError, AccountNotFoundError, AdvanceNotFoundError.
    - OverRepaymentError: repayment above the outstanding amount, including
      any repayment of a settled advance.  Nothing changes.
    - PartialFailureError: a compensation failed.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update

from cashflow_kernel.domain.actor import Actor
from cashflow_kernel.domain.classification import SourceType
from cashflow_kernel.exceptions import AdvanceNotFoundError, OverRepaymentError
from cashflow_kernel.logging_config import LogContext, get_logger
from cashflow_kernel.models.advance import AdvanceRepayment, EmployeeAdvance
from cashflow_kernel.services.account_store import AccountStore
from cashflow_kernel.services.base import BaseService, parse_id, positive_amount
from cashflow_kernel.services.compensation import CompensatingTransaction
from cashflow_kernel.services.ledger_entry_store import LedgerEntryStore

logger = get_logger("services.advance")


class AdvanceLifecycleManager(BaseService):
    """
    Lifecycle of employee advances: ACTIVE -> SETTLED, or deleted.

    Contract:
        Each public method applies all of its effects or none.

    Non-goals:
        - A settled advance cannot be reopened.
    """

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self.accounts = AccountStore(session, self.clock)
        self.ledger = LedgerEntryStore(session, self.clock)

    def get(self, advance_id: UUID | str) -> EmployeeAdvance:
        """Fresh read of one advance with its repayments."""
        advance = self.session.execute(
            select(EmployeeAdvance)
            .where(EmployeeAdvance.id == parse_id(advance_id, AdvanceNotFoundError))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if advance is None:
            raise AdvanceNotFoundError(str(advance_id))
        return advance

    # -- issue ---------------------------------------------------------------

    def issue(
        self,
        employee_id: str,
        employee_name: str,
        amount: Decimal | int | str,
        account_id: UUID | str,
        notes: str | None,
        actor: Actor,
        advance_date: date | None = None,
    ) -> EmployeeAdvance:
        """
        Hand ``amount`` to an employee from ``account_id``.

        The funding account is debited without a floor.
        """
        value = positive_amount(amount)
        account = self.accounts.get(account_id)
        now = self.clock.now()

        def insert_advance() -> EmployeeAdvance:
            advance = EmployeeAdvance(
                employee_id=employee_id,
                employee_name=employee_name,
                amount=value,
                advance_date=advance_date or now.date(),
                notes=notes,
                account_id=account.id,
                account_name=account.name,
                remaining_amount=value,
                created_by=actor.id,
                created_at=now,
                updated_at=now,
            )
            self.session.add(advance)
            self.session.flush()
            return advance

        def drop_advance() -> None:
            self.session.delete(advance)
            self.session.flush()

        with LogContext.bind(operation="issue_advance", actor_id=actor.id, account_id=account.id):
            with CompensatingTransaction(
                self.session,
                "issue_advance",
                context={"employee_id": employee_id, "amount": value},
            ) as saga:
                advance = saga.step("insert_advance", insert_advance, compensate=drop_advance)
                saga.step(
                    "debit_funding_account",
                    lambda: self.accounts.mutate_balance(account.id, -value),
                    compensate=lambda: self.accounts.mutate_balance(account.id, value),
                )
                saga.step(
                    "append_issuance_entry",
                    lambda: self.ledger.append(
                        account.id,
                        SourceType.ADVANCE_ISSUANCE,
                        value,
                        _issuance_description(employee_name, notes),
                        advance.id,
                        actor,
                    ),
                )

            logger.info(
                "advance_issued",
                extra={
                    "advance_id": str(advance.id),
                    "employee_id": employee_id,
                    "amount": str(value),
                },
            )
        return advance

    # -- repay ---------------------------------------------------------------

    def repay(
        self,
        advance_id: UUID | str,
        amount: Decimal | int | str,
        recorded_by: Actor,
        repayment_date: date | None = None,
    ) -> EmployeeAdvance:
        """
        Record a partial or final repayment.

        Returns:
            The advance with its updated ``remaining_amount`` and repayments.
        """
        value = positive_amount(amount)
        advance = self.get(advance_id)
        key = advance.id
        if value > advance.remaining_amount:
            raise OverRepaymentError(str(key), value, advance.remaining_amount)

        def decrement() -> None:
            result = self.session.execute(
                update(EmployeeAdvance)
                .where(
                    EmployeeAdvance.id == key,
                    EmployeeAdvance.remaining_amount >= value,
                )
                .values(
                    remaining_amount=EmployeeAdvance.remaining_amount - value,
                    updated_at=self.clock.now(),
                ),
                execution_options={"synchronize_session": False},
            )
            if result.rowcount == 0:
                # Another repayment got there first.
                current = self.get(key)
                raise OverRepaymentError(str(key), value, current.remaining_amount)

        def restore_remaining() -> None:
            self.session.execute(
                update(EmployeeAdvance)
                .where(EmployeeAdvance.id == key)
                .values(remaining_amount=EmployeeAdvance.remaining_amount + value),
                execution_options={"synchronize_session": False},
            )

        inserted: list[AdvanceRepayment] = []

        def insert_repayment() -> AdvanceRepayment:
            position = self.session.execute(
                select(func.count()).where(AdvanceRepayment.advance_id == key)
            ).scalar_one() + 1
            repayment = AdvanceRepayment(
                advance_id=key,
                position=position,
                amount=value,
                repayment_date=repayment_date or self.clock.today(),
                recorded_by=recorded_by.display_name,
                created_at=self.clock.now(),
            )
            self.session.add(repayment)
            self.session.flush()
            inserted.append(repayment)
            return repayment

        def drop_repayment() -> None:
            for repayment in inserted:
                self.session.delete(repayment)
            self.session.flush()

        with LogContext.bind(operation="repay_advance", actor_id=recorded_by.id, reference_id=key):
            with CompensatingTransaction(
                self.session,
                "repay_advance",
                context={"advance_id": key, "amount": value},
            ) as saga:
                saga.step("decrement_remaining", decrement, compensate=restore_remaining)
                repayment = saga.step(
                    "insert_repayment", insert_repayment, compensate=drop_repayment
                )

                advance = self.get(key)
                settled = advance.remaining_amount == 0
                if settled:
                    saga.step(
                        "purge_issuance_entry",
                        lambda: self.ledger.remove_by_reference(key, SourceType.ADVANCE_ISSUANCE),
                    )

            logger.info(
                "advance_repaid",
                extra={
                    "advance_id": str(key),
                    "repayment_position": repayment.position,
                    "amount": str(value),
                    "remaining_amount": str(advance.remaining_amount),
                    "settled": settled,
                },
            )
        return advance

    # -- delete --------------------------------------------------------------

    def delete(self, advance_id: UUID | str, actor: Actor) -> None:
        """
        Delete an advance, reimbursing its funding account with the original
        amount and removing its issuance entry and repayments.
        """
        advance = self.get(advance_id)
        key = advance.id
        account_id = advance.account_id
        amount = advance.amount
        issuance_entries = self.ledger.find_by_reference(key, SourceType.ADVANCE_ISSUANCE)

        def remove_issuance() -> int:
            return self.ledger.remove_by_reference(key, SourceType.ADVANCE_ISSUANCE)

        def restore_issuance() -> None:
            for entry in issuance_entries:
                self.ledger.restore(entry)

        def delete_advance() -> None:
            self.session.delete(advance)
            self.session.flush()

        with LogContext.bind(operation="delete_advance", actor_id=actor.id, reference_id=key):
            with CompensatingTransaction(
                self.session,
                "delete_advance",
                context={"advance_id": key, "amount": amount},
            ) as saga:
                saga.step(
                    "reimburse_funding_account",
                    lambda: self.accounts.mutate_balance(account_id, amount),
                    compensate=lambda: self.accounts.mutate_balance(account_id, -amount),
                )
                if issuance_entries:
                    saga.step("remove_issuance_entry", remove_issuance, compensate=restore_issuance)
                saga.step("delete_advance", delete_advance)

            logger.info(
                "advance_deleted",
                extra={
                    "advance_id": str(key),
                    "reimbursed_amount": str(amount),
                    "remaining_amount": str(advance.remaining_amount),
                },
            )


def _issuance_description(employee_name: str, notes: str | None) -> str:
    return f"Employee advance for {employee_name}: {notes or 'no notes'}"
