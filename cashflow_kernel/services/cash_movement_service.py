"""
CashMovementService -- manual cash in / cash out and balance corrections.

Responsibility:
    Books money entering or leaving an account outside any sale, expense,
    advance or transfer (owner top-ups, petty withdrawals, counted-cash
    corrections), and deletes such manual entries again.

Architecture position:
    Kernel > Services.  Orchestrates AccountStore and LedgerEntryStore
    through a CompensatingTransaction.

Invariants enforced:
    - Every manual movement is one balance mutation plus one MANUAL_CASH_IN
      or MANUAL_CASH_OUT entry.
    - Cash out is floored at zero, like transfers.
    - Deleting a manual cash in is floored at zero as well.
    - Only manual entries may be deleted here; entries owned by an advance,
      expense or transfer are removed by their own lifecycle.
    - A correction is never a silent overwrite of ``balance``; it is booked
      as a manual entry for the difference.

Failure modes:
    - InvalidAmountError, AccountNotFoundError, InsufficientBalanceError.
    - LedgerEntryNotFoundError, LedgerEntryNotDeletableError on delete.
"""

from decimal import Decimal
from uuid import UUID, uuid4

from cashflow_kernel.db.types import ZERO, to_money
from cashflow_kernel.domain.actor import Actor
from cashflow_kernel.domain.classification import (
    MANUAL_SOURCE_TYPES,
    SourceType,
    direction_for,
    signed,
)
from cashflow_kernel.exceptions import InvalidAmountError, LedgerEntryNotDeletableError
from cashflow_kernel.logging_config import LogContext, get_logger
from cashflow_kernel.models.ledger_entry import LedgerEntry
from cashflow_kernel.services.account_store import AccountStore
from cashflow_kernel.services.base import BaseService, positive_amount
from cashflow_kernel.services.compensation import CompensatingTransaction
from cashflow_kernel.services.ledger_entry_store import LedgerEntryStore

logger = get_logger("services.cash_movement")


class CashMovementService(BaseService):
    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self.accounts = AccountStore(session, self.clock)
        self.ledger = LedgerEntryStore(session, self.clock)

    def cash_in(
        self,
        account_id: UUID | str,
        amount: Decimal | int | str,
        description: str,
        actor: Actor,
    ) -> LedgerEntry:
        return self._move(
            account_id,
            SourceType.MANUAL_CASH_IN,
            positive_amount(amount),
            description,
            actor,
        )

    def cash_out(
        self,
        account_id: UUID | str,
        amount: Decimal | int | str,
        description: str,
        actor: Actor,
    ) -> LedgerEntry:
        return self._move(
            account_id,
            SourceType.MANUAL_CASH_OUT,
            positive_amount(amount),
            description,
            actor,
            minimum_balance=ZERO,
        )

    def _move(
        self,
        account_id: UUID | str,
        source_type: SourceType,
        amount: Decimal,
        description: str,
        actor: Actor,
        minimum_balance: Decimal | None = None,
    ) -> LedgerEntry:
        account = self.accounts.get(account_id)
        delta = signed(direction_for(source_type), amount)
        reference = str(uuid4())

        with LogContext.bind(
            operation=source_type.value,
            actor_id=actor.id,
            account_id=account.id,
            reference_id=reference,
        ):
            with CompensatingTransaction(
                self.session,
                source_type.value,
                context={"account_id": account.id, "amount": amount},
            ) as saga:
                saga.step(
                    "mutate_balance",
                    lambda: self.accounts.mutate_balance(
                        account.id, delta, minimum_balance=minimum_balance
                    ),
                    compensate=lambda: self.accounts.mutate_balance(account.id, -delta),
                )
                entry = saga.step(
                    "append_entry",
                    lambda: self.ledger.append(
                        account.id, source_type, amount, description, reference, actor
                    ),
                )

            logger.info(
                "cash_movement_recorded",
                extra={
                    "entry_id": str(entry.id),
                    "source_type": source_type.value,
                    "amount": str(amount),
                },
            )
        return entry

    def delete(self, entry_id: UUID | str, actor: Actor) -> LedgerEntry:
        """Delete a manual entry and reverse its effect on the balance."""
        entry = self.ledger.get(entry_id)
        if SourceType(entry.source_type) not in MANUAL_SOURCE_TYPES:
            raise LedgerEntryNotDeletableError(str(entry.id), entry.source_type)

        account_id = entry.account_id
        undo = -signed(entry.direction, entry.amount)

        with LogContext.bind(
            operation="delete_cash_movement",
            actor_id=actor.id,
            account_id=account_id,
            reference_id=entry.reference_id,
        ):
            with CompensatingTransaction(
                self.session,
                "delete_cash_movement",
                context={"entry_id": entry.id},
            ) as saga:
                saga.step(
                    "reverse_balance",
                    lambda: self.accounts.mutate_balance(
                        account_id, undo, minimum_balance=ZERO if undo < 0 else None
                    ),
                    compensate=lambda: self.accounts.mutate_balance(account_id, -undo),
                )
                saga.step("remove_entry", lambda: self.ledger.remove(entry.id))

            logger.info(
                "cash_movement_deleted",
                extra={"entry_id": str(entry.id), "reversed_amount": str(undo)},
            )
        return entry

    def correct_balance(
        self,
        account_id: UUID | str,
        target_balance: Decimal | int | str,
        reason: str,
        actor: Actor,
    ) -> LedgerEntry | None:
        """
        Bring the balance to ``target_balance`` with one manual entry for the
        difference.  Returns None when the balance already matches.
        """
        try:
            target = to_money(target_balance)
        except (TypeError, ValueError) as exc:
            raise InvalidAmountError(target_balance, str(exc)) from None

        account = self.accounts.lock(account_id)
        difference = target - account.balance
        if difference == 0:
            return None

        source_type = SourceType.MANUAL_CASH_IN if difference > 0 else SourceType.MANUAL_CASH_OUT
        logger.info(
            "balance_correction",
            extra={
                "account_id": str(account.id),
                "balance": str(account.balance),
                "target_balance": str(target),
            },
        )
        return self._move(
            account.id,
            source_type,
            abs(difference),
            f"Balance correction: {reason}",
            actor,
        )
