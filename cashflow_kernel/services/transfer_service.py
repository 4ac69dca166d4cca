"""
TransferService -- move money between two accounts.

Responsibility:
    Debits one account, credits another and records both legs in the cash
    history, as one unit.

Architecture position:
    Kernel > Services.  Orchestrates AccountStore and LedgerEntryStore
    through a CompensatingTransaction.

Invariants enforced:
    - Validation (distinct accounts, positive amount, both accounts exist)
      happens before any mutation.
    - The funds check is the debit itself: a guarded UPDATE with
      ``minimum_balance = 0``.  There is no separate read-then-decide.
    - Both accounts are locked in id order before mutation, so opposite
      concurrent transfers cannot deadlock.
    - Exactly two entries share the transfer reference: TRANSFER_OUT on the
      source and TRANSFER_IN on the destination, equal amounts.
    - There is no deletion API; ``reverse()`` books the opposite transfer.

Failure modes:
    - SameAccountTransferError, InvalidAmountError, AccountNotFoundError,
      InsufficientBalanceError: nothing changed.
    - Any later step failure: completed steps compensated, original re-raised.
    - PartialFailureError: a compensation failed.
    - TransferNotFoundError: reverse() of an unknown reference.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

from cashflow_kernel.db.types import ZERO
from cashflow_kernel.domain.actor import Actor
from cashflow_kernel.domain.classification import SourceType
from cashflow_kernel.exceptions import (
    AccountNotFoundError,
    SameAccountTransferError,
    TransferNotFoundError,
)
from cashflow_kernel.logging_config import LogContext, get_logger
from cashflow_kernel.services.account_store import AccountStore
from cashflow_kernel.services.base import BaseService, parse_id, positive_amount
from cashflow_kernel.services.compensation import CompensatingTransaction
from cashflow_kernel.services.ledger_entry_store import LedgerEntryStore

logger = get_logger("services.transfer")


@dataclass(frozen=True)
class TransferRequest:
    from_account_id: UUID | str
    to_account_id: UUID | str
    amount: Decimal
    description: str
    actor: Actor


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a completed transfer."""

    transfer_reference: str
    out_entry_id: UUID
    in_entry_id: UUID
    from_account_id: UUID
    to_account_id: UUID
    amount: Decimal
    from_balance: Decimal
    to_balance: Decimal


class TransferService(BaseService):
    """
    Account-to-account transfers.

    Contract:
        ``transfer()`` either applies both balance changes and both legs or
        none of them.

    Non-goals:
        - No currency conversion; accounts share one currency.
    """

    def __init__(self, session, clock=None):
        super().__init__(session, clock)
        self.accounts = AccountStore(session, self.clock)
        self.ledger = LedgerEntryStore(session, self.clock)

    def transfer(
        self,
        from_account_id: UUID | str,
        to_account_id: UUID | str,
        amount: Decimal | int | str,
        description: str,
        actor: Actor,
    ) -> TransferResult:
        request = TransferRequest(
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
            description=description,
            actor=actor,
        )
        return self.execute(request)

    def execute(self, request: TransferRequest) -> TransferResult:
        source_id = parse_id(request.from_account_id, AccountNotFoundError)
        dest_id = parse_id(request.to_account_id, AccountNotFoundError)
        if source_id == dest_id:
            raise SameAccountTransferError(str(source_id))
        amount = positive_amount(request.amount)

        # Stable lock order; also raises AccountNotFoundError for either side.
        locked = {a: self.accounts.lock(a) for a in sorted((source_id, dest_id), key=str)}
        source, dest = locked[source_id], locked[dest_id]

        reference = str(uuid4())
        actor = request.actor
        note = request.description or ""

        with LogContext.bind(operation="transfer", actor_id=actor.id, reference_id=reference):
            logger.info(
                "transfer_started",
                extra={
                    "from_account_id": str(source_id),
                    "to_account_id": str(dest_id),
                    "amount": str(amount),
                },
            )
            with CompensatingTransaction(
                self.session,
                "transfer",
                context={"transfer_reference": reference, "amount": amount},
            ) as saga:
                debited = saga.step(
                    "debit_source",
                    lambda: self.accounts.mutate_balance(source_id, -amount, minimum_balance=ZERO),
                    compensate=lambda: self.accounts.mutate_balance(source_id, amount),
                )
                credited = saga.step(
                    "credit_destination",
                    lambda: self.accounts.mutate_balance(dest_id, amount),
                    compensate=lambda: self.accounts.mutate_balance(dest_id, -amount),
                )
                out_entry = saga.step(
                    "append_transfer_out",
                    lambda: self.ledger.append(
                        source_id,
                        SourceType.TRANSFER_OUT,
                        amount,
                        _leg_description(f"Transfer to {dest.name}", note),
                        reference,
                        actor,
                    ),
                    compensate=lambda: self.ledger.remove_by_reference(reference, SourceType.TRANSFER_OUT),
                )
                in_entry = saga.step(
                    "append_transfer_in",
                    lambda: self.ledger.append(
                        dest_id,
                        SourceType.TRANSFER_IN,
                        amount,
                        _leg_description(f"Transfer from {source.name}", note),
                        reference,
                        actor,
                    ),
                )

            logger.info(
                "transfer_completed",
                extra={
                    "from_account_id": str(source_id),
                    "to_account_id": str(dest_id),
                    "amount": str(amount),
                    "from_balance": str(debited.balance),
                    "to_balance": str(credited.balance),
                },
            )

        return TransferResult(
            transfer_reference=reference,
            out_entry_id=out_entry.id,
            in_entry_id=in_entry.id,
            from_account_id=source_id,
            to_account_id=dest_id,
            amount=amount,
            from_balance=debited.balance,
            to_balance=credited.balance,
        )

    def reverse(
        self,
        transfer_reference: str,
        actor: Actor,
        description: str | None = None,
    ) -> TransferResult:
        """
        Undo a transfer by booking the opposite one.

        Both original legs stay in the cash history.  The reversal is subject
        to the same funds check on the original destination.
        """
        out_legs = self.ledger.find_by_reference(transfer_reference, SourceType.TRANSFER_OUT)
        in_legs = self.ledger.find_by_reference(transfer_reference, SourceType.TRANSFER_IN)
        if len(out_legs) != 1 or len(in_legs) != 1:
            raise TransferNotFoundError(transfer_reference)

        out_leg, in_leg = out_legs[0], in_legs[0]
        logger.info(
            "transfer_reversal_requested",
            extra={"original_reference": transfer_reference},
        )
        return self.transfer(
            in_leg.account_id,
            out_leg.account_id,
            out_leg.amount,
            description or f"Reversal of transfer {transfer_reference}",
            actor,
        )


def _leg_description(prefix: str, note: str) -> str:
    if note:
        return f"{prefix}: {note}"
    return prefix
