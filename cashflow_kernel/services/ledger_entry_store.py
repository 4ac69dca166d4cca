"""
LedgerEntryStore -- append-only cash history.

Responsibility:
    Appends one entry per balance mutation and removes entries when their
    originating event is deleted, reversed or settled.

Architecture position:
    Kernel > Services.  Leaf service; callers reverse balances themselves.

Invariants enforced:
    - ``amount`` > 0 and the referenced account exists before insert.
    - ``direction`` comes from the classification table, decided once here.
    - ``seq`` comes from SequenceService, never from ``MAX(seq) + 1``.

Failure modes:
    - InvalidAmountError, AccountNotFoundError on append.
    - LedgerEntryNotFoundError on get/remove of an unknown id.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from cashflow_kernel.domain.actor import Actor
from cashflow_kernel.domain.classification import SourceType, direction_for, signed
from cashflow_kernel.exceptions import AccountNotFoundError, LedgerEntryNotFoundError
from cashflow_kernel.logging_config import get_logger
from cashflow_kernel.models.account import Account
from cashflow_kernel.models.ledger_entry import LedgerEntry
from cashflow_kernel.services.base import BaseService, parse_id, positive_amount
from cashflow_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger_entry_store")


class LedgerEntryStore(BaseService):
    """
    Cash-history persistence.

    Guarantees:
        - Entries are never updated.
        - ``find_by_reference`` returns entries in ``seq`` order.
    """

    def append(
        self,
        account_id: UUID | str,
        source_type: SourceType | str,
        amount: Decimal | int | str,
        description: str,
        reference_id: UUID | str,
        actor: Actor,
        created_at: datetime | None = None,
    ) -> LedgerEntry:
        """Record one balance mutation of ``account_id``."""
        value = positive_amount(amount)
        kind = SourceType(source_type)
        key = parse_id(account_id, AccountNotFoundError)

        exists = self.session.execute(
            select(Account.id).where(Account.id == key)
        ).scalar_one_or_none()
        if exists is None:
            raise AccountNotFoundError(str(account_id))

        entry = LedgerEntry(
            seq=SequenceService(self.session).next_value(SequenceService.LEDGER_ENTRY),
            account_id=key,
            direction=direction_for(kind).value,
            amount=value,
            description=description or "",
            source_type=kind.value,
            reference_id=str(reference_id),
            created_by=actor.id,
            created_by_name=actor.display_name,
            created_at=created_at or self.clock.now(),
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "ledger_entry_appended",
            extra={
                "entry_id": str(entry.id),
                "seq": entry.seq,
                "account_id": str(key),
                "source_type": kind.value,
                "direction": entry.direction,
                "amount": str(value),
            },
        )
        return entry

    def get(self, entry_id: UUID | str) -> LedgerEntry:
        entry = self.session.execute(
            select(LedgerEntry)
            .where(LedgerEntry.id == parse_id(entry_id, LedgerEntryNotFoundError))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if entry is None:
            raise LedgerEntryNotFoundError(str(entry_id))
        return entry

    def find_by_reference(
        self,
        reference_id: UUID | str,
        source_type: SourceType | str,
    ) -> list[LedgerEntry]:
        """Entries produced by one originating event, oldest first."""
        return list(
            self.session.execute(
                select(LedgerEntry)
                .where(
                    LedgerEntry.reference_id == str(reference_id),
                    LedgerEntry.source_type == SourceType(source_type).value,
                )
                .order_by(LedgerEntry.seq)
            ).scalars()
        )

    def remove(self, entry_id: UUID | str) -> LedgerEntry:
        """Delete one entry.  The caller reverses its balance effect."""
        entry = self.get(entry_id)
        self.session.delete(entry)
        self.session.flush()
        logger.info(
            "ledger_entry_removed",
            extra={
                "entry_id": str(entry.id),
                "source_type": entry.source_type,
                "reference_id": entry.reference_id,
            },
        )
        return entry

    def remove_by_reference(
        self,
        reference_id: UUID | str,
        source_type: SourceType | str,
    ) -> int:
        """Delete every entry of one originating event; returns the count."""
        entries = self.find_by_reference(reference_id, source_type)
        for entry in entries:
            self.session.delete(entry)
        self.session.flush()
        logger.info(
            "ledger_entries_removed",
            extra={
                "reference_id": str(reference_id),
                "source_type": SourceType(source_type).value,
                "count": len(entries),
            },
        )
        return len(entries)

    def restore(self, entry: LedgerEntry, actor: Actor | None = None) -> LedgerEntry:
        """
        Re-append a removed entry with its original content and timestamp.

        Used by compensations; the restored row gets a new id and ``seq``.
        """
        return self.append(
            entry.account_id,
            entry.source_type,
            entry.amount,
            entry.description,
            entry.reference_id,
            actor or Actor(id=entry.created_by, display_name=entry.created_by_name),
            created_at=entry.created_at,
        )

    @staticmethod
    def is_inflow(entry: LedgerEntry) -> bool:
        return entry.is_inflow

    @staticmethod
    def signed_amount(entry: LedgerEntry) -> Decimal:
        return signed(entry.direction, entry.amount)
