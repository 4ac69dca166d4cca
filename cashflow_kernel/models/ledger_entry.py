"""
Module: cashflow_kernel.models.ledger_entry
Responsibility: ORM persistence for the cash history -- one row per balance
    mutation of one account.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - Rows are append-only; ``before_update`` listeners in db/immutability.py
      reject any change.  Removal happens only when the originating event is
      deleted, reversed or (for advance issuances) settled.
    - ``amount`` > 0; the sign lives in ``direction``, which is derived from
      ``source_type`` once, at append.
    - ``seq`` is allocated from a locked counter row and is strictly
      monotonic, so entries sharing a timestamp still have a total order.
    - ``(reference_id, source_type)`` identifies the originating entity.

Audit relevance:
    The cash history is the audit trail of account balances.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashflow_kernel.db.base import Base, UUIDString
from cashflow_kernel.domain.classification import Direction, SourceType
from cashflow_kernel.models.account import Account


class LedgerEntry(Base):
    """
    One cash-history entry.

    Contract:
        Created by LedgerEntryStore.append() in the same transaction as the
        balance mutation it records.

    Guarantees:
        - Immutable after insert.
        - ``direction`` agrees with the classification table for
          ``source_type``.

    Non-goals:
        - Does not store a running balance; that is reconstructed on read.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_ledger_entry_seq"),
        CheckConstraint("amount > 0", name="ck_ledger_entry_amount_positive"),
        Index("idx_ledger_account_seq", "account_id", "seq"),
        Index("idx_ledger_reference", "reference_id", "source_type"),
        Index("idx_ledger_created_at", "created_at"),
    )

    seq: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    direction: Mapped[Direction] = mapped_column(
        String(10),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(1000),
        nullable=False,
        default="",
    )

    source_type: Mapped[SourceType] = mapped_column(
        String(40),
        nullable=False,
    )

    # Id of the advance, expense, transfer or manual movement
    reference_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    created_by: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    created_by_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    account: Mapped[Account] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<LedgerEntry #{self.seq} {self.source_type} {self.direction} {self.amount}>"

    @property
    def is_inflow(self) -> bool:
        return Direction(self.direction) is Direction.INFLOW

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.is_inflow else -self.amount
