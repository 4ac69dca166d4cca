"""
Module: cashflow_kernel.models.advance
Responsibility: ORM persistence for employee cash advances (kasbon) and their
    partial repayments.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - ``0 <= remaining_amount <= amount`` (CHECK constraints) and
      ``remaining_amount == amount - sum(repayments)``; AdvanceLifecycleManager
      decrements it with a guarded UPDATE.
    - Repayments are immutable and ordered by ``position`` within an advance.
    - An advance whose remaining amount reached zero is SETTLED; its record
      is kept even though its issuance entry leaves the cash history.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cashflow_kernel.db.base import Base, TimestampedBase, UUIDString


class AdvanceStatus(str, Enum):
    ACTIVE = "active"
    SETTLED = "settled"


class EmployeeAdvance(TimestampedBase):
    """
    Cash handed to an employee from a funding account, repaid over time.

    Contract:
        Issued, repaid and deleted only through AdvanceLifecycleManager, which
        keeps the funding account balance and cash history in step.

    Guarantees:
        - ``status`` is derived from ``remaining_amount``, never stored.
    """

    __tablename__ = "employee_advances"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_advance_amount_positive"),
        CheckConstraint("remaining_amount >= 0", name="ck_advance_remaining_non_negative"),
        CheckConstraint("remaining_amount <= amount", name="ck_advance_remaining_within_amount"),
        Index("idx_advance_employee", "employee_id"),
        Index("idx_advance_account", "account_id"),
    )

    employee_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    employee_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    advance_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    # Name at issue time, kept for display after renames
    account_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    remaining_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    created_by: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    repayments: Mapped[list["AdvanceRepayment"]] = relationship(
        back_populates="advance",
        order_by="AdvanceRepayment.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<EmployeeAdvance {self.employee_name}: {self.remaining_amount}/{self.amount}>"

    @property
    def status(self) -> AdvanceStatus:
        if self.remaining_amount <= 0:
            return AdvanceStatus.SETTLED
        return AdvanceStatus.ACTIVE

    @property
    def is_settled(self) -> bool:
        return self.status is AdvanceStatus.SETTLED

    @property
    def total_repaid(self) -> Decimal:
        return self.amount - self.remaining_amount


class AdvanceRepayment(Base):
    """One partial repayment of an employee advance.  Immutable."""

    __tablename__ = "advance_repayments"

    __table_args__ = (
        UniqueConstraint("advance_id", "position", name="uq_repayment_position"),
        CheckConstraint("amount > 0", name="ck_repayment_amount_positive"),
    )

    advance_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employee_advances.id"),
        nullable=False,
    )

    # 1-based order within the advance
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    repayment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    recorded_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    advance: Mapped[EmployeeAdvance] = relationship(back_populates="repayments")

    def __repr__(self) -> str:
        return f"<AdvanceRepayment #{self.position} {self.amount}>"
