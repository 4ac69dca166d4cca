"""
Module: cashflow_kernel.models.expense
Responsibility: ORM persistence for manually recorded operating expenses.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Immutable after insert (db/immutability.py); an expense is corrected by
      deleting it (which reimburses its account) and recording a new one.
    - Exactly one cash-history entry references an expense while it exists.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from cashflow_kernel.db.base import Base, UUIDString


class Expense(Base):
    """A manual expense paid from one account."""

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        Index("idx_expense_date", "expense_date"),
        Index("idx_expense_account", "account_id"),
    )

    description: Mapped[str] = mapped_column(
        String(1000),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    account_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    expense_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    category: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    created_by: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Expense {self.category}: {self.amount}>"
