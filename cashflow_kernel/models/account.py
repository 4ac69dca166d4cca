"""
Module: cashflow_kernel.models.account
Responsibility: ORM persistence for named financial accounts (cash drawers,
    bank accounts, e-wallets) and their authoritative balance.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - ``balance`` is only changed by AccountStore, through a single atomic
      ``UPDATE ... SET balance = balance + :delta`` statement.  Code MUST NOT
      assign ``account.balance`` and flush.
    - ``version`` is bumped by every balance mutation; it orders the
      mutations of one account.

Failure modes:
    - AccountNotFoundError when an operation references a missing account.
    - AccountInUseError when deletion is attempted on a referenced account.

Audit relevance:
    Every change to ``balance`` has a matching cash-history entry (or, for
    settled advances, a kept advance record); ``LedgerSelector.reconcile``
    checks this.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from cashflow_kernel.db.base import TimestampedBase


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class Account(TimestampedBase):
    """
    A financial account with a stored balance.

    Contract:
        ``balance`` always equals the sum of the account's mutations applied
        to ``initial_balance`` at creation.

    Guarantees:
        - account_type is one of ASSET, LIABILITY, EQUITY, REVENUE, EXPENSE.
        - Amounts are Decimal at Numeric(38, 9).

    Non-goals:
        - No cached or derived balances live here; history is in ledger_entries.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        Index("idx_account_type", "account_type"),
        Index("idx_account_payment", "is_payment_account"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    initial_balance: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    # Offered as a payment method at the point of sale
    is_payment_account: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<Account {self.name}: {self.balance}>"
