"""
Module: cashflow_kernel.domain.classification
Responsibility: The single classification table that says which cash-history
    source types increase an account balance and which decrease it.
Architecture position: Kernel > Domain.  Pure code, no I/O.  Imported by
    models (for column types), services and selectors.

Invariants enforced:
    - Every SourceType maps to exactly one Direction.  ``direction_for()``
      is the only place direction is decided; ledger rows store the result
      at append time and readers use the stored value.
    - Both legs of a transfer are classified by their own type
      (TRANSFER_IN inflow, TRANSFER_OUT outflow).
"""

from decimal import Decimal
from enum import Enum


class SourceType(str, Enum):
    """Kind of event that produced a cash-history entry."""

    MANUAL_CASH_IN = "manual_cash_in"
    MANUAL_CASH_OUT = "manual_cash_out"
    SALES_PAYMENT = "sales_payment"
    EXPENSE_PAYMENT = "expense_payment"
    ADVANCE_ISSUANCE = "advance_issuance"
    ADVANCE_REPAYMENT = "advance_repayment"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    RECEIVABLES_PAYMENT = "receivables_payment"
    RECEIVABLES_WRITEOFF = "receivables_writeoff"
    PURCHASE_ORDER_PAYMENT = "purchase_order_payment"


class Direction(str, Enum):
    """Effect of an entry on its account balance."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"


INFLOW_SOURCE_TYPES: frozenset[SourceType] = frozenset(
    {
        SourceType.MANUAL_CASH_IN,
        SourceType.SALES_PAYMENT,
        SourceType.ADVANCE_REPAYMENT,
        SourceType.RECEIVABLES_PAYMENT,
        SourceType.RECEIVABLES_WRITEOFF,
        SourceType.TRANSFER_IN,
    }
)

TRANSFER_SOURCE_TYPES: frozenset[SourceType] = frozenset(
    {SourceType.TRANSFER_IN, SourceType.TRANSFER_OUT}
)

# Entries that can be created and deleted on their own, outside any
# advance/expense/transfer lifecycle.
MANUAL_SOURCE_TYPES: frozenset[SourceType] = frozenset(
    {SourceType.MANUAL_CASH_IN, SourceType.MANUAL_CASH_OUT}
)

PURCHASE_ORDER_CATEGORY = "Pembayaran PO"


def direction_for(source_type: SourceType | str) -> Direction:
    """Return the balance direction of ``source_type``.

    Raises:
        ValueError: if ``source_type`` is not a known SourceType value.
    """
    if SourceType(source_type) in INFLOW_SOURCE_TYPES:
        return Direction.INFLOW
    return Direction.OUTFLOW


def is_inflow(source_type: SourceType | str) -> bool:
    return direction_for(source_type) is Direction.INFLOW


def signed(direction: Direction | str, amount: Decimal) -> Decimal:
    """``+amount`` for inflows, ``-amount`` for outflows."""
    if Direction(direction) is Direction.INFLOW:
        return amount
    return -amount


def signed_amount(source_type: SourceType | str, amount: Decimal) -> Decimal:
    return signed(direction_for(source_type), amount)


def is_transfer(source_type: SourceType | str) -> bool:
    return SourceType(source_type) in TRANSFER_SOURCE_TYPES


def expense_source_type(category: str | None) -> SourceType:
    """Source type of the ledger entry written for an expense of ``category``.

    Purchase-order payments are booked as expenses under the category
    "Pembayaran PO" but kept apart in cash history.
    """
    if category is not None and category.strip() == PURCHASE_ORDER_CATEGORY:
        return SourceType.PURCHASE_ORDER_PAYMENT
    return SourceType.EXPENSE_PAYMENT
