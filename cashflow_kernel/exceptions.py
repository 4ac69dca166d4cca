"""
Typed exception hierarchy for the cash-flow kernel.

Every error has a typed class, a machine-readable ``code`` class attribute,
and its context stored as attributes (never only inside the message), so
callers catch by type and APIs report by code.

    CashflowKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- SameAccountTransferError
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- AccountInUseError
    |   +-- InsufficientBalanceError
    |
    +-- LedgerError
    |   +-- LedgerEntryNotFoundError
    |   +-- LedgerEntryNotDeletableError
    |   +-- TransferNotFoundError
    |
    +-- AdvanceError
    |   +-- AdvanceNotFoundError
    |   +-- OverRepaymentError
    |
    +-- ExpenseError
    |   +-- ExpenseNotFoundError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- PartialFailureError

Propagation rules:

    Validation errors (INVALID_AMOUNT, SAME_ACCOUNT_TRANSFER, OVER_REPAYMENT,
    INSUFFICIENT_BALANCE) are raised before any mutation is applied.

    A step failure inside a multi-step operation triggers compensation and
    the ORIGINAL error is re-raised.

    PARTIAL_FAILURE means a compensation itself failed.  The system may hold
    a partially applied operation; do NOT retry automatically, since a retry
    can double-compensate.  The error carries the steps needed for manual
    reconciliation.
"""

from decimal import Decimal
from typing import Any


class CashflowKernelError(Exception):
    """Base exception for all cash-flow kernel errors."""

    code: str = "CASHFLOW_KERNEL_ERROR"


# Validation


class ValidationError(CashflowKernelError):
    """Base exception for request validation errors."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Amount is zero, negative, or otherwise unusable."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Any, reason: str = "amount must be greater than zero"):
        self.amount = str(amount)
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class SameAccountTransferError(ValidationError):
    """Transfer source and destination are the same account."""

    code: str = "SAME_ACCOUNT_TRANSFER"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Cannot transfer from account {account_id} to itself")


# Accounts


class AccountError(CashflowKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account with given ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class AccountInUseError(AccountError):
    """Account cannot be deleted while records still reference it."""

    code: str = "ACCOUNT_IN_USE"

    def __init__(self, account_id: str, ledger_entries: int, advances: int = 0, expenses: int = 0):
        self.account_id = account_id
        self.ledger_entries = ledger_entries
        self.advances = advances
        self.expenses = expenses
        super().__init__(
            f"Account {account_id} is still referenced by {ledger_entries} ledger "
            f"entries, {advances} advances and {expenses} expenses"
        )


class InsufficientBalanceError(AccountError):
    """Account balance does not cover the requested debit."""

    code: str = "INSUFFICIENT_BALANCE"

    def __init__(self, account_id: str, requested: Decimal, available: Decimal):
        self.account_id = account_id
        self.requested = str(requested)
        self.available = str(available)
        super().__init__(
            f"Insufficient balance in account {account_id}: "
            f"requested {requested}, available {available}"
        )


# Ledger


class LedgerError(CashflowKernelError):
    """Base exception for cash-history errors."""

    code: str = "LEDGER_ERROR"


class LedgerEntryNotFoundError(LedgerError):
    """Ledger entry with given ID (or reference) was not found."""

    code: str = "LEDGER_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str | None = None, reference_id: str | None = None, source_type: str | None = None):
        self.entry_id = entry_id
        self.reference_id = reference_id
        self.source_type = source_type
        if entry_id is not None:
            message = f"Ledger entry not found: {entry_id}"
        else:
            message = f"No {source_type} ledger entry for reference {reference_id}"
        super().__init__(message)


class LedgerEntryNotDeletableError(LedgerError):
    """Entry belongs to a domain lifecycle and cannot be deleted on its own."""

    code: str = "LEDGER_ENTRY_NOT_DELETABLE"

    def __init__(self, entry_id: str, source_type: str):
        self.entry_id = entry_id
        self.source_type = source_type
        super().__init__(
            f"Ledger entry {entry_id} ({source_type}) can only be removed by its owning operation"
        )


class TransferNotFoundError(LedgerError):
    """No complete pair of transfer legs exists for the reference."""

    code: str = "TRANSFER_NOT_FOUND"

    def __init__(self, transfer_reference: str):
        self.transfer_reference = transfer_reference
        super().__init__(f"Transfer not found: {transfer_reference}")


# Employee advances


class AdvanceError(CashflowKernelError):
    """Base exception for employee advance errors."""

    code: str = "ADVANCE_ERROR"


class AdvanceNotFoundError(AdvanceError):
    """Employee advance with given ID was not found."""

    code: str = "ADVANCE_NOT_FOUND"

    def __init__(self, advance_id: str):
        self.advance_id = advance_id
        super().__init__(f"Employee advance not found: {advance_id}")


class OverRepaymentError(AdvanceError):
    """Repayment exceeds the outstanding amount of the advance."""

    code: str = "OVER_REPAYMENT"

    def __init__(self, advance_id: str, amount: Decimal, remaining_amount: Decimal):
        self.advance_id = advance_id
        self.amount = str(amount)
        self.remaining_amount = str(remaining_amount)
        super().__init__(
            f"Repayment {amount} exceeds remaining {remaining_amount} "
            f"on advance {advance_id}"
        )


# Expenses


class ExpenseError(CashflowKernelError):
    """Base exception for expense errors."""

    code: str = "EXPENSE_ERROR"


class ExpenseNotFoundError(ExpenseError):
    """Expense with given ID was not found."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


# Immutability


class ImmutabilityError(CashflowKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempt to modify an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Cannot modify {entity_type} {entity_id}: {reason}")


# Multi-step operations


class PartialFailureError(CashflowKernelError):
    """
    A multi-step operation could neither complete nor be fully compensated.

    Requires operator intervention.  ``completed_steps`` lists the steps
    that ran, ``compensated_steps`` those whose effect was undone and
    ``failed_compensations`` maps step name to the compensation error.
    """

    code: str = "PARTIAL_FAILURE"

    def __init__(
        self,
        operation: str,
        failed_step: str,
        completed_steps: list[str],
        compensated_steps: list[str],
        failed_compensations: dict[str, str],
        cause: str,
        context: dict[str, str] | None = None,
    ):
        self.operation = operation
        self.failed_step = failed_step
        self.completed_steps = completed_steps
        self.compensated_steps = compensated_steps
        self.failed_compensations = failed_compensations
        self.cause = cause
        self.context = context or {}
        super().__init__(
            f"{operation} failed at step '{failed_step}' ({cause}) and could not be "
            f"compensated: {', '.join(sorted(failed_compensations))}"
        )
