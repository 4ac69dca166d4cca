"""Domain models for the cash-flow kernel."""

from cashflow_kernel.models.account import Account, AccountType
from cashflow_kernel.models.advance import AdvanceRepayment, AdvanceStatus, EmployeeAdvance
from cashflow_kernel.models.expense import Expense
from cashflow_kernel.models.ledger_entry import LedgerEntry

__all__ = [
    "Account",
    "AccountType",
    "AdvanceRepayment",
    "AdvanceStatus",
    "EmployeeAdvance",
    "Expense",
    "LedgerEntry",
]
