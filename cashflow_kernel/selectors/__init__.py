"""Read-only selectors.  Selectors never add, flush, delete or commit."""

from cashflow_kernel.selectors.account_selector import AccountSelector, AccountSnapshot
from cashflow_kernel.selectors.advance_selector import AdvanceSelector, AdvanceView, RepaymentView
from cashflow_kernel.selectors.expense_selector import ExpenseSelector, ExpenseView
from cashflow_kernel.selectors.ledger_selector import (
    AccountDaySummary,
    DailySummary,
    LedgerEntryView,
    LedgerFilter,
    LedgerSelector,
    ReconciliationRow,
)

__all__ = [
    "AccountDaySummary",
    "AccountSelector",
    "AccountSnapshot",
    "AdvanceSelector",
    "AdvanceView",
    "DailySummary",
    "ExpenseSelector",
    "ExpenseView",
    "LedgerEntryView",
    "LedgerFilter",
    "LedgerSelector",
    "ReconciliationRow",
    "RepaymentView",
]
