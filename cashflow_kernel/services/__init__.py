"""Write-side services.  Every service flushes; the caller commits."""

from cashflow_kernel.services.account_store import AccountStore
from cashflow_kernel.services.advance_service import AdvanceLifecycleManager
from cashflow_kernel.services.cash_movement_service import CashMovementService
from cashflow_kernel.services.compensation import CompensatingTransaction
from cashflow_kernel.services.expense_service import ExpenseLifecycleManager
from cashflow_kernel.services.ledger_entry_store import LedgerEntryStore
from cashflow_kernel.services.sequence_service import SequenceService
from cashflow_kernel.services.transfer_service import (
    TransferRequest,
    TransferResult,
    TransferService,
)

__all__ = [
    "AccountStore",
    "AdvanceLifecycleManager",
    "CashMovementService",
    "CompensatingTransaction",
    "ExpenseLifecycleManager",
    "LedgerEntryStore",
    "SequenceService",
    "TransferRequest",
    "TransferResult",
    "TransferService",
]
