"""Pure domain code: classification, running balances, actor, clock."""

from cashflow_kernel.domain.actor import Actor
from cashflow_kernel.domain.classification import (
    Direction,
    SourceType,
    direction_for,
    expense_source_type,
    is_inflow,
    signed_amount,
)
from cashflow_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from cashflow_kernel.domain.running_balance import (
    RunningBalance,
    reconstruct_by_account,
    reconstruct_running_balances,
)

__all__ = [
    "Actor",
    "Clock",
    "DeterministicClock",
    "Direction",
    "RunningBalance",
    "SourceType",
    "SystemClock",
    "direction_for",
    "expense_source_type",
    "is_inflow",
    "reconstruct_by_account",
    "reconstruct_running_balances",
    "signed_amount",
]
