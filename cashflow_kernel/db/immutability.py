"""
ORM-level immutability enforcement for append-only cash records.

SQLAlchemy fires ``before_update`` before an UPDATE reaches the database.
The listeners below inspect attribute history and abort the flush with
``ImmutabilityViolationError`` when a protected field would change:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities:

Entity            | When immutable          | Allowed lifecycle
------------------|-------------------------|----------------------------------
LedgerEntry       | ALWAYS                  | insert, delete by owning operation
AdvanceRepayment  | ALWAYS                  | insert, delete with its advance
Expense           | ALWAYS                  | insert, delete (with reimbursement)

Deletion is not blocked here: cash history entries are legitimately removed
when their originating event is deleted, reversed or (for advance issuances)
settled.  The owning services guarantee the balance is reversed in the same
transaction.

Usage:

    from cashflow_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

Tests that must write a forbidden update call
``unregister_immutability_listeners()`` and re-register afterwards.
"""

from sqlalchemy import event, inspect

from cashflow_kernel.exceptions import ImmutabilityViolationError
from cashflow_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Bookkeeping columns that may change on any row.
_ALWAYS_MUTABLE = frozenset({"updated_at"})


def _first_changed_field(target) -> str | None:
    for attr in inspect(target).attrs:
        if attr.key in _ALWAYS_MUTABLE:
            continue
        if attr.history.has_changes():
            return attr.key
    return None


def _block_update(entity_type: str, target, reason: str) -> None:
    changed = _first_changed_field(target)
    if changed is None:
        return
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "field": changed,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=f"{reason} (field '{changed}')",
    )


def _check_ledger_entry_immutability(mapper, connection, target):
    """Ledger entries are never updated; corrections are new entries."""
    _block_update(
        "LedgerEntry",
        target,
        "Cash history entries are append-only",
    )


def _check_repayment_immutability(mapper, connection, target):
    _block_update(
        "AdvanceRepayment",
        target,
        "Advance repayments cannot be modified",
    )


def _check_expense_immutability(mapper, connection, target):
    """Expenses may only be recorded or deleted; edits would desync the ledger."""
    _block_update(
        "Expense",
        target,
        "Expenses cannot be modified, delete and record again instead",
    )


def _listener_table():
    from cashflow_kernel.models.advance import AdvanceRepayment
    from cashflow_kernel.models.expense import Expense
    from cashflow_kernel.models.ledger_entry import LedgerEntry

    return (
        (LedgerEntry, "before_update", _check_ledger_entry_immutability),
        (AdvanceRepayment, "before_update", _check_repayment_immutability),
        (Expense, "before_update", _check_expense_immutability),
    )


def register_immutability_listeners():
    """
    Register all immutability listeners.

    Safe to call more than once; an already registered listener is skipped.
    """
    for target, event_name, listener_fn in _listener_table():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if it was never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the immutability listeners.

    WARNING: Only use this in tests that deliberately violate the rules.
    """
    for target, event_name, listener_fn in _listener_table():
        _safe_remove_listener(target, event_name, listener_fn)
