"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service.  Services receive a SQLAlchemy ``Session``
    and persist with ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back the outer transaction themselves.  The
    caller (``session_scope()``, a script, or the test harness) owns
    commit/rollback.  Savepoints (``begin_nested``) are the only nested
    transaction control a service may use.

Failure modes:
    - A subclass that calls ``session.commit()`` breaks the atomicity of
      multi-step operations.
"""

from abc import ABC
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from cashflow_kernel.db.types import to_money
from cashflow_kernel.domain.clock import Clock, SystemClock
from cashflow_kernel.exceptions import InvalidAmountError


def parse_id(value: UUID | str, not_found: Callable[[str], Exception]) -> UUID:
    """Coerce a caller-supplied id; an unparsable id is reported as not found."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise not_found(str(value)) from None


def positive_amount(value) -> Decimal:
    """
    Coerce ``value`` to Decimal and require it to be greater than zero.

    Raises:
        InvalidAmountError: zero, negative, float or non-numeric input.
    """
    try:
        amount = to_money(value)
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(value, str(exc)) from None
    if amount <= 0:
        raise InvalidAmountError(value)
    return amount


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` and an optional ``Clock`` from the
        caller.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-only listings; those belong in
          ``cashflow_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source; defaults to SystemClock.
        """
        self.session = session
        self.clock = clock or SystemClock()
