"""
CompensatingTransaction -- all-or-nothing execution of multi-step operations.

Responsibility:
    Runs the steps of a write operation (balance mutations, cash-history
    appends and removals, record inserts and deletes) so that a failure in
    any step leaves no partial state behind.

Architecture position:
    Kernel > Services.  Used by TransferService, AdvanceLifecycleManager,
    ExpenseLifecycleManager and CashMovementService.

Mechanism:
    Each step runs inside its own SAVEPOINT.  A failing step's savepoint is
    rolled back, so the step itself leaves nothing behind.  Steps that
    already completed are undone by their registered compensation, in
    reverse order, each in its own savepoint.  Then the original error is
    re-raised unchanged.

        step 1 ok -> step 2 ok -> step 3 FAILS
                                      |
                     undo 2 <- undo 1 <+
                                      |
                               raise original

Failure modes:
    - PartialFailureError when a compensation itself fails.  The error
      names the operation, the failed step, the completed steps, the
      compensations applied and those that failed, and is chained to the
      original cause.  It is logged at ERROR and must not be retried
      blindly, since a retry can double-compensate.
"""

from types import TracebackType
from typing import Any, Callable, TypeVar

from sqlalchemy.orm import Session

from cashflow_kernel.exceptions import PartialFailureError
from cashflow_kernel.logging_config import get_logger

logger = get_logger("services.compensation")

T = TypeVar("T")

OUTSIDE_STEP = "<between steps>"


class CompensatingTransaction:
    """
    Saga-style step runner bound to one session.

    Usage:
        with CompensatingTransaction(session, "transfer") as saga:
            saga.step("debit_source", debit, compensate=credit_back)
            saga.step("credit_destination", credit, compensate=debit_back)

    An exception raised inside the ``with`` block but outside ``step()``
    also triggers compensation of the completed steps.
    """

    def __init__(
        self,
        session: Session,
        operation: str,
        context: dict[str, Any] | None = None,
    ):
        self.session = session
        self.operation = operation
        self.context = {k: str(v) for k, v in (context or {}).items()}
        self._completed: list[tuple[str, Callable[[], Any] | None]] = []
        self._compensated = False

    @property
    def completed_steps(self) -> list[str]:
        return [name for name, _ in self._completed]

    def __enter__(self) -> "CompensatingTransaction":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is None or self._compensated or not isinstance(exc, Exception):
            return False
        self._compensate(OUTSIDE_STEP, exc)
        return False

    def step(
        self,
        name: str,
        action: Callable[[], T],
        compensate: Callable[[], Any] | None = None,
    ) -> T:
        """
        Run ``action`` in a savepoint and register its compensation.

        Returns:
            Whatever ``action`` returns.

        Raises:
            The error raised by ``action`` after completed steps are undone,
            or PartialFailureError if undoing them failed.
        """
        savepoint = self.session.begin_nested()
        try:
            result = action()
            savepoint.commit()
        except Exception as exc:
            if savepoint.is_active:
                savepoint.rollback()
            logger.warning(
                "operation_step_failed",
                extra={
                    "saga_operation": self.operation,
                    "step": name,
                    "error": f"{type(exc).__name__}: {exc}",
                },
            )
            self._compensate(name, exc)
            raise
        self._completed.append((name, compensate))
        return result

    def _compensate(self, failed_step: str, cause: Exception) -> None:
        self._compensated = True
        compensated: list[str] = []
        failed: dict[str, str] = {}

        for name, undo in reversed(self._completed):
            if undo is None:
                continue
            savepoint = self.session.begin_nested()
            try:
                undo()
                savepoint.commit()
                compensated.append(name)
            except Exception as undo_exc:
                if savepoint.is_active:
                    savepoint.rollback()
                failed[name] = f"{type(undo_exc).__name__}: {undo_exc}"
                logger.error(
                    "compensation_failed",
                    exc_info=True,
                    extra={"saga_operation": self.operation, "step": name},
                )

        if failed:
            error = PartialFailureError(
                operation=self.operation,
                failed_step=failed_step,
                completed_steps=self.completed_steps,
                compensated_steps=compensated,
                failed_compensations=failed,
                cause=f"{type(cause).__name__}: {cause}",
                context=self.context,
            )
            logger.error(
                "operation_partially_failed",
                extra={
                    "saga_operation": self.operation,
                    "failed_step": failed_step,
                    "completed_steps": error.completed_steps,
                    "compensated_steps": compensated,
                    "failed_compensations": failed,
                    "context": self.context,
                },
            )
            raise error from cause

        if compensated:
            logger.info(
                "operation_compensated",
                extra={
                    "saga_operation": self.operation,
                    "failed_step": failed_step,
                    "compensated_steps": compensated,
                },
            )
