"""Read-only views of employee advances and their repayments."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from cashflow_kernel.exceptions import AdvanceNotFoundError
from cashflow_kernel.models.advance import AdvanceStatus, EmployeeAdvance
from cashflow_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class RepaymentView:
    id: UUID
    position: int
    amount: Decimal
    repayment_date: date
    recorded_by: str


@dataclass(frozen=True)
class AdvanceView:
    id: UUID
    employee_id: str
    employee_name: str
    amount: Decimal
    remaining_amount: Decimal
    status: AdvanceStatus
    advance_date: date
    notes: str | None
    account_id: UUID
    account_name: str
    repayments: tuple[RepaymentView, ...]
    created_at: datetime | None
    updated_at: datetime | None

    @property
    def total_repaid(self) -> Decimal:
        return self.amount - self.remaining_amount

    @classmethod
    def from_model(cls, advance: EmployeeAdvance) -> "AdvanceView":
        return cls(
            id=advance.id,
            employee_id=advance.employee_id,
            employee_name=advance.employee_name,
            amount=advance.amount,
            remaining_amount=advance.remaining_amount,
            status=advance.status,
            advance_date=advance.advance_date,
            notes=advance.notes,
            account_id=advance.account_id,
            account_name=advance.account_name,
            repayments=tuple(
                RepaymentView(
                    id=r.id,
                    position=r.position,
                    amount=r.amount,
                    repayment_date=r.repayment_date,
                    recorded_by=r.recorded_by,
                )
                for r in advance.repayments
            ),
            created_at=advance.created_at,
            updated_at=advance.updated_at,
        )


class AdvanceSelector(BaseSelector):
    def list_advances(
        self,
        outstanding_only: bool = False,
        employee_id: str | None = None,
    ) -> list[AdvanceView]:
        """Advances, most recent first.  Settled ones stay listed unless
        ``outstanding_only``."""
        query = select(EmployeeAdvance)
        if outstanding_only:
            query = query.where(EmployeeAdvance.remaining_amount > 0)
        if employee_id is not None:
            query = query.where(EmployeeAdvance.employee_id == employee_id)
        query = query.order_by(
            EmployeeAdvance.advance_date.desc(),
            EmployeeAdvance.created_at.desc(),
        ).execution_options(populate_existing=True)
        return [AdvanceView.from_model(a) for a in self.session.execute(query).scalars()]

    def get_advance(self, advance_id: UUID | str) -> AdvanceView:
        try:
            key = advance_id if isinstance(advance_id, UUID) else UUID(str(advance_id))
        except ValueError:
            raise AdvanceNotFoundError(str(advance_id)) from None
        advance = self.session.execute(
            select(EmployeeAdvance)
            .where(EmployeeAdvance.id == key)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if advance is None:
            raise AdvanceNotFoundError(str(advance_id))
        return AdvanceView.from_model(advance)

    def total_outstanding(self, employee_id: str | None = None) -> Decimal:
        """Sum of remaining amounts of active advances."""
        return sum(
            (a.remaining_amount for a in self.list_advances(outstanding_only=True, employee_id=employee_id)),
            Decimal("0"),
        )
