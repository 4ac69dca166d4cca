"""Read-only expense listings."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from cashflow_kernel.models.expense import Expense
from cashflow_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class ExpenseView:
    id: UUID
    description: str
    amount: Decimal
    account_id: UUID
    account_name: str
    expense_date: date
    category: str
    created_by: str
    created_at: datetime

    @classmethod
    def from_model(cls, expense: Expense) -> "ExpenseView":
        return cls(
            id=expense.id,
            description=expense.description,
            amount=expense.amount,
            account_id=expense.account_id,
            account_name=expense.account_name,
            expense_date=expense.expense_date,
            category=expense.category,
            created_by=expense.created_by,
            created_at=expense.created_at,
        )


class ExpenseSelector(BaseSelector):
    def list_expenses(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
        category: str | None = None,
    ) -> list[ExpenseView]:
        """Expenses in an inclusive date range, most recent first."""
        query = select(Expense)
        if date_from is not None:
            query = query.where(Expense.expense_date >= date_from)
        if date_to is not None:
            query = query.where(Expense.expense_date <= date_to)
        if category is not None:
            query = query.where(Expense.category == category)
        query = query.order_by(Expense.expense_date.desc(), Expense.created_at.desc())
        return [ExpenseView.from_model(e) for e in self.session.execute(query).scalars()]

    def total(self, date_from: date | None = None, date_to: date | None = None) -> Decimal:
        return sum((e.amount for e in self.list_expenses(date_from, date_to)), Decimal("0"))
