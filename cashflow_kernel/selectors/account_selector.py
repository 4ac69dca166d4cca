"""Read-only account listings."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from cashflow_kernel.exceptions import AccountNotFoundError
from cashflow_kernel.models.account import Account, AccountType
from cashflow_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountSnapshot:
    """An account as read at one point in time."""

    id: UUID
    name: str
    account_type: AccountType
    balance: Decimal
    initial_balance: Decimal
    is_payment_account: bool
    version: int
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_model(cls, account: Account) -> "AccountSnapshot":
        return cls(
            id=account.id,
            name=account.name,
            account_type=AccountType(account.account_type),
            balance=account.balance,
            initial_balance=account.initial_balance,
            is_payment_account=account.is_payment_account,
            version=account.version,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class AccountSelector(BaseSelector):
    def list_accounts(self, payment_only: bool = False) -> list[AccountSnapshot]:
        """All accounts by name; only payment accounts when ``payment_only``."""
        query = select(Account).order_by(Account.name, Account.id)
        if payment_only:
            query = query.where(Account.is_payment_account.is_(True))
        accounts = self.session.execute(
            query.execution_options(populate_existing=True)
        ).scalars()
        return [AccountSnapshot.from_model(a) for a in accounts]

    def get_account(self, account_id: UUID | str) -> AccountSnapshot:
        try:
            key = account_id if isinstance(account_id, UUID) else UUID(str(account_id))
        except ValueError:
            raise AccountNotFoundError(str(account_id)) from None
        account = self.session.execute(
            select(Account)
            .where(Account.id == key)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return AccountSnapshot.from_model(account)

    def balances(self, account_ids: set[UUID] | None = None) -> dict[UUID, Decimal]:
        """Fresh current balance per account."""
        query = select(Account.id, Account.balance)
        if account_ids is not None:
            query = query.where(Account.id.in_(list(account_ids)))
        return {row.id: row.balance for row in self.session.execute(query)}
