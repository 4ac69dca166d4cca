"""
AccountStore -- the single authoritative entry point for account balances.

Responsibility:
    Creates, reads, locks and deletes accounts and applies signed balance
    deltas.  No other code path writes ``accounts.balance``.

Architecture position:
    Kernel > Services.  Leaf service; used by every write-side orchestrator.

Invariants enforced:
    - Balance mutation is one ``UPDATE accounts SET balance = balance + :delta``
      statement.  The store never reads a balance, computes in Python and
      writes it back, so concurrent mutations of one account cannot lose
      updates.
    - Funds checks (``minimum_balance``) are part of the same UPDATE's WHERE
      clause; the check and the write see the same row version.
    - Reads used for decisions are fresh (``populate_existing``), never the
      session's cached copy.

Failure modes:
    - AccountNotFoundError: unknown id.
    - InvalidAmountError: zero delta.
    - InsufficientBalanceError: guarded debit would cross ``minimum_balance``.
    - AccountInUseError: delete of a referenced account.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update

from cashflow_kernel.db.types import to_money
from cashflow_kernel.exceptions import (
    AccountInUseError,
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from cashflow_kernel.logging_config import get_logger
from cashflow_kernel.models.account import Account, AccountType
from cashflow_kernel.models.advance import EmployeeAdvance
from cashflow_kernel.models.expense import Expense
from cashflow_kernel.models.ledger_entry import LedgerEntry
from cashflow_kernel.services.base import BaseService, parse_id

logger = get_logger("services.account_store")


class AccountStore(BaseService):
    """
    Account persistence and atomic balance mutation.

    Contract:
        Every returned Account reflects the database row as of the call.

    Guarantees:
        - ``mutate_balance`` is linearizable per account.
        - ``version`` increases by one per balance mutation.

    Non-goals:
        - Does not write cash history; orchestrators pair each mutation with
          a LedgerEntryStore.append().
    """

    def _id(self, account_id: UUID | str) -> UUID:
        return parse_id(account_id, AccountNotFoundError)

    def create(
        self,
        name: str,
        account_type: AccountType | str,
        initial_balance: Decimal | int | str = 0,
        is_payment_account: bool = False,
    ) -> Account:
        """Create an account whose balance starts at ``initial_balance``."""
        if not name or not name.strip():
            raise ValueError("Account name must not be empty")
        try:
            opening = to_money(initial_balance)
        except (TypeError, ValueError) as exc:
            raise InvalidAmountError(initial_balance, str(exc)) from None

        account = Account(
            name=name.strip(),
            account_type=AccountType(account_type).value,
            balance=opening,
            initial_balance=opening,
            is_payment_account=is_payment_account,
            version=0,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_type": account.account_type,
                "initial_balance": str(opening),
            },
        )
        return account

    def get(self, account_id: UUID | str) -> Account:
        """Fresh read of one account."""
        account = self.session.execute(
            select(Account)
            .where(Account.id == self._id(account_id))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def lock(self, account_id: UUID | str) -> Account:
        """
        Fresh read under ``SELECT ... FOR UPDATE``.

        The lock is held until the caller's transaction ends.  SQLite has no
        row locks; its writers are already serialized by ``BEGIN IMMEDIATE``.
        """
        account = self.session.execute(
            select(Account)
            .where(Account.id == self._id(account_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def mutate_balance(
        self,
        account_id: UUID | str,
        signed_delta: Decimal | int | str,
        *,
        minimum_balance: Decimal | None = None,
    ) -> Account:
        """
        Apply ``signed_delta`` to the account balance in one statement.

        Args:
            account_id: Target account.
            signed_delta: Positive to credit, negative to debit.  Never zero.
            minimum_balance: When given, the update only applies if the
                resulting balance is at least this value.

        Returns:
            The account as stored after the update.
        """
        try:
            delta = to_money(signed_delta)
        except (TypeError, ValueError) as exc:
            raise InvalidAmountError(signed_delta, str(exc)) from None
        if delta == 0:
            raise InvalidAmountError(signed_delta, "balance delta must not be zero")

        key = self._id(account_id)
        stmt = (
            update(Account)
            .where(Account.id == key)
            .values(
                balance=Account.balance + delta,
                version=Account.version + 1,
            )
        )
        if minimum_balance is not None:
            stmt = stmt.where(Account.balance + delta >= minimum_balance)

        result = self.session.execute(
            stmt, execution_options={"synchronize_session": False}
        )

        if result.rowcount == 0:
            current = self.get(key)
            logger.info(
                "balance_mutation_rejected",
                extra={
                    "account_id": str(key),
                    "delta": str(delta),
                    "balance": str(current.balance),
                    "minimum_balance": str(minimum_balance),
                },
            )
            raise InsufficientBalanceError(str(key), requested=-delta, available=current.balance)

        account = self.get(key)
        logger.info(
            "balance_mutated",
            extra={
                "account_id": str(key),
                "delta": str(delta),
                "balance": str(account.balance),
                "version": account.version,
            },
        )
        return account

    def set_initial_balance(
        self,
        account_id: UUID | str,
        new_initial_balance: Decimal | int | str,
    ) -> Account:
        """
        Change the opening balance, shifting the current balance by the
        same difference in the same statement.
        """
        try:
            opening = to_money(new_initial_balance)
        except (TypeError, ValueError) as exc:
            raise InvalidAmountError(new_initial_balance, str(exc)) from None

        key = self._id(account_id)
        result = self.session.execute(
            update(Account)
            .where(Account.id == key)
            .values(
                balance=Account.balance + (opening - Account.initial_balance),
                initial_balance=opening,
                version=Account.version + 1,
            ),
            execution_options={"synchronize_session": False},
        )
        if result.rowcount == 0:
            raise AccountNotFoundError(str(account_id))

        account = self.get(key)
        logger.info(
            "initial_balance_set",
            extra={
                "account_id": str(key),
                "initial_balance": str(opening),
                "balance": str(account.balance),
            },
        )
        return account

    def update_details(
        self,
        account_id: UUID | str,
        name: str | None = None,
        is_payment_account: bool | None = None,
    ) -> Account:
        """Rename an account or toggle its payment flag.  Balances untouched."""
        account = self.get(account_id)
        if name is not None:
            if not name.strip():
                raise ValueError("Account name must not be empty")
            account.name = name.strip()
        if is_payment_account is not None:
            account.is_payment_account = is_payment_account
        self.session.flush()
        return account

    def reference_counts(self, account_id: UUID | str) -> tuple[int, int, int]:
        """Number of ledger entries, advances and expenses referencing the account."""
        key = self._id(account_id)
        counts = []
        for column in (LedgerEntry.account_id, EmployeeAdvance.account_id, Expense.account_id):
            counts.append(
                self.session.execute(
                    select(func.count()).where(column == key)
                ).scalar_one()
            )
        return counts[0], counts[1], counts[2]

    def delete(self, account_id: UUID | str) -> None:
        """Delete an account that nothing references."""
        account = self.get(account_id)
        entries, advances, expenses = self.reference_counts(account.id)
        if entries or advances or expenses:
            raise AccountInUseError(str(account.id), entries, advances, expenses)

        self.session.delete(account)
        self.session.flush()
        logger.info("account_deleted", extra={"account_id": str(account.id)})
