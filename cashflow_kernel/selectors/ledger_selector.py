"""
Module: cashflow_kernel.selectors.ledger_selector
Responsibility: Read-only queries over the cash history: filtered listings,
    running balances, daily summaries and the ledger-vs-balance
    reconciliation report.
Architecture position: Kernel > Selectors.  Uses domain/running_balance.py
    for reconstruction; never writes.

Invariants enforced:
    - Listings are newest first by ``seq``, the order in which entries were
      applied.
    - Running balances start from a fresh read of the stored balance and are
      never written back.
    - Reconciliation expects
          balance == initial_balance
                     + sum(signed cash-history amounts)
                     - sum(amount of settled advances funded by the account)
      The last term exists because settling an advance removes its issuance
      entry while the funding debit stays in the balance.

Failure modes:
    - AccountNotFoundError for an unknown account.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select

from cashflow_kernel.db.types import ZERO, round_money
from cashflow_kernel.domain.classification import (
    Direction,
    SourceType,
    is_transfer,
)
from cashflow_kernel.domain.running_balance import (
    RunningBalance,
    reconstruct_by_account,
    reconstruct_running_balances,
)
from cashflow_kernel.exceptions import AccountNotFoundError
from cashflow_kernel.models.account import Account
from cashflow_kernel.models.advance import EmployeeAdvance
from cashflow_kernel.models.ledger_entry import LedgerEntry
from cashflow_kernel.selectors.account_selector import AccountSelector
from cashflow_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LedgerFilter:
    """Optional filters for a cash-history listing.  Dates are inclusive."""

    account_id: UUID | str | None = None
    date_from: date | None = None
    date_to: date | None = None
    source_type: SourceType | str | None = None


@dataclass(frozen=True)
class LedgerEntryView:
    """One cash-history entry as shown to callers."""

    id: UUID
    seq: int
    account_id: UUID
    account_name: str
    direction: Direction
    source_type: SourceType
    amount: Decimal
    description: str
    reference_id: str
    created_by: str
    created_by_name: str
    created_at: datetime

    @property
    def is_inflow(self) -> bool:
        return self.direction is Direction.INFLOW

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.is_inflow else -self.amount

    @classmethod
    def from_model(cls, entry: LedgerEntry) -> "LedgerEntryView":
        return cls(
            id=entry.id,
            seq=entry.seq,
            account_id=entry.account_id,
            account_name=entry.account.name,
            direction=Direction(entry.direction),
            source_type=SourceType(entry.source_type),
            amount=entry.amount,
            description=entry.description,
            reference_id=entry.reference_id,
            created_by=entry.created_by,
            created_by_name=entry.created_by_name,
            created_at=entry.created_at,
        )


@dataclass(frozen=True)
class AccountDaySummary:
    account_id: UUID
    account_name: str
    previous_balance: Decimal
    inflow: Decimal
    outflow: Decimal
    closing_balance: Decimal

    @property
    def net(self) -> Decimal:
        return self.inflow - self.outflow


@dataclass(frozen=True)
class DailySummary:
    """
    Cash position for one day.

    Per-account figures include transfer legs.  The totals exclude them,
    since a transfer only moves money between accounts.
    """

    day: date
    accounts: tuple[AccountDaySummary, ...]
    total_inflow: Decimal
    total_outflow: Decimal
    total_previous_balance: Decimal
    total_closing_balance: Decimal

    @property
    def total_net(self) -> Decimal:
        return self.total_inflow - self.total_outflow


@dataclass(frozen=True)
class ReconciliationRow:
    account_id: UUID
    account_name: str
    initial_balance: Decimal
    ledger_net: Decimal
    settled_advances: Decimal
    expected_balance: Decimal
    actual_balance: Decimal
    difference: Decimal
    is_consistent: bool


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class LedgerSelector(BaseSelector):
    def __init__(self, session):
        super().__init__(session)
        self.accounts = AccountSelector(session)

    def list_entries(self, ledger_filter: LedgerFilter | None = None) -> list[LedgerEntryView]:
        """Cash history matching ``ledger_filter``, newest first."""
        f = ledger_filter or LedgerFilter()
        query = select(LedgerEntry)
        if f.account_id is not None:
            query = query.where(LedgerEntry.account_id == self.accounts.get_account(f.account_id).id)
        if f.date_from is not None:
            query = query.where(LedgerEntry.created_at >= _day_start(f.date_from))
        if f.date_to is not None:
            query = query.where(LedgerEntry.created_at < _day_start(f.date_to + timedelta(days=1)))
        if f.source_type is not None:
            query = query.where(LedgerEntry.source_type == SourceType(f.source_type).value)
        query = query.order_by(LedgerEntry.seq.desc())
        return [LedgerEntryView.from_model(e) for e in self.session.execute(query).scalars()]

    def running_balances(
        self,
        account_id: UUID | str,
        entries: list[LedgerEntryView] | None = None,
    ) -> list[RunningBalance]:
        """
        Balance after each entry of one account.

        ``entries`` defaults to the account's full history.  When supplied it
        must be the account's most recent entries, newest first, without gaps.
        """
        account = self.accounts.get_account(account_id)
        if entries is None:
            entries = self.list_entries(LedgerFilter(account_id=account.id))
        return reconstruct_running_balances(account.balance, entries)

    def running_balances_for_listing(self, entries: list[LedgerEntryView]) -> list[RunningBalance]:
        """Running balances for a mixed-account listing, newest first."""
        balances = self.accounts.balances({e.account_id for e in entries})
        return reconstruct_by_account(balances, entries)

    def daily_summary(self, day: date) -> DailySummary:
        """
        Opening balance, inflow, outflow and closing balance of every
        account for ``day``.  Closing balance is derived backward from the
        current balance, so later days' entries are undone first.
        """
        start, end = _day_start(day), _day_start(day + timedelta(days=1))
        current = self.accounts.balances()
        names = dict(self.session.execute(select(Account.id, Account.name)).all())

        later_net: dict[UUID, Decimal] = {}
        inflow: dict[UUID, Decimal] = {}
        outflow: dict[UUID, Decimal] = {}
        total_inflow = ZERO
        total_outflow = ZERO

        rows = self.session.execute(
            select(
                LedgerEntry.account_id,
                LedgerEntry.direction,
                LedgerEntry.source_type,
                LedgerEntry.amount,
                LedgerEntry.created_at,
            ).where(LedgerEntry.created_at >= start)
        )
        for row in rows:
            incoming = Direction(row.direction) is Direction.INFLOW
            signed = row.amount if incoming else -row.amount
            if row.created_at >= _naive_like(end, row.created_at):
                later_net[row.account_id] = later_net.get(row.account_id, ZERO) + signed
                continue
            bucket = inflow if incoming else outflow
            bucket[row.account_id] = bucket.get(row.account_id, ZERO) + row.amount
            if not is_transfer(row.source_type):
                if incoming:
                    total_inflow += row.amount
                else:
                    total_outflow += row.amount

        summaries = []
        for account_id in sorted(current, key=lambda a: (names[a], str(a))):
            closing = current[account_id] - later_net.get(account_id, ZERO)
            day_in = inflow.get(account_id, ZERO)
            day_out = outflow.get(account_id, ZERO)
            summaries.append(
                AccountDaySummary(
                    account_id=account_id,
                    account_name=names[account_id],
                    previous_balance=closing - (day_in - day_out),
                    inflow=day_in,
                    outflow=day_out,
                    closing_balance=closing,
                )
            )

        return DailySummary(
            day=day,
            accounts=tuple(summaries),
            total_inflow=total_inflow,
            total_outflow=total_outflow,
            total_previous_balance=sum((s.previous_balance for s in summaries), ZERO),
            total_closing_balance=sum((s.closing_balance for s in summaries), ZERO),
        )

    def reconcile(
        self,
        account_id: UUID | str | None = None,
        decimal_places: int = 2,
    ) -> list[ReconciliationRow]:
        """
        Compare each account's stored balance with the balance implied by
        its cash history.  Differences are judged at ``decimal_places``.
        """
        accounts_q = select(Account).order_by(Account.name, Account.id)
        if account_id is not None:
            accounts_q = accounts_q.where(Account.id == self.accounts.get_account(account_id).id)
        accounts = list(
            self.session.execute(accounts_q.execution_options(populate_existing=True)).scalars()
        )

        signed_amount = case(
            (LedgerEntry.direction == Direction.INFLOW.value, LedgerEntry.amount),
            else_=-LedgerEntry.amount,
        )
        ledger_net = dict(
            self.session.execute(
                select(LedgerEntry.account_id, func.sum(signed_amount)).group_by(LedgerEntry.account_id)
            ).all()
        )
        settled = dict(
            self.session.execute(
                select(EmployeeAdvance.account_id, func.sum(EmployeeAdvance.amount))
                .where(EmployeeAdvance.remaining_amount <= 0)
                .group_by(EmployeeAdvance.account_id)
            ).all()
        )

        report = []
        for account in accounts:
            net = _as_decimal(ledger_net.get(account.id))
            settled_total = _as_decimal(settled.get(account.id))
            expected = account.initial_balance + net - settled_total
            difference = account.balance - expected
            report.append(
                ReconciliationRow(
                    account_id=account.id,
                    account_name=account.name,
                    initial_balance=account.initial_balance,
                    ledger_net=net,
                    settled_advances=settled_total,
                    expected_balance=expected,
                    actual_balance=account.balance,
                    difference=difference,
                    is_consistent=round_money(difference, decimal_places) == 0,
                )
            )
        return report


def _as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _naive_like(bound: datetime, sample: datetime) -> datetime:
    """Match ``bound`` to the tz-awareness of values read back from the store."""
    if sample.tzinfo is None:
        return bound.replace(tzinfo=None)
    return bound
