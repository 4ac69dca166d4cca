"""
Module: cashflow_kernel.domain.running_balance
Responsibility: Reconstruct the balance an account held after each cash-history
    entry, working backward from the account's current balance.
Architecture position: Kernel > Domain.  Pure functions, no I/O.  The read
    side (LedgerSelector) supplies a fresh current balance and the entries.

Invariants enforced:
    - The newest entry's ``balance_after`` equals the current balance.
    - For consecutive entries of one account,
      ``older.balance_after == newer.balance_after - signed(newer)``.
    - Each account has its own accumulator; entries of other accounts never
      affect it, whatever their interleaving in the listing.

Failure modes:
    - ValueError when a single-account reconstruction receives entries of
      more than one account, or when a current balance is missing.

Audit relevance:
    Reconstructed balances are display values.  They are never written back
    and never feed a mutation.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Protocol, Sequence
from uuid import UUID

from cashflow_kernel.domain.classification import SourceType, signed_amount


class LedgerLine(Protocol):
    """Minimal view of a cash-history entry needed for reconstruction."""

    id: UUID
    account_id: UUID
    source_type: SourceType | str
    amount: Decimal


@dataclass(frozen=True)
class RunningBalance:
    """Balance of ``account_id`` immediately before and after one entry."""

    entry_id: UUID
    account_id: UUID
    signed_amount: Decimal
    balance_before: Decimal
    balance_after: Decimal


def _step(line: LedgerLine, balance_after: Decimal) -> RunningBalance:
    delta = signed_amount(line.source_type, line.amount)
    return RunningBalance(
        entry_id=line.id,
        account_id=line.account_id,
        signed_amount=delta,
        balance_before=balance_after - delta,
        balance_after=balance_after,
    )


def reconstruct_running_balances(
    current_balance: Decimal,
    entries: Sequence[LedgerLine],
) -> list[RunningBalance]:
    """
    Running balances for one account.

    Args:
        current_balance: The account's balance now.
        entries: The account's entries, newest first.

    Returns:
        One RunningBalance per entry, in the same order.
    """
    account_ids = {line.account_id for line in entries}
    if len(account_ids) > 1:
        raise ValueError(
            f"Entries span {len(account_ids)} accounts; "
            "use reconstruct_by_account() for mixed listings"
        )

    result: list[RunningBalance] = []
    balance = current_balance
    for line in entries:
        row = _step(line, balance)
        result.append(row)
        balance = row.balance_before
    return result


def reconstruct_by_account(
    current_balances: Mapping[UUID, Decimal],
    entries: Iterable[LedgerLine],
) -> list[RunningBalance]:
    """
    Running balances for a newest-first listing that mixes accounts.

    Each account is walked back from its own entry in ``current_balances``.
    Rows are returned in input order.
    """
    working: dict[UUID, Decimal] = {}
    result: list[RunningBalance] = []
    for line in entries:
        if line.account_id not in working:
            if line.account_id not in current_balances:
                raise ValueError(f"No current balance supplied for account {line.account_id}")
            working[line.account_id] = current_balances[line.account_id]
        row = _step(line, working[line.account_id])
        working[line.account_id] = row.balance_before
        result.append(row)
    return result
