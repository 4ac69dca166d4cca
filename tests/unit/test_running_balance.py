"""Tests for backward running-balance reconstruction."""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from cashflow_kernel.domain.classification import SourceType
from cashflow_kernel.domain.running_balance import (
    reconstruct_by_account,
    reconstruct_running_balances,
)


@dataclass(frozen=True)
class Line:
    account_id: UUID
    source_type: SourceType
    amount: Decimal
    id: UUID = None

    def __post_init__(self):
        if self.id is None:
            object.__setattr__(self, "id", uuid4())


A = uuid4()
B = uuid4()


class TestSingleAccount:
    def test_empty_listing(self):
        assert reconstruct_running_balances(Decimal("500"), []) == []

    def test_newest_entry_ends_at_current_balance(self):
        entries = [
            Line(A, SourceType.MANUAL_CASH_IN, Decimal("100")),
            Line(A, SourceType.EXPENSE_PAYMENT, Decimal("40")),
        ]
        rows = reconstruct_running_balances(Decimal("1060"), entries)

        assert rows[0].balance_after == Decimal("1060")
        assert rows[0].balance_before == Decimal("960")
        assert rows[1].balance_after == Decimal("960")
        assert rows[1].balance_before == Decimal("1000")

    def test_consecutive_rows_chain(self):
        entries = [
            Line(A, SourceType.TRANSFER_IN, Decimal("5")),
            Line(A, SourceType.ADVANCE_ISSUANCE, Decimal("20")),
            Line(A, SourceType.SALES_PAYMENT, Decimal("7.5")),
            Line(A, SourceType.MANUAL_CASH_OUT, Decimal("1")),
        ]
        rows = reconstruct_running_balances(Decimal("100"), entries)
        for newer, older in zip(rows, rows[1:]):
            assert older.balance_after == newer.balance_before
            assert newer.balance_after - newer.signed_amount == newer.balance_before

    def test_signed_amount_follows_classification(self):
        rows = reconstruct_running_balances(
            Decimal("0"),
            [Line(A, SourceType.TRANSFER_OUT, Decimal("30"))],
        )
        assert rows[0].signed_amount == Decimal("-30")
        assert rows[0].balance_before == Decimal("30")

    def test_mixed_accounts_rejected(self):
        entries = [
            Line(A, SourceType.MANUAL_CASH_IN, Decimal("1")),
            Line(B, SourceType.MANUAL_CASH_IN, Decimal("1")),
        ]
        with pytest.raises(ValueError, match="span 2 accounts"):
            reconstruct_running_balances(Decimal("0"), entries)


class TestMixedListing:
    def test_each_account_walks_its_own_balance(self):
        entries = [
            Line(A, SourceType.TRANSFER_IN, Decimal("30")),
            Line(B, SourceType.TRANSFER_OUT, Decimal("30")),
            Line(A, SourceType.MANUAL_CASH_IN, Decimal("10")),
            Line(B, SourceType.EXPENSE_PAYMENT, Decimal("5")),
        ]
        rows = reconstruct_by_account({A: Decimal("140"), B: Decimal("65")}, entries)

        assert [r.account_id for r in rows] == [A, B, A, B]
        assert rows[0].balance_after == Decimal("140")
        assert rows[1].balance_after == Decimal("65")
        assert rows[2].balance_after == Decimal("110")
        assert rows[2].balance_before == Decimal("100")
        assert rows[3].balance_after == Decimal("95")
        assert rows[3].balance_before == Decimal("100")

    def test_interleaving_does_not_change_per_account_result(self):
        a_entries = [Line(A, SourceType.MANUAL_CASH_IN, Decimal(n)) for n in (1, 2, 3)]
        b_entries = [Line(B, SourceType.MANUAL_CASH_OUT, Decimal(n)) for n in (4, 5)]
        balances = {A: Decimal("50"), B: Decimal("50")}

        interleaved = [a_entries[0], b_entries[0], a_entries[1], b_entries[1], a_entries[2]]
        rows = reconstruct_by_account(balances, interleaved)
        a_rows = [r for r in rows if r.account_id == A]

        assert a_rows == reconstruct_running_balances(balances[A], a_entries)

    def test_missing_balance_rejected(self):
        with pytest.raises(ValueError, match="No current balance"):
            reconstruct_by_account({A: Decimal("1")}, [Line(B, SourceType.MANUAL_CASH_IN, Decimal("1"))])
