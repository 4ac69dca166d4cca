"""
TransferService unit tests.

Tests cover:
- Happy path: both balances, both legs, shared reference
- Validation before any mutation: same account, bad amount, unknown account
- Funds check on the source account
- Compensation when a later step fails, and PartialFailureError when the
  compensation itself fails
- Reversal by an opposite transfer
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from cashflow_kernel.domain.classification import SourceType
from cashflow_kernel.exceptions import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    PartialFailureError,
    SameAccountTransferError,
    TransferNotFoundError,
)
from cashflow_kernel.models.ledger_entry import LedgerEntry
from cashflow_kernel.services.account_store import AccountStore
from cashflow_kernel.services.ledger_entry_store import LedgerEntryStore
from cashflow_kernel.services.transfer_service import TransferService


@pytest.fixture
def transfer_service(session, clock) -> TransferService:
    return TransferService(session, clock)


def _entry_count(session) -> int:
    return session.execute(select(func.count()).select_from(LedgerEntry)).scalar_one()


@pytest.fixture
def fail_transfer_in(monkeypatch):
    """Make appending the TRANSFER_IN leg fail."""
    original = LedgerEntryStore.append

    def failing_append(self, account_id, source_type, *args, **kwargs):
        if SourceType(source_type) is SourceType.TRANSFER_IN:
            raise RuntimeError("disk full")
        return original(self, account_id, source_type, *args, **kwargs)

    monkeypatch.setattr(LedgerEntryStore, "append", failing_append)


class TestTransfer:
    def test_moves_money_and_writes_both_legs(
        self, transfer_service, cash_account, bank_account, actor, balance_of
    ):
        result = transfer_service.transfer(
            cash_account.id, bank_account.id, Decimal("30000"), "Setor harian", actor
        )

        assert result.from_balance == Decimal("70000")
        assert result.to_balance == Decimal("80000")
        assert balance_of(cash_account.id) == Decimal("70000")
        assert balance_of(bank_account.id) == Decimal("80000")

        store = LedgerEntryStore(transfer_service.session)
        out_legs = store.find_by_reference(result.transfer_reference, SourceType.TRANSFER_OUT)
        in_legs = store.find_by_reference(result.transfer_reference, SourceType.TRANSFER_IN)
        assert len(out_legs) == 1 and len(in_legs) == 1
        assert out_legs[0].id == result.out_entry_id
        assert in_legs[0].id == result.in_entry_id
        assert out_legs[0].account_id == cash_account.id
        assert in_legs[0].account_id == bank_account.id
        assert out_legs[0].amount == in_legs[0].amount == Decimal("30000")
        assert out_legs[0].direction == "outflow"
        assert in_legs[0].direction == "inflow"
        assert out_legs[0].description == "Transfer to Bank BCA: Setor harian"
        assert in_legs[0].description == "Transfer from Kas Besar: Setor harian"
        assert out_legs[0].created_by == actor.id
        assert out_legs[0].seq < in_legs[0].seq

    def test_whole_balance_may_be_moved(self, transfer_service, cash_account, bank_account, actor):
        result = transfer_service.transfer(cash_account.id, bank_account.id, "100000", "", actor)
        assert result.from_balance == 0

    def test_description_without_note(self, transfer_service, cash_account, bank_account, actor):
        result = transfer_service.transfer(cash_account.id, bank_account.id, "1", "", actor)
        entry = LedgerEntryStore(transfer_service.session).get(result.out_entry_id)
        assert entry.description == "Transfer to Bank BCA"

    def test_logs_with_context(self, transfer_service, cash_account, bank_account, actor, captured_logs):
        result = transfer_service.transfer(cash_account.id, bank_account.id, "500", "x", actor)

        completed = [r for r in captured_logs() if r["message"] == "transfer_completed"]
        assert len(completed) == 1
        assert completed[0]["operation"] == "transfer"
        assert completed[0]["actor_id"] == actor.id
        assert completed[0]["reference_id"] == result.transfer_reference


class TestValidation:
    def test_same_account(self, transfer_service, cash_account, actor, session):
        with pytest.raises(SameAccountTransferError) as exc_info:
            transfer_service.transfer(cash_account.id, str(cash_account.id), "10", "", actor)
        assert exc_info.value.code == "SAME_ACCOUNT_TRANSFER"
        assert _entry_count(session) == 0

    @pytest.mark.parametrize("amount", ["0", "-10", "abc"])
    def test_bad_amount(self, transfer_service, cash_account, bank_account, actor, amount, balance_of):
        with pytest.raises(InvalidAmountError):
            transfer_service.transfer(cash_account.id, bank_account.id, amount, "", actor)
        assert balance_of(cash_account.id) == Decimal("100000")

    def test_unknown_destination(self, transfer_service, cash_account, actor, balance_of, session):
        with pytest.raises(AccountNotFoundError):
            transfer_service.transfer(cash_account.id, uuid4(), "10", "", actor)
        assert balance_of(cash_account.id) == Decimal("100000")
        assert _entry_count(session) == 0

    def test_insufficient_balance_changes_nothing(
        self, transfer_service, cash_account, bank_account, actor, balance_of, session
    ):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            transfer_service.transfer(cash_account.id, bank_account.id, "100000.01", "", actor)

        assert exc_info.value.account_id == str(cash_account.id)
        assert balance_of(cash_account.id) == Decimal("100000")
        assert balance_of(bank_account.id) == Decimal("50000")
        assert _entry_count(session) == 0


class TestCompensation:
    def test_failed_leg_rolls_back_everything(
        self, transfer_service, cash_account, bank_account, actor, balance_of, session,
        fail_transfer_in, captured_logs,
    ):
        with pytest.raises(RuntimeError, match="disk full"):
            transfer_service.transfer(cash_account.id, bank_account.id, "30000", "", actor)

        assert balance_of(cash_account.id) == Decimal("100000")
        assert balance_of(bank_account.id) == Decimal("50000")
        assert _entry_count(session) == 0

        compensated = [r for r in captured_logs() if r["message"] == "operation_compensated"]
        assert compensated[0]["failed_step"] == "append_transfer_in"
        assert compensated[0]["compensated_steps"] == [
            "append_transfer_out",
            "credit_destination",
            "debit_source",
        ]

    def test_failed_compensation_raises_partial_failure(
        self, transfer_service, cash_account, bank_account, actor, balance_of,
        fail_transfer_in, monkeypatch, captured_logs,
    ):
        original = AccountStore.mutate_balance

        def failing_mutate(self, account_id, signed_delta, *, minimum_balance=None):
            if account_id == bank_account.id and Decimal(signed_delta) < 0:
                raise RuntimeError("connection lost")
            return original(self, account_id, signed_delta, minimum_balance=minimum_balance)

        monkeypatch.setattr(AccountStore, "mutate_balance", failing_mutate)

        with pytest.raises(PartialFailureError) as exc_info:
            transfer_service.transfer(cash_account.id, bank_account.id, "30000", "", actor)

        error = exc_info.value
        assert error.code == "PARTIAL_FAILURE"
        assert error.operation == "transfer"
        assert error.failed_step == "append_transfer_in"
        assert error.completed_steps == ["debit_source", "credit_destination", "append_transfer_out"]
        assert error.compensated_steps == ["append_transfer_out", "debit_source"]
        assert list(error.failed_compensations) == ["credit_destination"]
        assert isinstance(error.__cause__, RuntimeError)

        # The source was restored; the destination keeps the stray credit.
        assert balance_of(cash_account.id) == Decimal("100000")
        assert balance_of(bank_account.id) == Decimal("80000")

        partial = [r for r in captured_logs() if r["message"] == "operation_partially_failed"]
        assert partial[0]["level"] == "ERROR"
        assert partial[0]["saga_operation"] == "transfer"


class TestReverse:
    def test_reverse_books_opposite_transfer(
        self, transfer_service, cash_account, bank_account, actor, balance_of
    ):
        original = transfer_service.transfer(cash_account.id, bank_account.id, "30000", "", actor)
        reversal = transfer_service.reverse(original.transfer_reference, actor)

        assert reversal.from_account_id == bank_account.id
        assert reversal.to_account_id == cash_account.id
        assert reversal.amount == Decimal("30000")
        assert balance_of(cash_account.id) == Decimal("100000")
        assert balance_of(bank_account.id) == Decimal("50000")

        store = LedgerEntryStore(transfer_service.session)
        assert len(store.find_by_reference(original.transfer_reference, SourceType.TRANSFER_OUT)) == 1
        reversal_leg = store.get(reversal.out_entry_id)
        assert reversal_leg.description.endswith(f"Reversal of transfer {original.transfer_reference}")

    def test_unknown_reference(self, transfer_service, actor):
        with pytest.raises(TransferNotFoundError):
            transfer_service.reverse(str(uuid4()), actor)
