import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from errors import (
    AlreadyDisputedError,
    InsufficientFundsError,
    InsufficientHeldError,
    NotDisputedError,
    UnsupportedKindError,
)
from models import Transaction, TransactionType, ClientAccount, ProcessingResult, ProcessingStats


def funded_account(amount: str = "100") -> ClientAccount:
    account = ClientAccount(client_id=1)
    account.credit(Decimal(amount))
    return account


class TestTransaction:
    def test_create_deposit(self):
        transaction = Transaction(
            transaction_type=TransactionType.DEPOSIT,
            client_id=1,
            transaction_id=1,
            amount=Decimal("100.0"),
        )
        assert transaction.transaction_type == TransactionType.DEPOSIT
        assert transaction.client_id == 1
        assert transaction.transaction_id == 1
        assert transaction.amount == Decimal("100.0")

    def test_create_dispute_no_amount(self):
        transaction = Transaction(
            transaction_type=TransactionType.DISPUTE,
            client_id=1,
            transaction_id=1,
        )
        assert transaction.amount is None


class TestTransactionType:
    def test_from_string_is_case_insensitive(self):
        assert TransactionType.from_string("Deposit") == TransactionType.DEPOSIT
        assert TransactionType.from_string(" CHARGEBACK ") == TransactionType.CHARGEBACK

    def test_from_string_unknown(self):
        with pytest.raises(UnsupportedKindError):
            TransactionType.from_string("transfer")

    def test_carries_amount(self):
        assert TransactionType.DEPOSIT.carries_amount
        assert TransactionType.WITHDRAWAL.carries_amount
        assert not TransactionType.DISPUTE.carries_amount
        assert not TransactionType.RESOLVE.carries_amount
        assert not TransactionType.CHARGEBACK.carries_amount


class TestClientAccount:
    def test_default_values(self):
        account = ClientAccount(client_id=1)
        assert account.available == Decimal("0")
        assert account.held == Decimal("0")
        assert account.total == Decimal("0")
        assert account.locked is False
        assert account.disputed == {}

    def test_credit(self):
        account = funded_account("5.0")
        assert account.snapshot() == (Decimal("5.0"), Decimal("0"), Decimal("5.0"), False)

    def test_debit(self):
        account = funded_account("5.0")
        account.debit(Decimal("3.0"))
        assert account.available == Decimal("2.0")
        assert account.total == Decimal("2.0")
        assert account.held == Decimal("0")

    def test_debit_insufficient_funds_leaves_account_unchanged(self):
        account = funded_account("2.0")
        before = account.snapshot()
        with pytest.raises(InsufficientFundsError):
            account.debit(Decimal("10.0"))
        assert account.snapshot() == before

    def test_debit_whole_balance(self):
        account = funded_account("2.5")
        account.debit(Decimal("2.5"))
        assert account.available == Decimal("0")

    def test_hold_moves_funds_to_held(self):
        account = funded_account("100")
        account.hold(Decimal("40"), transaction_id=7)
        assert account.available == Decimal("60")
        assert account.held == Decimal("40")
        assert account.total == Decimal("100")
        assert account.disputed == {7: Decimal("40")}

    def test_hold_insufficient_funds(self):
        account = funded_account("10")
        before = account.snapshot()
        with pytest.raises(InsufficientFundsError):
            account.hold(Decimal("40"), transaction_id=7)
        assert account.snapshot() == before
        assert not account.is_disputed(7)

    def test_hold_twice_same_transaction(self):
        account = funded_account("100")
        account.hold(Decimal("10"), transaction_id=7)
        with pytest.raises(AlreadyDisputedError):
            account.hold(Decimal("10"), transaction_id=7)
        assert account.held == Decimal("10")
        assert account.available == Decimal("90")

    def test_release(self):
        account = funded_account("100")
        account.hold(Decimal("40"), transaction_id=7)
        released = account.release(7)
        assert released == Decimal("40")
        assert account.snapshot() == (Decimal("100"), Decimal("0"), Decimal("100"), False)
        assert not account.is_disputed(7)

    def test_release_not_disputed(self):
        account = funded_account("100")
        with pytest.raises(NotDisputedError):
            account.release(7)
        assert account.available == Decimal("100")

    def test_release_guards_against_corrupted_held(self):
        account = funded_account("100")
        account.hold(Decimal("40"), transaction_id=7)
        account.held = Decimal("10")
        account.total = account.available + account.held
        with pytest.raises(InsufficientHeldError):
            account.release(7)
        assert account.is_disputed(7)

    def test_forfeit_removes_funds_and_locks(self):
        account = funded_account("100")
        account.hold(Decimal("40"), transaction_id=7)
        forfeited = account.forfeit(7)
        assert forfeited == Decimal("40")
        assert account.snapshot() == (Decimal("60"), Decimal("0"), Decimal("60"), True)
        assert account.disputed == {}

    def test_large_balances_stay_exact(self):
        account = ClientAccount(client_id=1)
        for _ in range(20):
            account.credit(Decimal("1e18"))
        account.credit(Decimal("0.000000000000000001"))
        account.hold(Decimal("1e18"), transaction_id=1)

        assert account.available == Decimal("19000000000000000000.000000000000000001")
        assert account.held == Decimal("1e18")
        assert account.total == Decimal("20000000000000000000.000000000000000001")

    def test_forfeit_not_disputed_does_not_lock(self):
        account = funded_account("100")
        with pytest.raises(NotDisputedError):
            account.forfeit(7)
        assert account.locked is False


class TestProcessingResult:
    def test_enum_values(self):
        assert ProcessingResult.SUCCESS.value == "success"
        assert ProcessingResult.NOT_DISPUTED.value == "not_disputed"
        assert ProcessingResult.ACCOUNT_LOCKED.value == "account_locked"

    def test_is_success(self):
        assert ProcessingResult.SUCCESS.is_success
        assert not ProcessingResult.INSUFFICIENT_FUNDS.is_success


class TestProcessingStats:
    def test_counts(self):
        stats = ProcessingStats()
        stats.record(ProcessingResult.SUCCESS)
        stats.record(ProcessingResult.SUCCESS)
        stats.record(ProcessingResult.NOT_DISPUTED)
        stats.record(ProcessingResult.MALFORMED_RECORD)

        assert stats.processed == 2
        assert stats.failed == 2
        assert stats.count(ProcessingResult.NOT_DISPUTED) == 1
        assert stats.count(ProcessingResult.ACCOUNT_LOCKED) == 0

    def test_summary(self):
        stats = ProcessingStats()
        stats.record(ProcessingResult.SUCCESS)
        stats.record(ProcessingResult.NOT_DISPUTED)
        assert stats.summary() == "Processed: 1, Failed: 1 (not_disputed=1)"

    def test_summary_without_failures(self):
        stats = ProcessingStats()
        stats.record(ProcessingResult.SUCCESS)
        assert stats.summary() == "Processed: 1, Failed: 0"
