"""
Tests for the Transaction Ledger.

Covers:
- Running balances for deposits and withdrawals
- Transfers as two linked legs
- Rejection of bad amounts, unknown accounts and back-dated entries
- Point-in-time balances and chronological history
- Restore from persisted records
"""

from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from ops_kernel.exceptions import (
    DuplicateAccountError,
    InvalidAmountError,
    InvalidTransactionDateError,
    InvalidTransferError,
    UnknownAccountError,
)
from ops_modules.cash.models import TransactionReference, TransactionType


class TestRecordTransaction:
    """Deposits credit, withdrawals debit, balances chain."""

    def test_deposit_then_withdrawal(self, ledger):
        """Main 1000 -> deposit 500 -> 1500 -> withdrawal 200 -> 1300."""
        account = ledger.open_account("Main", Decimal("1000"))

        deposit = ledger.record_transaction(account.id, Decimal("500"), TransactionType.DEPOSIT)
        assert deposit.balance == Decimal("1500")
        assert ledger.get_account(account.id).balance == Decimal("1500")

        withdrawal = ledger.record_transaction(account.id, Decimal("200"), TransactionType.WITHDRAWAL)
        assert withdrawal.balance == Decimal("1300")
        assert ledger.get_account(account.id).balance == Decimal("1300")

    def test_exactly_one_side_is_non_zero(self, ledger):
        account = ledger.open_account("Main", 0)

        deposit = ledger.record_transaction(account.id, 50, TransactionType.DEPOSIT)
        withdrawal = ledger.record_transaction(account.id, 20, TransactionType.WITHDRAWAL)

        assert (deposit.credit, deposit.debit) == (Decimal("50"), Decimal("0"))
        assert (withdrawal.credit, withdrawal.debit) == (Decimal("0"), Decimal("20"))
        assert withdrawal.net_change == Decimal("-20")

    def test_sequence_numbers_are_per_account(self, ledger):
        a = ledger.open_account("A")
        b = ledger.open_account("B")

        ledger.record_transaction(a.id, 1, TransactionType.DEPOSIT)
        ledger.record_transaction(a.id, 1, TransactionType.DEPOSIT)
        tx_b = ledger.record_transaction(b.id, 1, TransactionType.DEPOSIT)

        assert [tx.sequence for tx in ledger.history(a.id)] == [1, 2]
        assert tx_b.sequence == 1

    def test_bank_balance_is_the_transacting_account_balance(self, ledger):
        """A=1000, B=5000, deposit 500 on A -> bank_balance 1500, not 6500."""
        a = ledger.open_account("A", 1000)
        ledger.open_account("B", 5000)

        tx = ledger.record_transaction(a.id, 500, TransactionType.DEPOSIT)

        assert tx.balance == Decimal("1500")
        assert tx.bank_balance == tx.balance
        assert ledger.total_balance() == Decimal("6500")

    def test_string_transaction_type_accepted(self, ledger):
        account = ledger.open_account("Main", 0)

        tx = ledger.record_transaction(account.id, "10.50", "deposit")

        assert tx.transaction_type is TransactionType.DEPOSIT
        assert tx.balance == Decimal("10.50")

    def test_withdrawal_may_overdraw(self, ledger):
        """No overdraft rule: negative balances are recorded, not clamped."""
        account = ledger.open_account("Main", 100)

        tx = ledger.record_transaction(account.id, 150, TransactionType.WITHDRAWAL)

        assert tx.balance == Decimal("-50")

    def test_reference_fields_kept(self, ledger):
        account = ledger.open_account("Main", 0)
        ref = TransactionReference(description="Fuel", paid_to="Station", pv_number="PV-7")

        tx = ledger.record_transaction(account.id, 30, TransactionType.WITHDRAWAL, ref)

        assert tx.reference.paid_to == "Station"
        assert tx.reference.pv_number == "PV-7"
        assert tx.account_name == "Main"

    def test_last_updated_follows_transaction(self, ledger, clock):
        account = ledger.open_account("Main", 0)
        clock.advance(3600)

        tx = ledger.record_transaction(account.id, 5, TransactionType.DEPOSIT)

        assert ledger.get_account(account.id).last_updated == tx.occurred_at


class TestRejections:
    """Failed operations raise typed errors and change nothing."""

    @pytest.mark.parametrize("amount", [0, -1, "-0.01", Decimal("0")])
    def test_non_positive_amount_rejected(self, ledger, amount):
        account = ledger.open_account("Main", 100)

        with pytest.raises(InvalidAmountError):
            ledger.record_transaction(account.id, amount, TransactionType.DEPOSIT)

        assert ledger.get_account(account.id).balance == Decimal("100")
        assert ledger.history(account.id) == ()

    def test_non_numeric_amount_rejected(self, ledger):
        account = ledger.open_account("Main", 100)

        with pytest.raises(InvalidAmountError):
            ledger.record_transaction(account.id, "abc", TransactionType.DEPOSIT)

    def test_unknown_account(self, ledger):
        with pytest.raises(UnknownAccountError) as exc_info:
            ledger.record_transaction("missing", 10, TransactionType.DEPOSIT)

        assert exc_info.value.account_id == "missing"
        assert exc_info.value.code == "UNKNOWN_ACCOUNT"

    def test_duplicate_account_id(self, ledger):
        ledger.open_account("Main", account_id="main")

        with pytest.raises(DuplicateAccountError):
            ledger.open_account("Other", account_id="main")

    def test_back_dated_transaction_rejected(self, ledger, clock):
        account = ledger.open_account("Main", 0)
        ledger.record_transaction(account.id, 10, TransactionType.DEPOSIT)

        with pytest.raises(InvalidTransactionDateError):
            ledger.record_transaction(
                account.id, 10, TransactionType.DEPOSIT,
                occurred_at=clock.now() - timedelta(hours=1),
            )

        assert len(ledger.history(account.id)) == 1

    def test_rejection_is_logged(self, ledger, captured_logs):
        account = ledger.open_account("Main", 0)

        with pytest.raises(InvalidAmountError):
            ledger.record_transaction(account.id, 0, TransactionType.DEPOSIT)

        rejected = [r for r in captured_logs() if r["message"] == "transaction_rejected"]
        assert rejected
        assert rejected[0]["error_code"] == "INVALID_AMOUNT"
        assert rejected[0]["level"] == "WARNING"


class TestTransfer:
    """Transfers debit one account and credit another with a shared id."""

    def test_transfer_moves_money(self, ledger):
        a = ledger.open_account("A", 1000)
        b = ledger.open_account("B", 0)

        debit_leg, credit_leg = ledger.transfer(a.id, b.id, Decimal("300"))

        assert ledger.get_account(a.id).balance == Decimal("700")
        assert ledger.get_account(b.id).balance == Decimal("300")
        assert debit_leg.debit == Decimal("300")
        assert credit_leg.credit == Decimal("300")
        assert debit_leg.transfer_id == credit_leg.transfer_id is not None

    def test_transfer_keeps_total(self, ledger):
        a = ledger.open_account("A", 1000)
        b = ledger.open_account("B", 500)

        debit_leg, credit_leg = ledger.transfer(a.id, b.id, 250)

        assert ledger.total_balance() == Decimal("1500")
        assert debit_leg.bank_balance == Decimal("750")
        assert credit_leg.bank_balance == Decimal("750")

    def test_record_transaction_transfer_returns_debit_leg(self, ledger):
        a = ledger.open_account("A", 100)
        b = ledger.open_account("B", 0)

        tx = ledger.record_transaction(
            a.id, 40, TransactionType.TRANSFER, counter_account_id=b.id
        )

        assert tx.account_id == a.id
        assert tx.debit == Decimal("40")
        assert ledger.history(b.id)[0].transfer_id == tx.transfer_id

    def test_transfer_requires_counter_account(self, ledger, captured_logs):
        a = ledger.open_account("A", 100)

        with pytest.raises(InvalidTransferError) as exc_info:
            ledger.record_transaction(a.id, 40, TransactionType.TRANSFER)

        assert exc_info.value.code == "INVALID_TRANSFER"
        assert ledger.history(a.id) == ()
        rejected = [r for r in captured_logs() if r["message"] == "transaction_rejected"]
        assert rejected[0]["error_code"] == "INVALID_TRANSFER"

    def test_transfer_to_same_account_rejected(self, ledger):
        a = ledger.open_account("A", 100)

        with pytest.raises(InvalidTransferError):
            ledger.transfer(a.id, a.id, 10)

        assert ledger.get_account(a.id).balance == Decimal("100")

    def test_transfer_to_unknown_account_leaves_source_untouched(self, ledger):
        a = ledger.open_account("A", 100)

        with pytest.raises(UnknownAccountError):
            ledger.transfer(a.id, "missing", 10)

        assert ledger.get_account(a.id).balance == Decimal("100")
        assert ledger.history(a.id) == ()


class TestBalanceAt:
    """Point-in-time balances."""

    def test_balance_at_walks_history(self, ledger, clock):
        account = ledger.open_account("Main", 100)
        before = clock.now() - timedelta(seconds=1)

        first = ledger.record_transaction(account.id, 50, TransactionType.DEPOSIT)
        clock.advance(60)
        second = ledger.record_transaction(account.id, 30, TransactionType.WITHDRAWAL)

        assert ledger.balance_at(account.id, before) == Decimal("100")
        assert ledger.balance_at(account.id, first.occurred_at) == Decimal("150")
        assert ledger.balance_at(account.id, first.occurred_at + timedelta(seconds=30)) == Decimal("150")
        assert ledger.balance_at(account.id, second.occurred_at) == Decimal("120")

    def test_balance_at_rejects_naive_timestamp(self, ledger):
        account = ledger.open_account("Main", 100)
        ledger.record_transaction(account.id, 50, TransactionType.DEPOSIT)

        with pytest.raises(ValueError):
            ledger.balance_at(account.id, datetime(2024, 1, 1, 12, 0))

    def test_naive_occurred_at_rejected(self, ledger):
        account = ledger.open_account("Main", 100)

        with pytest.raises(ValueError):
            ledger.record_transaction(
                account.id, 10, TransactionType.DEPOSIT, occurred_at=datetime(2024, 1, 2)
            )

        assert ledger.history(account.id) == ()

    def test_balance_at_unknown_account(self, ledger, clock):
        with pytest.raises(UnknownAccountError):
            ledger.balance_at("missing", clock.now())

    def test_history_is_immutable_snapshot(self, ledger):
        account = ledger.open_account("Main", 0)
        ledger.record_transaction(account.id, 5, TransactionType.DEPOSIT)

        history = ledger.history(account.id)
        ledger.record_transaction(account.id, 5, TransactionType.DEPOSIT)

        assert len(history) == 1
        assert len(ledger.history(account.id)) == 2


class TestRestore:
    """Restoring validates the running-balance chain."""

    def test_restore_round_trip(self, ledger, clock):
        from ops_modules.cash.ledger import TransactionLedger

        account = ledger.open_account("Main", 100)
        ledger.record_transaction(account.id, 50, TransactionType.DEPOSIT)
        ledger.record_transaction(account.id, 20, TransactionType.WITHDRAWAL)

        restored = TransactionLedger(clock=clock)
        restored.restore(ledger.accounts(), ledger.transactions())

        assert restored.get_account(account.id).balance == Decimal("130")
        assert restored.history(account.id) == ledger.history(account.id)

    def test_restore_rejects_broken_chain(self, ledger, clock):
        from ops_modules.cash.ledger import TransactionLedger

        account = ledger.open_account("Main", 100)
        tx = ledger.record_transaction(account.id, 50, TransactionType.DEPOSIT)

        restored = TransactionLedger(clock=clock)
        with pytest.raises(ValueError):
            restored.restore(ledger.accounts(), [replace(tx, balance=Decimal("999"))])
