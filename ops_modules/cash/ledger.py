"""
ops_modules.cash.ledger
=======================

Responsibility:
    Append-only log of cash movements per bank account with running
    balances.  Owns the lifecycle of ``BankAccount`` and
    ``CashFlowTransaction`` records.

Architecture:
    Module layer (ops_modules).  Stateful, in-process; persistence is
    delegated to ``ops_services.persistence``.

Invariants enforced:
    - For each account, ``balance[i] = balance[i-1] + credit[i] - debit[i]``
      with ``balance[0]`` based on the opening balance.
    - ``BankAccount.balance`` equals the last transaction's ``balance``.
      The append and the balance update happen under the account lock,
      and readers take the same lock, so neither is visible alone.
    - Transactions on an account are chronological and never edited.
    - A transfer is a debit leg and a credit leg sharing ``transfer_id``.

Failure modes:
    - UnknownAccountError for unknown account ids.
    - InvalidAmountError for amounts <= 0.
    - InvalidTransactionDateError for back-dated entries.
    - DuplicateAccountError when opening an existing account id.
    - InvalidTransferError for a transfer without a distinct counter account.
    - ValueError for naive timestamps.
"""

from __future__ import annotations

import threading
from bisect import bisect_right
from collections.abc import Iterable
from contextlib import ExitStack
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.values import ZERO, Numeric, require_positive_amount, to_decimal
from ops_kernel.exceptions import (
    DuplicateAccountError,
    InvalidTransactionDateError,
    InvalidTransferError,
    OpsKernelError,
    UnknownAccountError,
)
from ops_kernel.logging_config import get_logger
from ops_modules.cash.models import (
    BankAccount,
    CashFlowTransaction,
    TransactionReference,
    TransactionType,
)

logger = get_logger("modules.cash.ledger")


def _require_aware(when: datetime) -> datetime:
    if when.tzinfo is None:
        raise ValueError(f"Naive datetime not accepted: {when!r}")
    return when


@dataclass(frozen=True)
class LedgerRestore:
    """Validated persisted ledger state, ready to install."""

    accounts: dict[str, BankAccount]
    history: dict[str, list[CashFlowTransaction]]


class TransactionLedger:
    """
    Per-account cash-flow ledger.

    Contract:
        Mutations on one account are serialized by a per-account lock;
        the account registry has its own lock.  All returned objects are
        frozen snapshots.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._registry_lock = threading.Lock()
        self._accounts: dict[str, BankAccount] = {}
        self._history: dict[str, list[CashFlowTransaction]] = {}
        self._locks: dict[str, threading.Lock] = {}

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def open_account(
        self,
        name: str,
        opening_balance: Numeric = ZERO,
        *,
        account_id: str | None = None,
        is_cash: bool = False,
    ) -> BankAccount:
        """Register an account.  Opening balances may be negative (overdraft)."""
        balance = to_decimal(opening_balance)
        account = BankAccount(
            id=account_id or str(uuid4()),
            name=name,
            balance=balance,
            opening_balance=balance,
            last_updated=self._clock.now(),
            is_cash=is_cash,
        )
        with self._registry_lock:
            if account.id in self._accounts:
                raise DuplicateAccountError(account.id)
            self._accounts[account.id] = account
            self._history[account.id] = []
            self._locks[account.id] = threading.Lock()

        logger.info("account_opened", extra={
            "account_id": account.id,
            "account_name": name,
            "opening_balance": str(balance),
            "is_cash": is_cash,
        })
        return account

    def get_account(self, account_id: str) -> BankAccount:
        with self._lock_for(account_id):
            return self._accounts[account_id]

    def accounts(self) -> tuple[BankAccount, ...]:
        with self._registry_lock:
            ids = list(self._accounts)
        return tuple(self.get_account(account_id) for account_id in ids)

    def total_balance(self) -> Decimal:
        return sum((account.balance for account in self.accounts()), ZERO)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def record_transaction(
        self,
        account_id: str,
        amount: Numeric,
        transaction_type: TransactionType | str,
        reference: TransactionReference | None = None,
        *,
        counter_account_id: str | None = None,
        occurred_at: datetime | None = None,
    ) -> CashFlowTransaction:
        """
        Append a cash movement and update the account balance.

        Deposits credit the account, withdrawals debit it.  A transfer
        debits ``account_id``, credits ``counter_account_id`` and returns
        the debit leg.

        Raises:
            UnknownAccountError: Unknown account or counter account.
            InvalidAmountError: ``amount <= 0``.
            InvalidTransactionDateError: ``occurred_at`` precedes the
                account's last transaction.
            InvalidTransferError: Transfer without a distinct counter account.
            ValueError: Naive ``occurred_at``.
        """
        transaction_type = TransactionType(transaction_type)
        if transaction_type is TransactionType.TRANSFER:
            debit_leg, _ = self.transfer(
                account_id,
                counter_account_id,
                amount,
                reference,
                occurred_at=occurred_at,
            )
            return debit_leg

        try:
            value = require_positive_amount(amount)
            with self._lock_for(account_id):
                when = _require_aware(occurred_at or self._clock.now())
                self._check_order(account_id, when)
                is_deposit = transaction_type is TransactionType.DEPOSIT
                tx = self._append(
                    account_id,
                    transaction_type,
                    debit=ZERO if is_deposit else value,
                    credit=value if is_deposit else ZERO,
                    when=when,
                    reference=reference or TransactionReference(),
                )
        except OpsKernelError as e:
            self._log_rejection(e, account_id, transaction_type, amount)
            raise

        logger.info("transaction_recorded", extra={
            "transaction_id": tx.id,
            "account_id": account_id,
            "transaction_type": transaction_type.value,
            "debit": str(tx.debit),
            "credit": str(tx.credit),
            "balance": str(tx.balance),
            "sequence": tx.sequence,
        })
        return tx

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str | None,
        amount: Numeric,
        reference: TransactionReference | None = None,
        *,
        occurred_at: datetime | None = None,
    ) -> tuple[CashFlowTransaction, CashFlowTransaction]:
        """
        Move ``amount`` between two accounts.

        Both account locks are taken in id order, so the two legs are
        appended together or not at all.
        """
        try:
            if to_account_id is None:
                raise InvalidTransferError(from_account_id, None, "a counter account is required")
            if to_account_id == from_account_id:
                raise InvalidTransferError(
                    from_account_id, to_account_id, "source and destination must differ"
                )
            value = require_positive_amount(amount)
            with ExitStack() as stack:
                for account_id in sorted((from_account_id, to_account_id)):
                    stack.enter_context(self._lock_for(account_id))
                when = _require_aware(occurred_at or self._clock.now())
                self._check_order(from_account_id, when)
                self._check_order(to_account_id, when)

                transfer_id = str(uuid4())
                ref = reference or TransactionReference()
                debit_leg = self._append(
                    from_account_id,
                    TransactionType.TRANSFER,
                    debit=value,
                    credit=ZERO,
                    when=when,
                    reference=ref,
                    transfer_id=transfer_id,
                )
                credit_leg = self._append(
                    to_account_id,
                    TransactionType.TRANSFER,
                    debit=ZERO,
                    credit=value,
                    when=when,
                    reference=ref,
                    transfer_id=transfer_id,
                )
        except OpsKernelError as e:
            self._log_rejection(e, from_account_id, TransactionType.TRANSFER, amount)
            raise

        logger.info("transfer_recorded", extra={
            "transfer_id": transfer_id,
            "from_account_id": from_account_id,
            "to_account_id": to_account_id,
            "amount": str(value),
        })
        return debit_leg, credit_leg

    def balance_at(self, account_id: str, timestamp: datetime) -> Decimal:
        """
        Balance after the last transaction at or before ``timestamp``.

        Raises:
            ValueError: If ``timestamp`` is naive.
        """
        timestamp = _require_aware(timestamp)
        with self._lock_for(account_id):
            history = self._history[account_id]
            index = bisect_right(history, timestamp, key=lambda tx: tx.occurred_at)
            if index == 0:
                return self._accounts[account_id].opening_balance
            return history[index - 1].balance

    def history(self, account_id: str) -> tuple[CashFlowTransaction, ...]:
        """Chronological transactions for ``account_id``."""
        with self._lock_for(account_id):
            return tuple(self._history[account_id])

    def transactions(self) -> tuple[CashFlowTransaction, ...]:
        """Every transaction on every account, in recording order."""
        with self._registry_lock:
            ids = list(self._accounts)
        merged = [tx for account_id in ids for tx in self.history(account_id)]
        merged.sort(key=lambda tx: (tx.created_at or tx.occurred_at, tx.occurred_at))
        return tuple(merged)

    # ------------------------------------------------------------------
    # Persistence support
    # ------------------------------------------------------------------

    def restore(
        self,
        accounts: Iterable[BankAccount],
        transactions: Iterable[CashFlowTransaction],
    ) -> None:
        """Replace all state with previously persisted records."""
        self.commit_restore(self.prepare_restore(accounts, transactions))

    def prepare_restore(
        self,
        accounts: Iterable[BankAccount],
        transactions: Iterable[CashFlowTransaction],
    ) -> LedgerRestore:
        """
        Validate persisted records without touching current state.

        Raises:
            UnknownAccountError: A transaction names an absent account.
            ValueError: If the running-balance chain of any account does
                not reproduce its stored balance.
        """
        account_map = {account.id: account for account in accounts}
        history: dict[str, list[CashFlowTransaction]] = {a: [] for a in account_map}
        for tx in sorted(transactions, key=lambda t: (t.account_id, t.sequence)):
            if tx.account_id not in account_map:
                raise UnknownAccountError(tx.account_id)
            history[tx.account_id].append(tx)

        for account_id, txs in history.items():
            running = account_map[account_id].opening_balance
            for tx in txs:
                running = running + tx.credit - tx.debit
                if running != tx.balance:
                    raise ValueError(
                        f"Running balance broken on account {account_id} "
                        f"at sequence {tx.sequence}"
                    )
            if running != account_map[account_id].balance:
                raise ValueError(f"Stored balance mismatch on account {account_id}")
        return LedgerRestore(accounts=account_map, history=history)

    def commit_restore(self, plan: LedgerRestore) -> None:
        """Install records validated by ``prepare_restore``."""
        with self._registry_lock:
            self._accounts = dict(plan.accounts)
            self._history = {k: list(v) for k, v in plan.history.items()}
            self._locks = {account_id: threading.Lock() for account_id in plan.accounts}

        logger.info("ledger_restored", extra={
            "account_count": len(plan.accounts),
            "transaction_count": sum(len(v) for v in plan.history.values()),
        })

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(account_id)
        if lock is None:
            raise UnknownAccountError(account_id)
        return lock

    def _check_order(self, account_id: str, when: datetime) -> None:
        history = self._history[account_id]
        if history and when < history[-1].occurred_at:
            raise InvalidTransactionDateError(
                account_id, when.isoformat(), history[-1].occurred_at.isoformat()
            )

    def _append(
        self,
        account_id: str,
        transaction_type: TransactionType,
        *,
        debit: Decimal,
        credit: Decimal,
        when: datetime,
        reference: TransactionReference,
        transfer_id: str | None = None,
    ) -> CashFlowTransaction:
        # Caller holds the account lock.
        account = self._accounts[account_id]
        history = self._history[account_id]
        new_balance = account.balance + credit - debit
        tx = CashFlowTransaction(
            id=str(uuid4()),
            account_id=account_id,
            account_name=account.name,
            sequence=len(history) + 1,
            occurred_at=when,
            transaction_type=transaction_type,
            debit=debit,
            credit=credit,
            balance=new_balance,
            bank_balance=new_balance,
            reference=reference,
            transfer_id=transfer_id,
            created_at=self._clock.now(),
        )
        history.append(tx)
        with self._registry_lock:
            self._accounts[account_id] = replace(account, balance=new_balance, last_updated=when)
        return tx

    @staticmethod
    def _log_rejection(
        error: OpsKernelError,
        account_id: str,
        transaction_type: TransactionType,
        amount: Numeric,
    ) -> None:
        logger.warning("transaction_rejected", extra={
            "error_code": error.code,
            "account_id": account_id,
            "transaction_type": transaction_type.value,
            "amount": str(amount),
        })
