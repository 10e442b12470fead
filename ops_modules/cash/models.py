"""
ops_modules.cash.models
=======================

Responsibility:
    Frozen dataclass value objects for the transaction ledger -- bank
    accounts, cash-flow transactions and their document references.
    No business logic beyond derived properties.

Architecture:
    Module layer (ops_modules).  In-memory DTOs, NOT SQLAlchemy ORM
    models; see ``orm.py`` for persistence.

Invariants enforced:
    - All monetary fields use ``Decimal`` -- never ``float``.
    - All DTOs are frozen (immutable after construction).
    - Exactly one of ``debit`` / ``credit`` is non-zero on a transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class TransactionType(Enum):
    """Cash movement kinds recorded by the ledger."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class TransactionReference:
    """
    Document and counterparty references attached to a cash movement.

    ``pv_number`` is the payment voucher, ``fs_number`` the fiscal sales
    receipt.  All fields are optional free text.
    """
    description: str = ""
    paid_to: str | None = None
    received_from: str | None = None
    pv_number: str | None = None
    cheque_number: str | None = None
    fs_number: str | None = None
    remark: str | None = None


@dataclass(frozen=True)
class BankAccount:
    """
    A bank (or cash-on-hand) account tracked by the ledger.

    Contract:
        ``balance`` equals the ``balance`` of the most recent transaction
        on the account, or ``opening_balance`` when there is none.  The
        ledger replaces the snapshot atomically with each append.

    Guarantees:
        - Immutable (frozen dataclass).
        - ``is_cash`` is a classification hint for the summary aggregator.
    """
    id: str
    name: str
    balance: Decimal
    opening_balance: Decimal
    last_updated: datetime
    is_cash: bool = False


@dataclass(frozen=True)
class CashFlowTransaction:
    """
    One leg of a cash movement on a single account.

    Contract:
        Immutable once appended.  Corrections are new offsetting
        transactions, never edits.

    Guarantees:
        - ``balance == previous balance + credit - debit``.
        - ``bank_balance`` is the balance of the transacting bank account
          right after this transaction; each transfer leg carries its own
          account's balance.
        - Both legs of a transfer share ``transfer_id``.
    """
    id: str
    account_id: str
    account_name: str
    sequence: int
    occurred_at: datetime
    transaction_type: TransactionType
    debit: Decimal
    credit: Decimal
    balance: Decimal
    bank_balance: Decimal
    reference: TransactionReference = field(default_factory=TransactionReference)
    transfer_id: str | None = None
    created_at: datetime | None = None

    @property
    def amount(self) -> Decimal:
        """The non-zero side of the transaction."""
        return self.debit if self.debit else self.credit

    @property
    def net_change(self) -> Decimal:
        """Signed effect on the account balance."""
        return self.credit - self.debit
