"""
Cash Ledger ORM Models (``ops_modules.cash.orm``).

Responsibility
--------------
SQLAlchemy persistence models for bank accounts and cash-flow
transactions.  Maps the frozen dataclasses from ``models.py`` to tables.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ops_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``ops_kernel`` except
through table registration in ``ops_kernel.db.engine``.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ops_kernel.db.base import Base
from ops_modules.cash.models import (
    BankAccount,
    CashFlowTransaction,
    TransactionReference,
    TransactionType,
)


# ---------------------------------------------------------------------------
# BankAccountModel
# ---------------------------------------------------------------------------

class BankAccountModel(Base):
    """
    ORM model for ``BankAccount``.

    Table: ``cash_bank_accounts``
    """

    __tablename__ = "cash_bank_accounts"

    name: Mapped[str] = mapped_column(String(200))
    balance: Mapped[Decimal]
    opening_balance: Mapped[Decimal]
    last_updated: Mapped[datetime]
    is_cash: Mapped[bool] = mapped_column(default=False)

    def to_dto(self) -> BankAccount:
        return BankAccount(
            id=self.id,
            name=self.name,
            balance=self.balance,
            opening_balance=self.opening_balance,
            last_updated=self.last_updated,
            is_cash=self.is_cash,
        )

    @classmethod
    def from_dto(cls, dto: BankAccount) -> "BankAccountModel":
        return cls(
            id=dto.id,
            name=dto.name,
            balance=dto.balance,
            opening_balance=dto.opening_balance,
            last_updated=dto.last_updated,
            is_cash=dto.is_cash,
        )

    def __repr__(self) -> str:
        return f"<BankAccountModel(id={self.id!r}, name={self.name!r})>"


# ---------------------------------------------------------------------------
# CashFlowTransactionModel
# ---------------------------------------------------------------------------

class CashFlowTransactionModel(Base):
    """
    ORM model for ``CashFlowTransaction``; the reference fields are
    flattened into columns.

    Table: ``cash_flow_transactions``
    """

    __tablename__ = "cash_flow_transactions"

    account_id: Mapped[str] = mapped_column(ForeignKey("cash_bank_accounts.id"))
    account_name: Mapped[str] = mapped_column(String(200))
    sequence: Mapped[int]
    occurred_at: Mapped[datetime]
    transaction_type: Mapped[str] = mapped_column(String(20))
    debit: Mapped[Decimal]
    credit: Mapped[Decimal]
    balance: Mapped[Decimal]
    bank_balance: Mapped[Decimal]
    description: Mapped[str] = mapped_column(String(500), default="")
    paid_to: Mapped[str | None] = mapped_column(String(200))
    received_from: Mapped[str | None] = mapped_column(String(200))
    pv_number: Mapped[str | None] = mapped_column(String(50))
    cheque_number: Mapped[str | None] = mapped_column(String(50))
    fs_number: Mapped[str | None] = mapped_column(String(50))
    remark: Mapped[str | None] = mapped_column(String(500))
    transfer_id: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime | None]

    __table_args__ = (
        UniqueConstraint("account_id", "sequence", name="uq_cash_flow_transactions_account_sequence"),
        Index("idx_cash_flow_transactions_occurred_at", "occurred_at"),
        Index("idx_cash_flow_transactions_transfer_id", "transfer_id"),
    )

    def to_dto(self) -> CashFlowTransaction:
        return CashFlowTransaction(
            id=self.id,
            account_id=self.account_id,
            account_name=self.account_name,
            sequence=self.sequence,
            occurred_at=self.occurred_at,
            transaction_type=TransactionType(self.transaction_type),
            debit=self.debit,
            credit=self.credit,
            balance=self.balance,
            bank_balance=self.bank_balance,
            reference=TransactionReference(
                description=self.description,
                paid_to=self.paid_to,
                received_from=self.received_from,
                pv_number=self.pv_number,
                cheque_number=self.cheque_number,
                fs_number=self.fs_number,
                remark=self.remark,
            ),
            transfer_id=self.transfer_id,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: CashFlowTransaction) -> "CashFlowTransactionModel":
        ref = dto.reference
        return cls(
            id=dto.id,
            account_id=dto.account_id,
            account_name=dto.account_name,
            sequence=dto.sequence,
            occurred_at=dto.occurred_at,
            transaction_type=dto.transaction_type.value,
            debit=dto.debit,
            credit=dto.credit,
            balance=dto.balance,
            bank_balance=dto.bank_balance,
            description=ref.description,
            paid_to=ref.paid_to,
            received_from=ref.received_from,
            pv_number=ref.pv_number,
            cheque_number=ref.cheque_number,
            fs_number=ref.fs_number,
            remark=ref.remark,
            transfer_id=dto.transfer_id,
            created_at=dto.created_at,
        )

    def __repr__(self) -> str:
        return (
            f"<CashFlowTransactionModel(id={self.id!r}, account_id={self.account_id!r}, "
            f"sequence={self.sequence!r})>"
        )
