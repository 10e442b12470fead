"""
Obligations ORM Models (``ops_modules.obligations.orm``).

Responsibility
--------------
SQLAlchemy persistence models for payables and receivables.  Only the
numeric state (``amount``, ``paid``) is stored; ``status`` and
``pending`` are recomputed by the DTOs on load.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ops_kernel.db.base``
and sibling ``models.py``.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ops_kernel.db.base import Base
from ops_modules.obligations.models import Payable, Receivable


class PayableModel(Base):
    """
    ORM model for ``Payable``.

    Table: ``obligation_payables``
    """

    __tablename__ = "obligation_payables"

    due_date: Mapped[date]
    paid_to: Mapped[str] = mapped_column(String(200))
    purpose: Mapped[str] = mapped_column(String(500))
    amount: Mapped[Decimal]
    paid: Mapped[Decimal]
    first_priority: Mapped[int] = mapped_column(default=0)
    second_priority: Mapped[int] = mapped_column(default=0)
    third_priority: Mapped[int] = mapped_column(default=0)
    remark: Mapped[str | None] = mapped_column(String(500))
    created_at: Mapped[datetime | None]

    __table_args__ = (
        Index("idx_obligation_payables_due_date", "due_date"),
    )

    def to_dto(self) -> Payable:
        return Payable(
            id=self.id,
            due_date=self.due_date,
            paid_to=self.paid_to,
            purpose=self.purpose,
            amount=self.amount,
            paid=self.paid,
            first_priority=self.first_priority,
            second_priority=self.second_priority,
            third_priority=self.third_priority,
            remark=self.remark,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: Payable) -> "PayableModel":
        return cls(
            id=dto.id,
            due_date=dto.due_date,
            paid_to=dto.paid_to,
            purpose=dto.purpose,
            amount=dto.amount,
            paid=dto.paid,
            first_priority=dto.first_priority,
            second_priority=dto.second_priority,
            third_priority=dto.third_priority,
            remark=dto.remark,
            created_at=dto.created_at,
        )

    def __repr__(self) -> str:
        return f"<PayableModel(id={self.id!r}, paid_to={self.paid_to!r})>"


class ReceivableModel(Base):
    """
    ORM model for ``Receivable``.

    Table: ``obligation_receivables``
    """

    __tablename__ = "obligation_receivables"

    due_date: Mapped[date]
    receivable_from: Mapped[str] = mapped_column(String(200))
    purpose: Mapped[str] = mapped_column(String(500))
    amount: Mapped[Decimal]
    paid: Mapped[Decimal]
    bank: Mapped[str | None] = mapped_column(String(200))
    remark: Mapped[str | None] = mapped_column(String(500))
    created_at: Mapped[datetime | None]

    __table_args__ = (
        Index("idx_obligation_receivables_due_date", "due_date"),
    )

    def to_dto(self) -> Receivable:
        return Receivable(
            id=self.id,
            due_date=self.due_date,
            receivable_from=self.receivable_from,
            purpose=self.purpose,
            amount=self.amount,
            paid=self.paid,
            bank=self.bank,
            remark=self.remark,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: Receivable) -> "ReceivableModel":
        return cls(
            id=dto.id,
            due_date=dto.due_date,
            receivable_from=dto.receivable_from,
            purpose=dto.purpose,
            amount=dto.amount,
            paid=dto.paid,
            bank=dto.bank,
            remark=dto.remark,
            created_at=dto.created_at,
        )

    def __repr__(self) -> str:
        return f"<ReceivableModel(id={self.id!r}, receivable_from={self.receivable_from!r})>"
