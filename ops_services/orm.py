"""
Receipt Archive ORM Models (``ops_services.orm``).

Responsibility
--------------
SQLAlchemy persistence for issued receipts, their lines, and the receipt
number counters so a restored service continues numbering where it
stopped.

Architecture position
---------------------
**Services layer** -- persistence for the receipt archive owned by
``OperationsService``.  Imports from ``ops_kernel.db.base`` and
``ops_engines.receipts``.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ops_engines.receipts import CompanyInfo, Receipt, ReceiptLine, ReceiptType
from ops_kernel.db.base import Base
from ops_modules.inventory.models import PaymentMethod


# ---------------------------------------------------------------------------
# ReceiptModel
# ---------------------------------------------------------------------------

class ReceiptModel(Base):
    """
    ORM model for ``Receipt``; company details are snapshotted per row.

    Table: ``receipts``
    """

    __tablename__ = "receipts"

    receipt_number: Mapped[str] = mapped_column(String(50))
    receipt_type: Mapped[str] = mapped_column(String(20))
    subtotal: Mapped[Decimal]
    total_vat: Mapped[Decimal]
    total_amount: Mapped[Decimal]
    issued_at: Mapped[datetime]
    payment_method: Mapped[str | None] = mapped_column(String(20))
    supplier_name: Mapped[str | None] = mapped_column(String(200))
    customer_name: Mapped[str | None] = mapped_column(String(200))
    notes: Mapped[str | None] = mapped_column(String(1000))
    supersedes: Mapped[str | None] = mapped_column(String(50))
    company_name: Mapped[str] = mapped_column(String(200), default="")
    company_address: Mapped[str] = mapped_column(String(500), default="")
    company_phone: Mapped[str] = mapped_column(String(50), default="")
    company_tin_number: Mapped[str] = mapped_column(String(50), default="")
    company_vat_number: Mapped[str] = mapped_column(String(50), default="")

    lines: Mapped[list["ReceiptLineModel"]] = relationship(
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="ReceiptLineModel.line_number",
    )

    __table_args__ = (
        UniqueConstraint("receipt_number", name="uq_receipts_receipt_number"),
        Index("idx_receipts_issued_at", "issued_at"),
    )

    def to_dto(self) -> Receipt:
        return Receipt(
            id=self.id,
            receipt_number=self.receipt_number,
            receipt_type=ReceiptType(self.receipt_type),
            lines=tuple(line.to_dto() for line in self.lines),
            subtotal=self.subtotal,
            total_vat=self.total_vat,
            total_amount=self.total_amount,
            issued_at=self.issued_at,
            company_info=CompanyInfo(
                name=self.company_name,
                address=self.company_address,
                phone=self.company_phone,
                tin_number=self.company_tin_number,
                vat_number=self.company_vat_number,
            ),
            payment_method=PaymentMethod(self.payment_method) if self.payment_method else None,
            supplier_name=self.supplier_name,
            customer_name=self.customer_name,
            notes=self.notes,
            supersedes=self.supersedes,
        )

    @classmethod
    def from_dto(cls, dto: Receipt) -> "ReceiptModel":
        company = dto.company_info
        return cls(
            id=dto.id,
            receipt_number=dto.receipt_number,
            receipt_type=dto.receipt_type.value,
            subtotal=dto.subtotal,
            total_vat=dto.total_vat,
            total_amount=dto.total_amount,
            issued_at=dto.issued_at,
            payment_method=dto.payment_method.value if dto.payment_method else None,
            supplier_name=dto.supplier_name,
            customer_name=dto.customer_name,
            notes=dto.notes,
            supersedes=dto.supersedes,
            company_name=company.name,
            company_address=company.address,
            company_phone=company.phone,
            company_tin_number=company.tin_number,
            company_vat_number=company.vat_number,
            lines=[
                ReceiptLineModel.from_dto(line, receipt_id=dto.id, line_number=n)
                for n, line in enumerate(dto.lines, start=1)
            ],
        )

    def __repr__(self) -> str:
        return f"<ReceiptModel(receipt_number={self.receipt_number!r})>"


class ReceiptLineModel(Base):
    """
    ORM model for ``ReceiptLine``.

    Table: ``receipt_lines``
    """

    __tablename__ = "receipt_lines"

    receipt_id: Mapped[str] = mapped_column(ForeignKey("receipts.id"))
    line_number: Mapped[int]
    name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[Decimal]
    unit_price: Mapped[Decimal]
    total_amount: Mapped[Decimal]
    vat_rate: Mapped[Decimal]
    vat_amount: Mapped[Decimal]
    item_id: Mapped[str | None] = mapped_column(String(64))

    receipt: Mapped["ReceiptModel"] = relationship(back_populates="lines")

    __table_args__ = (
        UniqueConstraint("receipt_id", "line_number", name="uq_receipt_lines_receipt_line"),
    )

    def to_dto(self) -> ReceiptLine:
        return ReceiptLine(
            name=self.name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total_amount=self.total_amount,
            vat_rate=self.vat_rate,
            vat_amount=self.vat_amount,
            item_id=self.item_id,
        )

    @classmethod
    def from_dto(cls, dto: ReceiptLine, receipt_id: str, line_number: int) -> "ReceiptLineModel":
        return cls(
            id=f"{receipt_id}:{line_number}",
            receipt_id=receipt_id,
            line_number=line_number,
            name=dto.name,
            quantity=dto.quantity,
            unit_price=dto.unit_price,
            total_amount=dto.total_amount,
            vat_rate=dto.vat_rate,
            vat_amount=dto.vat_amount,
            item_id=dto.item_id,
        )


# ---------------------------------------------------------------------------
# ReceiptCounterModel
# ---------------------------------------------------------------------------

class ReceiptCounterModel(Base):
    """
    Last issued receipt number per receipt type; ``id`` is the type value.

    Table: ``receipt_counters``
    """

    __tablename__ = "receipt_counters"

    last_value: Mapped[int] = mapped_column(default=0)
