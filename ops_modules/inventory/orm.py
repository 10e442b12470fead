"""
Inventory ORM Models (``ops_modules.inventory.orm``).

Responsibility
--------------
SQLAlchemy persistence models for suppliers, inventory items and the
collection / sale stock transactions.  ``current_stock`` is not stored;
it is derived from the two counters on load.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ops_kernel.db.base``
and sibling ``models.py``.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ops_kernel.db.base import Base
from ops_modules.inventory.models import (
    CollectionTransaction,
    InventoryItem,
    ItemCategory,
    ItemType,
    PaymentMethod,
    SaleTransaction,
    Supplier,
)


# ---------------------------------------------------------------------------
# SupplierModel
# ---------------------------------------------------------------------------

class SupplierModel(Base):
    """
    ORM model for ``Supplier``.

    Table: ``inventory_suppliers``
    """

    __tablename__ = "inventory_suppliers"

    name: Mapped[str] = mapped_column(String(200))
    phone: Mapped[str | None] = mapped_column(String(50))
    address: Mapped[str | None] = mapped_column(String(500))
    total_collections: Mapped[Decimal]
    last_collection: Mapped[datetime | None]

    def to_dto(self) -> Supplier:
        return Supplier(
            id=self.id,
            name=self.name,
            phone=self.phone,
            address=self.address,
            total_collections=self.total_collections,
            last_collection=self.last_collection,
        )

    @classmethod
    def from_dto(cls, dto: Supplier) -> "SupplierModel":
        return cls(
            id=dto.id,
            name=dto.name,
            phone=dto.phone,
            address=dto.address,
            total_collections=dto.total_collections,
            last_collection=dto.last_collection,
        )

    def __repr__(self) -> str:
        return f"<SupplierModel(id={self.id!r}, name={self.name!r})>"


# ---------------------------------------------------------------------------
# InventoryItemModel
# ---------------------------------------------------------------------------

class InventoryItemModel(Base):
    """
    ORM model for ``InventoryItem``.

    Table: ``inventory_items``
    """

    __tablename__ = "inventory_items"

    name: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(50))
    item_type: Mapped[str] = mapped_column(String(50))
    unit_price: Mapped[Decimal]
    sale_price: Mapped[Decimal]
    min_stock_level: Mapped[Decimal]
    vat_rate: Mapped[Decimal]
    total_collected: Mapped[Decimal]
    total_sold: Mapped[Decimal]
    last_updated: Mapped[datetime]
    supplier_id: Mapped[str | None] = mapped_column(ForeignKey("inventory_suppliers.id"))
    sku: Mapped[str | None] = mapped_column(String(100))
    barcode: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(String(1000))

    __table_args__ = (
        Index("idx_inventory_items_sku", "sku"),
        Index("idx_inventory_items_barcode", "barcode"),
    )

    def to_dto(self) -> InventoryItem:
        return InventoryItem(
            id=self.id,
            name=self.name,
            unit_price=self.unit_price,
            sale_price=self.sale_price,
            min_stock_level=self.min_stock_level,
            vat_rate=self.vat_rate,
            total_collected=self.total_collected,
            total_sold=self.total_sold,
            last_updated=self.last_updated,
            category=ItemCategory(self.category),
            item_type=ItemType(self.item_type),
            supplier_id=self.supplier_id,
            sku=self.sku,
            barcode=self.barcode,
            description=self.description,
        )

    @classmethod
    def from_dto(cls, dto: InventoryItem) -> "InventoryItemModel":
        return cls(
            id=dto.id,
            name=dto.name,
            category=dto.category.value,
            item_type=dto.item_type.value,
            unit_price=dto.unit_price,
            sale_price=dto.sale_price,
            min_stock_level=dto.min_stock_level,
            vat_rate=dto.vat_rate,
            total_collected=dto.total_collected,
            total_sold=dto.total_sold,
            last_updated=dto.last_updated,
            supplier_id=dto.supplier_id,
            sku=dto.sku,
            barcode=dto.barcode,
            description=dto.description,
        )

    def __repr__(self) -> str:
        return f"<InventoryItemModel(id={self.id!r}, name={self.name!r})>"


# ---------------------------------------------------------------------------
# Stock transactions
# ---------------------------------------------------------------------------

class CollectionTransactionModel(Base):
    """
    ORM model for ``CollectionTransaction``.

    Table: ``inventory_collections``
    """

    __tablename__ = "inventory_collections"

    item_id: Mapped[str] = mapped_column(ForeignKey("inventory_items.id"))
    item_name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[Decimal]
    unit_price: Mapped[Decimal]
    occurred_at: Mapped[datetime]
    receipt_number: Mapped[str] = mapped_column(String(50))
    supplier_id: Mapped[str | None] = mapped_column(String(64))
    supplier_name: Mapped[str | None] = mapped_column(String(200))
    notes: Mapped[str | None] = mapped_column(String(1000))

    __table_args__ = (
        Index("idx_inventory_collections_item_id", "item_id"),
        Index("idx_inventory_collections_occurred_at", "occurred_at"),
    )

    def to_dto(self) -> CollectionTransaction:
        return CollectionTransaction(
            id=self.id,
            item_id=self.item_id,
            item_name=self.item_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            occurred_at=self.occurred_at,
            receipt_number=self.receipt_number,
            supplier_id=self.supplier_id,
            supplier_name=self.supplier_name,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto: CollectionTransaction) -> "CollectionTransactionModel":
        return cls(
            id=dto.id,
            item_id=dto.item_id,
            item_name=dto.item_name,
            quantity=dto.quantity,
            unit_price=dto.unit_price,
            occurred_at=dto.occurred_at,
            receipt_number=dto.receipt_number,
            supplier_id=dto.supplier_id,
            supplier_name=dto.supplier_name,
            notes=dto.notes,
        )


class SaleTransactionModel(Base):
    """
    ORM model for ``SaleTransaction``.

    Table: ``inventory_sales``
    """

    __tablename__ = "inventory_sales"

    item_id: Mapped[str] = mapped_column(ForeignKey("inventory_items.id"))
    item_name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[Decimal]
    unit_price: Mapped[Decimal]
    occurred_at: Mapped[datetime]
    receipt_number: Mapped[str] = mapped_column(String(50))
    payment_method: Mapped[str] = mapped_column(String(20))
    customer_name: Mapped[str | None] = mapped_column(String(200))

    __table_args__ = (
        Index("idx_inventory_sales_item_id", "item_id"),
        Index("idx_inventory_sales_occurred_at", "occurred_at"),
    )

    def to_dto(self) -> SaleTransaction:
        return SaleTransaction(
            id=self.id,
            item_id=self.item_id,
            item_name=self.item_name,
            quantity=self.quantity,
            unit_price=self.unit_price,
            occurred_at=self.occurred_at,
            receipt_number=self.receipt_number,
            payment_method=PaymentMethod(self.payment_method),
            customer_name=self.customer_name,
        )

    @classmethod
    def from_dto(cls, dto: SaleTransaction) -> "SaleTransactionModel":
        return cls(
            id=dto.id,
            item_id=dto.item_id,
            item_name=dto.item_name,
            quantity=dto.quantity,
            unit_price=dto.unit_price,
            occurred_at=dto.occurred_at,
            receipt_number=dto.receipt_number,
            payment_method=dto.payment_method.value,
            customer_name=dto.customer_name,
        )
