"""
ops_modules.inventory.models
============================

Responsibility:
    Frozen dataclass value objects for the inventory store -- items,
    suppliers, and the collection (inbound) and sale (outbound) stock
    transactions.

Architecture:
    Module layer (ops_modules).  In-memory DTOs; see ``orm.py`` for
    persistence.

Invariants enforced:
    - ``current_stock == total_collected - total_sold`` by construction
      (it is a derived property).
    - ``total_amount == quantity * unit_price`` on stock transactions.
    - Quantities and prices are ``Decimal``.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class ItemCategory(Enum):
    MAMA_PRODUCTS = "mama_products"
    BAGS = "bags"
    PAPER_BAGS = "paper_bags"
    HANDCRAFTED = "handcrafted"
    HOME_DECOR = "home_decor"
    ACCESSORIES = "accessories"
    OTHER = "other"


class ItemType(Enum):
    """Company outlet products vs. items bought from suppliers."""
    OUTLET_ITEM = "outlet_item"
    SUPPLIER_ITEM = "supplier_item"


class PaymentMethod(Enum):
    CASH = "cash"
    MOBILE = "mobile"
    BANK = "bank"


@dataclass(frozen=True)
class InventoryItem:
    """
    A stocked item.

    Contract:
        ``total_collected`` and ``total_sold`` are monotonic counters;
        ``current_stock`` is their difference and never negative.
        ``vat_rate`` is a fraction (``0.15`` for 15%).
    """
    id: str
    name: str
    unit_price: Decimal
    sale_price: Decimal
    min_stock_level: Decimal
    vat_rate: Decimal
    total_collected: Decimal
    total_sold: Decimal
    last_updated: datetime
    category: ItemCategory = ItemCategory.OTHER
    item_type: ItemType = ItemType.OUTLET_ITEM
    supplier_id: str | None = None
    sku: str | None = None
    barcode: str | None = None
    description: str | None = None

    @property
    def current_stock(self) -> Decimal:
        return self.total_collected - self.total_sold

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock < self.min_stock_level

    @property
    def stock_value(self) -> Decimal:
        """Cost-basis value of the stock on hand."""
        return self.current_stock * self.unit_price


@dataclass(frozen=True)
class Supplier:
    """A supplier (collector) delivering items into stock."""
    id: str
    name: str
    phone: str | None = None
    address: str | None = None
    total_collections: Decimal = Decimal("0")
    last_collection: datetime | None = None


@dataclass(frozen=True)
class CollectionTransaction:
    """Inbound stock event; immutable."""
    id: str
    item_id: str
    item_name: str
    quantity: Decimal
    unit_price: Decimal
    occurred_at: datetime
    receipt_number: str
    supplier_id: str | None = None
    supplier_name: str | None = None
    notes: str | None = None

    @property
    def total_amount(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class SaleTransaction:
    """Outbound stock event priced at the item's sale price; immutable."""
    id: str
    item_id: str
    item_name: str
    quantity: Decimal
    unit_price: Decimal
    occurred_at: datetime
    receipt_number: str
    payment_method: PaymentMethod = PaymentMethod.CASH
    customer_name: str | None = None

    @property
    def total_amount(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class SaleLine:
    """One requested line of a multi-item checkout."""
    item_id: str
    quantity: Decimal
