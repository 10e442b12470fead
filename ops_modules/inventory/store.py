"""
ops_modules.inventory.store
===========================

Responsibility:
    Maintain stock levels per item, apply collection (inbound) and sale
    (outbound) transactions, and flag low-stock items.  Every stock event
    issues a receipt through the injected ``ReceiptGenerator``.

Architecture:
    Module layer (ops_modules).  Stateful, in-process.  Owns
    ``InventoryItem``, ``Supplier``, ``CollectionTransaction`` and
    ``SaleTransaction`` records.

Invariants enforced:
    - ``current_stock = total_collected - total_sold`` and is never
      negative; a sale larger than the stock on hand is rejected and
      leaves the item untouched.
    - Counters only grow, and only through collections and sales;
      ``update_item`` cannot touch them.
    - A multi-line checkout updates all of its items or none of them.

Failure modes:
    - InvalidQuantityError for quantities <= 0.
    - InvalidAmountError for negative prices or VAT rates.
    - InsufficientStockError when selling more than is in stock.
    - UnknownItemError / UnknownSupplierError / DuplicateItemError.
    - EmptyReceiptError for a checkout with no lines.
    - ImmutableFieldError when an update names a counter or unknown field.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Sequence
from contextlib import ExitStack
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any
from uuid import uuid4

from ops_engines.receipts import Receipt, ReceiptGenerator, ReceiptLineItem, ReceiptType
from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.values import (
    ZERO,
    Numeric,
    require_non_negative_amount,
    require_positive_quantity,
    to_decimal,
)
from ops_kernel.exceptions import (
    DuplicateItemError,
    EmptyReceiptError,
    ImmutableFieldError,
    InsufficientStockError,
    InvalidQuantityError,
    OpsKernelError,
    UnknownItemError,
    UnknownSupplierError,
)
from ops_kernel.logging_config import get_logger
from ops_modules.inventory.models import (
    CollectionTransaction,
    InventoryItem,
    ItemCategory,
    ItemType,
    PaymentMethod,
    SaleLine,
    SaleTransaction,
    Supplier,
)

logger = get_logger("modules.inventory.store")

ReceiptListener = Callable[[Receipt], None]

DEFAULT_VAT_RATE = Decimal("0.15")


def _non_negative_quantity(value: Numeric) -> Decimal:
    try:
        quantity = to_decimal(value)
    except ValueError as e:
        raise InvalidQuantityError(str(value), "not a finite number") from e
    if quantity < ZERO:
        raise InvalidQuantityError(str(quantity), "quantity cannot be negative")
    return quantity


def _as_given(value: Any) -> Any:
    return value


# Editable item fields and how each new value is checked.
_ITEM_FIELDS: dict[str, Callable[[Any], Any]] = {
    "name": _as_given,
    "unit_price": require_non_negative_amount,
    "sale_price": require_non_negative_amount,
    "min_stock_level": _non_negative_quantity,
    "vat_rate": require_non_negative_amount,
    "category": ItemCategory,
    "item_type": ItemType,
    "supplier_id": _as_given,
    "sku": _as_given,
    "barcode": _as_given,
    "description": _as_given,
}

_SUPPLIER_FIELDS = frozenset({"name", "phone", "address"})


@dataclass(frozen=True)
class InventoryRestore:
    """Validated persisted inventory state, ready to install."""

    items: dict[str, InventoryItem]
    suppliers: dict[str, Supplier]
    collections: list[CollectionTransaction]
    sales: list[SaleTransaction]


class InventoryStore:
    """
    Per-item stock ledger for collections and sales.

    Contract:
        Each item has its own lock; multi-item operations take the locks
        in item-id order.  Receipt listeners run after the locks are
        released.
    """

    def __init__(
        self,
        receipt_generator: ReceiptGenerator | None = None,
        clock: Clock | None = None,
        default_vat_rate: Numeric = DEFAULT_VAT_RATE,
    ):
        self._clock = clock or SystemClock()
        self._receipts = receipt_generator or ReceiptGenerator(clock=self._clock)
        self._default_vat_rate = require_non_negative_amount(default_vat_rate)
        self._listeners: list[ReceiptListener] = []

        self._registry_lock = threading.Lock()
        self._items: dict[str, InventoryItem] = {}
        self._item_locks: dict[str, threading.Lock] = {}
        self._suppliers: dict[str, Supplier] = {}
        self._collections: list[CollectionTransaction] = []
        self._sales: list[SaleTransaction] = []

    def on_receipt(self, listener: ReceiptListener) -> None:
        """Register a callback invoked with every receipt this store issues."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_item(
        self,
        name: str,
        unit_price: Numeric,
        sale_price: Numeric,
        *,
        min_stock_level: Numeric = ZERO,
        opening_stock: Numeric = ZERO,
        vat_rate: Numeric | None = None,
        category: ItemCategory = ItemCategory.OTHER,
        item_type: ItemType = ItemType.OUTLET_ITEM,
        supplier_id: str | None = None,
        sku: str | None = None,
        barcode: str | None = None,
        description: str | None = None,
        item_id: str | None = None,
    ) -> InventoryItem:
        """
        Register an item.

        Opening stock is booked as collected, so
        ``current_stock == total_collected - total_sold`` holds from the
        start.
        """
        item = InventoryItem(
            id=item_id or str(uuid4()),
            name=name,
            unit_price=require_non_negative_amount(unit_price),
            sale_price=require_non_negative_amount(sale_price),
            min_stock_level=_non_negative_quantity(min_stock_level),
            vat_rate=(
                self._default_vat_rate if vat_rate is None
                else require_non_negative_amount(vat_rate)
            ),
            total_collected=_non_negative_quantity(opening_stock),
            total_sold=ZERO,
            last_updated=self._clock.now(),
            category=category,
            item_type=item_type,
            supplier_id=supplier_id,
            sku=sku,
            barcode=barcode,
            description=description,
        )
        with self._registry_lock:
            if supplier_id is not None and supplier_id not in self._suppliers:
                raise UnknownSupplierError(supplier_id)
            if item.id in self._items:
                raise DuplicateItemError(item.id)
            self._items[item.id] = item
            self._item_locks[item.id] = threading.Lock()

        logger.info("item_added", extra={
            "item_id": item.id,
            "item_name": name,
            "opening_stock": str(item.current_stock),
            "min_stock_level": str(item.min_stock_level),
            "vat_rate": str(item.vat_rate),
        })
        return item

    def add_supplier(
        self,
        name: str,
        *,
        phone: str | None = None,
        address: str | None = None,
        supplier_id: str | None = None,
    ) -> Supplier:
        supplier = Supplier(
            id=supplier_id or str(uuid4()),
            name=name,
            phone=phone,
            address=address,
        )
        with self._registry_lock:
            if supplier.id in self._suppliers:
                raise ValueError(f"Supplier already exists: {supplier.id}")
            self._suppliers[supplier.id] = supplier
        logger.info("supplier_added", extra={"supplier_id": supplier.id, "supplier_name": name})
        return supplier

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_item(self, item_id: str, **changes: Any) -> InventoryItem:
        """
        Change an item's descriptive and pricing fields.

        ``total_collected`` and ``total_sold`` only move through
        collections and sales, so naming them here is an error.

        Raises:
            ImmutableFieldError: A counter, ``id``, ``last_updated`` or a
                field items do not have.
            InvalidAmountError: Negative price or VAT rate.
            InvalidQuantityError: Negative minimum stock level.
            UnknownItemError / UnknownSupplierError.
        """
        try:
            values = {}
            for field, value in changes.items():
                check = _ITEM_FIELDS.get(field)
                if check is None:
                    raise ImmutableFieldError(item_id, field)
                values[field] = check(value)

            with self._lock_for(item_id):
                with self._registry_lock:
                    supplier_id = values.get("supplier_id")
                    if supplier_id is not None and supplier_id not in self._suppliers:
                        raise UnknownSupplierError(supplier_id)
                    updated = replace(
                        self._items[item_id], last_updated=self._clock.now(), **values
                    )
                    self._items[item_id] = updated
        except OpsKernelError as e:
            self._log_rejection("item_update_rejected", e, item_id, None)
            raise

        logger.info("item_updated", extra={
            "item_id": item_id,
            "fields": sorted(values),
        })
        return updated

    def update_supplier(self, supplier_id: str, **changes: Any) -> Supplier:
        """
        Change a supplier's contact details.

        Collection statistics are maintained by ``apply_collection``.
        """
        try:
            for field in changes:
                if field not in _SUPPLIER_FIELDS:
                    raise ImmutableFieldError(supplier_id, field)
            with self._registry_lock:
                current = self._suppliers.get(supplier_id)
                if current is None:
                    raise UnknownSupplierError(supplier_id)
                updated = replace(current, **changes)
                self._suppliers[supplier_id] = updated
        except OpsKernelError as e:
            logger.warning("supplier_update_rejected", extra={
                "error_code": e.code,
                "supplier_id": supplier_id,
            })
            raise

        logger.info("supplier_updated", extra={
            "supplier_id": supplier_id,
            "fields": sorted(changes),
        })
        return updated

    # ------------------------------------------------------------------
    # Stock movements
    # ------------------------------------------------------------------

    def apply_collection(
        self,
        item_id: str,
        quantity: Numeric,
        unit_price: Numeric,
        *,
        supplier_id: str | None = None,
        notes: str | None = None,
    ) -> CollectionTransaction:
        """
        Book inbound stock and issue a collection receipt.

        Raises:
            InvalidQuantityError: ``quantity <= 0``.
            InvalidAmountError: ``unit_price < 0``.
            UnknownItemError / UnknownSupplierError.
        """
        try:
            qty = require_positive_quantity(quantity)
            price = require_non_negative_amount(unit_price)
            supplier = self.get_supplier(supplier_id) if supplier_id is not None else None

            with self._lock_for(item_id):
                item = self._items[item_id]
                now = self._clock.now()
                receipt = self._receipts.generate(
                    receipt_type=ReceiptType.COLLECTION,
                    line_items=[ReceiptLineItem(item.name, qty, price, item.vat_rate, item.id)],
                    supplier_name=supplier.name if supplier else None,
                    notes=notes,
                )
                tx = CollectionTransaction(
                    id=str(uuid4()),
                    item_id=item.id,
                    item_name=item.name,
                    quantity=qty,
                    unit_price=price,
                    occurred_at=now,
                    receipt_number=receipt.receipt_number,
                    supplier_id=supplier.id if supplier else None,
                    supplier_name=supplier.name if supplier else None,
                    notes=notes,
                )
                updated = replace(
                    item,
                    total_collected=item.total_collected + qty,
                    last_updated=now,
                )
                with self._registry_lock:
                    self._items[item.id] = updated
                    self._collections.append(tx)
                    if supplier is not None:
                        current = self._suppliers[supplier.id]
                        self._suppliers[supplier.id] = replace(
                            current,
                            total_collections=current.total_collections + tx.total_amount,
                            last_collection=now,
                        )
        except OpsKernelError as e:
            self._log_rejection("collection_rejected", e, item_id, quantity)
            raise

        logger.info("collection_applied", extra={
            "transaction_id": tx.id,
            "item_id": item_id,
            "quantity": str(qty),
            "unit_price": str(price),
            "current_stock": str(updated.current_stock),
            "receipt_number": receipt.receipt_number,
        })
        self._notify(receipt)
        return tx

    def apply_sale(
        self,
        item_id: str,
        quantity: Numeric,
        *,
        payment_method: PaymentMethod | str = PaymentMethod.CASH,
        customer_name: str | None = None,
    ) -> SaleTransaction:
        """
        Sell stock at the item's sale price and issue a sale receipt.

        Raises:
            InvalidQuantityError: ``quantity <= 0``.
            InsufficientStockError: ``quantity > current_stock``; the
                item is left unchanged.
            UnknownItemError.
        """
        (tx,) = self.checkout(
            [SaleLine(item_id=item_id, quantity=quantity)],
            payment_method=payment_method,
            customer_name=customer_name,
        )
        return tx

    def checkout(
        self,
        lines: Sequence[SaleLine],
        *,
        payment_method: PaymentMethod | str = PaymentMethod.CASH,
        customer_name: str | None = None,
    ) -> tuple[SaleTransaction, ...]:
        """
        Sell several lines under one receipt, all-or-nothing.

        Lines naming the same item are checked against its stock
        together.  ``payment_method`` may be given by value (``"mobile"``);
        an unknown method raises ValueError before anything is touched.
        """
        payment_method = PaymentMethod(payment_method)
        item_ids = [line.item_id for line in lines]
        try:
            if not lines:
                raise EmptyReceiptError(ReceiptType.SALE.value)
            quantities = [require_positive_quantity(line.quantity) for line in lines]

            requested: dict[str, Decimal] = {}
            for line, qty in zip(lines, quantities):
                requested[line.item_id] = requested.get(line.item_id, ZERO) + qty

            with ExitStack() as stack:
                for item_id in sorted(requested):
                    stack.enter_context(self._lock_for(item_id))

                for item_id, qty in requested.items():
                    available = self._items[item_id].current_stock
                    if qty > available:
                        raise InsufficientStockError(item_id, str(qty), str(available))

                now = self._clock.now()
                receipt = self._receipts.generate(
                    receipt_type=ReceiptType.SALE,
                    line_items=[
                        ReceiptLineItem(
                            self._items[line.item_id].name,
                            qty,
                            self._items[line.item_id].sale_price,
                            self._items[line.item_id].vat_rate,
                            line.item_id,
                        )
                        for line, qty in zip(lines, quantities)
                    ],
                    payment_method=payment_method,
                    customer_name=customer_name,
                )
                transactions = tuple(
                    SaleTransaction(
                        id=str(uuid4()),
                        item_id=line.item_id,
                        item_name=self._items[line.item_id].name,
                        quantity=qty,
                        unit_price=self._items[line.item_id].sale_price,
                        occurred_at=now,
                        receipt_number=receipt.receipt_number,
                        payment_method=payment_method,
                        customer_name=customer_name,
                    )
                    for line, qty in zip(lines, quantities)
                )
                with self._registry_lock:
                    for item_id, qty in requested.items():
                        item = self._items[item_id]
                        self._items[item_id] = replace(
                            item,
                            total_sold=item.total_sold + qty,
                            last_updated=now,
                        )
                    self._sales.extend(transactions)
        except OpsKernelError as e:
            self._log_rejection("sale_rejected", e, ",".join(item_ids), None)
            raise

        logger.info("sale_applied", extra={
            "item_ids": sorted(requested),
            "line_count": len(transactions),
            "receipt_number": receipt.receipt_number,
            "payment_method": payment_method.value,
            "total_amount": str(receipt.total_amount),
        })
        self._notify(receipt)
        return transactions

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_item(self, item_id: str) -> InventoryItem:
        with self._lock_for(item_id):
            return self._items[item_id]

    def items(self) -> tuple[InventoryItem, ...]:
        with self._registry_lock:
            return tuple(self._items.values())

    def get_supplier(self, supplier_id: str) -> Supplier:
        with self._registry_lock:
            supplier = self._suppliers.get(supplier_id)
        if supplier is None:
            raise UnknownSupplierError(supplier_id)
        return supplier

    def suppliers(self) -> tuple[Supplier, ...]:
        with self._registry_lock:
            return tuple(self._suppliers.values())

    def collections(self) -> tuple[CollectionTransaction, ...]:
        with self._registry_lock:
            return tuple(self._collections)

    def sales(self) -> tuple[SaleTransaction, ...]:
        with self._registry_lock:
            return tuple(self._sales)

    def low_stock_items(self) -> frozenset[InventoryItem]:
        """Items whose current stock is below their minimum level."""
        return frozenset(item for item in self.items() if item.is_low_stock)

    def valuation(self) -> Decimal:
        """Cost-basis value of all stock on hand (current_stock * unit_price)."""
        return sum((item.stock_value for item in self.items()), ZERO)

    # ------------------------------------------------------------------
    # Persistence support
    # ------------------------------------------------------------------

    def restore(
        self,
        items: Iterable[InventoryItem],
        suppliers: Iterable[Supplier],
        collections: Iterable[CollectionTransaction],
        sales: Iterable[SaleTransaction],
    ) -> None:
        """Replace all state with previously persisted records."""
        self.commit_restore(self.prepare_restore(items, suppliers, collections, sales))

    def prepare_restore(
        self,
        items: Iterable[InventoryItem],
        suppliers: Iterable[Supplier],
        collections: Iterable[CollectionTransaction],
        sales: Iterable[SaleTransaction],
    ) -> InventoryRestore:
        """
        Check persisted records without touching the live store.

        Raises:
            ValueError: Negative stock, or an item naming a supplier that
                is not among ``suppliers``.
        """
        supplier_map = {supplier.id: supplier for supplier in suppliers}
        item_map = {item.id: item for item in items}
        for item in item_map.values():
            if item.current_stock < ZERO:
                raise ValueError(f"Persisted item {item.id} has negative stock")
            if item.supplier_id is not None and item.supplier_id not in supplier_map:
                raise ValueError(
                    f"Persisted item {item.id} names unknown supplier {item.supplier_id}"
                )
        return InventoryRestore(
            items=item_map,
            suppliers=supplier_map,
            collections=sorted(collections, key=lambda tx: tx.occurred_at),
            sales=sorted(sales, key=lambda tx: tx.occurred_at),
        )

    def commit_restore(self, plan: InventoryRestore) -> None:
        with self._registry_lock:
            self._items = dict(plan.items)
            self._item_locks = {item_id: threading.Lock() for item_id in plan.items}
            self._suppliers = dict(plan.suppliers)
            self._collections = list(plan.collections)
            self._sales = list(plan.sales)

        logger.info("inventory_restored", extra={
            "item_count": len(plan.items),
            "collection_count": len(plan.collections),
            "sale_count": len(plan.sales),
        })

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_for(self, item_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._item_locks.get(item_id)
        if lock is None:
            raise UnknownItemError(item_id)
        return lock

    def _notify(self, receipt: Receipt) -> None:
        for listener in self._listeners:
            listener(receipt)

    @staticmethod
    def _log_rejection(
        event: str,
        error: OpsKernelError,
        item_id: str,
        quantity: Numeric | None,
    ) -> None:
        logger.warning(event, extra={
            "error_code": error.code,
            "item_id": item_id,
            "quantity": None if quantity is None else str(quantity),
        })
