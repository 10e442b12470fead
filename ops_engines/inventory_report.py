"""
Module: ops_engines.inventory_report
Responsibility:
    Summarize inventory activity for a reporting window: stock value,
    low-stock items, collection and sale totals, gross profit and the
    best-selling items by revenue.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Works on frozen item
    and stock-transaction snapshots supplied by the caller.

Invariants enforced:
    - ``gross_profit = sales_revenue - collection_costs``.
    - ``profit_margin = gross_profit / sales_revenue * 100``, and 0 when
      there is no revenue.
    - Per-item ``profit = revenue - quantity * unit_price`` (cost basis is
      the item's current unit price).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ops_engines.tracer import traced_engine
from ops_kernel.domain.values import ZERO
from ops_modules.inventory.models import (
    CollectionTransaction,
    InventoryItem,
    SaleTransaction,
)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class TopSellingItem:
    item_id: str
    name: str
    quantity: Decimal
    revenue: Decimal
    profit: Decimal


@dataclass(frozen=True)
class InventoryReport:
    """Inventory activity since ``since`` plus current stock position."""

    since: datetime | None
    total_items: int
    total_value: Decimal
    low_stock_items: tuple[InventoryItem, ...]
    collection_count: int
    collection_costs: Decimal
    sale_count: int
    sales_revenue: Decimal
    gross_profit: Decimal
    profit_margin: Decimal
    top_selling: tuple[TopSellingItem, ...]


@traced_engine("inventory_report", "1.0", fingerprint_fields=("since", "top_n"))
def build_inventory_report(
    items: Sequence[InventoryItem],
    collections: Iterable[CollectionTransaction],
    sales: Iterable[SaleTransaction],
    since: datetime | None = None,
    top_n: int = 5,
) -> InventoryReport:
    """
    Build the report.  Transactions before ``since`` are ignored; with
    ``since=None`` every transaction counts.
    """
    if top_n < 0:
        raise ValueError("top_n cannot be negative")

    window_collections = [c for c in collections if since is None or c.occurred_at >= since]
    window_sales = [s for s in sales if since is None or s.occurred_at >= since]

    costs = sum((c.total_amount for c in window_collections), ZERO)
    revenue = sum((s.total_amount for s in window_sales), ZERO)
    gross_profit = revenue - costs
    margin = gross_profit / revenue * HUNDRED if revenue > ZERO else ZERO

    by_id = {item.id: item for item in items}
    quantities: dict[str, Decimal] = {}
    revenues: dict[str, Decimal] = {}
    names: dict[str, str] = {}
    for sale in window_sales:
        quantities[sale.item_id] = quantities.get(sale.item_id, ZERO) + sale.quantity
        revenues[sale.item_id] = revenues.get(sale.item_id, ZERO) + sale.total_amount
        names.setdefault(sale.item_id, sale.item_name)

    top: list[TopSellingItem] = []
    for item_id, item_revenue in revenues.items():
        item = by_id.get(item_id)
        cost_basis = quantities[item_id] * item.unit_price if item is not None else ZERO
        top.append(TopSellingItem(
            item_id=item_id,
            name=item.name if item is not None else names[item_id],
            quantity=quantities[item_id],
            revenue=item_revenue,
            profit=item_revenue - cost_basis,
        ))
    # Highest revenue first; ties broken by id for stable output.
    top.sort(key=lambda t: (-t.revenue, t.item_id))

    return InventoryReport(
        since=since,
        total_items=len(items),
        total_value=sum((item.stock_value for item in items), ZERO),
        low_stock_items=tuple(sorted(
            (item for item in items if item.is_low_stock), key=lambda i: i.name
        )),
        collection_count=len(window_collections),
        collection_costs=costs,
        sale_count=len(window_sales),
        sales_revenue=revenue,
        gross_profit=gross_profit,
        profit_margin=margin,
        top_selling=tuple(top[:top_n]),
    )
