"""
Module: ops_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: receipt
    composition, collector payment pricing and the inventory report.

Architecture position:
    Engines -- calculation layer, zero I/O.
    May import ops_kernel and the frozen DTOs in ``ops_modules.*.models``.
    ``ops_engines.summary`` reads live stores and is imported directly,
    not re-exported here.

Invariants enforced:
    - Decimal-only arithmetic for all monetary amounts.
    - Timestamps come from an injected ``Clock``.

Usage:
    from ops_engines import ReceiptGenerator, ReceiptLineItem, ReceiptType
    from ops_engines.summary import FinancialSummaryAggregator
"""

from ops_engines.inventory_report import (
    InventoryReport,
    TopSellingItem,
    build_inventory_report,
)
from ops_engines.payment_rates import (
    CollectorPayment,
    PaymentCalculator,
    PaymentLine,
    PaymentRateTable,
)
from ops_engines.receipts import (
    CompanyInfo,
    Receipt,
    ReceiptGenerator,
    ReceiptLine,
    ReceiptLineItem,
    ReceiptSequence,
    ReceiptSettings,
    ReceiptType,
)
from ops_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "CollectorPayment",
    "CompanyInfo",
    "InventoryReport",
    "PaymentCalculator",
    "PaymentLine",
    "PaymentRateTable",
    "Receipt",
    "ReceiptGenerator",
    "ReceiptLine",
    "ReceiptLineItem",
    "ReceiptSequence",
    "ReceiptSettings",
    "ReceiptType",
    "TopSellingItem",
    "build_inventory_report",
    "compute_input_fingerprint",
    "traced_engine",
]
