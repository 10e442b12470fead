"""
Operations configuration schema.

Frozen dataclasses the YAML configuration is parsed into.  Receipt and
rate settings reuse the engine value types directly so the runtime gets
exactly what was validated here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ops_engines.payment_rates import PaymentRateTable
from ops_engines.receipts import ReceiptSettings
from ops_engines.summary import DEFAULT_FORMULA


@dataclass(frozen=True)
class AccountSeed:
    """A bank account opened when the service starts."""

    name: str
    opening_balance: Decimal = Decimal("0")
    account_id: str | None = None
    is_cash: bool = False


CASH_CLASSIFICATIONS = ("all", "flagged")


@dataclass(frozen=True)
class OpsConfiguration:
    """
    Complete runtime configuration.

    ``cash_classification`` decides which accounts count toward the
    summary's cash balance: ``"all"`` treats every account as cash,
    ``"flagged"`` only those seeded with ``is_cash``.
    """

    config_id: str
    version: int
    accounts: tuple[AccountSeed, ...] = ()
    receipt_settings: ReceiptSettings = field(default_factory=ReceiptSettings)
    payment_rates: PaymentRateTable = field(default_factory=PaymentRateTable)
    default_vat_rate: Decimal = Decimal("0.15")
    reconciliation_formula: str = DEFAULT_FORMULA
    cash_classification: str = "flagged"
    checksum: str = ""
