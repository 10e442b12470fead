"""
Module: ops_engines.receipts
Responsibility:
    Compose immutable receipts from one or more line items, computing
    per-line VAT from each item's own rate, and assign unique receipt
    numbers from an explicit per-type sequence.

Architecture position:
    Engines -- pure calculation plus the receipt number counter.  Owns no
    entities; issued receipts are archived by the caller.

Invariants enforced:
    - ``vat_amount = round(total_amount * vat_rate)`` per line, using the
      line's rate, never a global constant.
    - ``subtotal = sum(line totals)``, ``total_vat = sum(line VAT)`` and
      ``total_amount = subtotal + total_vat`` exactly, at the configured
      decimal places.
    - Receipt numbers are unique and strictly increasing per receipt type;
      collection and sale counters are independent.
    - A receipt is never mutated; ``supersede`` issues a new one.

Failure modes:
    - EmptyReceiptError when no line items are given.
    - InvalidQuantityError / InvalidAmountError for unusable line items.

Usage:
    from ops_engines.receipts import ReceiptGenerator, ReceiptLineItem, ReceiptType

    generator = ReceiptGenerator()
    receipt = generator.generate(
        receipt_type=ReceiptType.SALE,
        line_items=[ReceiptLineItem("Paper bag", Decimal("2"), Decimal("50"), Decimal("0.15"))],
    )
    receipt.total_amount  # Decimal("115.00")
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import uuid4

from ops_engines.tracer import traced_engine
from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.values import (
    ZERO,
    quantize,
    require_non_negative_amount,
    require_positive_quantity,
)
from ops_kernel.exceptions import EmptyReceiptError
from ops_kernel.logging_config import get_logger
from ops_modules.inventory.models import PaymentMethod

logger = get_logger("engines.receipts")


class ReceiptType(Enum):
    COLLECTION = "collection"
    SALE = "sale"

    @property
    def prefix(self) -> str:
        return "COL" if self is ReceiptType.COLLECTION else "SAL"


@dataclass(frozen=True)
class CompanyInfo:
    """Issuer details printed on every receipt."""

    name: str = ""
    address: str = ""
    phone: str = ""
    tin_number: str = ""
    vat_number: str = ""


@dataclass(frozen=True)
class ReceiptSettings:
    """
    Receipt configuration.

    Guarantees:
        - ``decimal_places >= 0`` and ``number_width >= 1``.
    """

    company_info: CompanyInfo = field(default_factory=CompanyInfo)
    decimal_places: int = 2
    rounding: str = ROUND_HALF_UP
    number_width: int = 6

    def __post_init__(self) -> None:
        if self.decimal_places < 0:
            raise ValueError("decimal_places cannot be negative")
        if self.number_width < 1:
            raise ValueError("number_width must be at least 1")


@dataclass(frozen=True)
class ReceiptLineItem:
    """
    Input line for a receipt.

    Contract:
        Values are normalized to Decimal on construction.  Quantity must
        be positive; unit price and VAT rate must not be negative.
    """

    name: str
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal
    item_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", require_positive_quantity(self.quantity))
        object.__setattr__(self, "unit_price", require_non_negative_amount(self.unit_price))
        rate = require_non_negative_amount(self.vat_rate)
        object.__setattr__(self, "vat_rate", rate)

    @property
    def total_amount(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class ReceiptLine:
    """A computed receipt line (VAT-exclusive total plus its VAT)."""

    name: str
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    item_id: str | None = None


@dataclass(frozen=True)
class Receipt:
    """
    Immutable receipt snapshot.

    Guarantees:
        - ``total_amount == subtotal + total_vat``.
        - ``lines`` is non-empty.
    """

    id: str
    receipt_number: str
    receipt_type: ReceiptType
    lines: tuple[ReceiptLine, ...]
    subtotal: Decimal
    total_vat: Decimal
    total_amount: Decimal
    issued_at: datetime
    company_info: CompanyInfo
    payment_method: PaymentMethod | None = None
    supplier_name: str | None = None
    customer_name: str | None = None
    notes: str | None = None
    supersedes: str | None = None

    @property
    def line_count(self) -> int:
        return len(self.lines)


class ReceiptSequence:
    """
    Explicit receipt number counter, one sequence per receipt type.

    Contract:
        ``next_number`` is serialized by a lock, so concurrent issuers
        never share a number.  Start values can be injected to resume a
        persisted sequence.
    """

    def __init__(
        self,
        start: Mapping[ReceiptType, int] | None = None,
        number_width: int = 6,
    ):
        self._counters: dict[ReceiptType, int] = {t: 0 for t in ReceiptType}
        if start:
            for receipt_type, value in start.items():
                if value < 0:
                    raise ValueError(f"Sequence start for {receipt_type.value} cannot be negative")
                self._counters[receipt_type] = value
        self._number_width = number_width
        self._lock = threading.Lock()

    def next_number(self, receipt_type: ReceiptType) -> str:
        with self._lock:
            self._counters[receipt_type] += 1
            value = self._counters[receipt_type]
        return f"{receipt_type.prefix}-{value:0{self._number_width}d}"

    def current(self) -> dict[ReceiptType, int]:
        """Last issued value per type (0 when none issued)."""
        with self._lock:
            return dict(self._counters)

    def restore(self, counters: Mapping[ReceiptType, int]) -> None:
        """Resume from persisted values.  Counters never move backwards."""
        with self._lock:
            self._check_restore(counters)
            self._counters.update(counters)

    def check_restore(self, counters: Mapping[ReceiptType, int]) -> None:
        """Raise ValueError if ``restore(counters)`` would rewind any type."""
        with self._lock:
            self._check_restore(counters)

    def _check_restore(self, counters: Mapping[ReceiptType, int]) -> None:
        for receipt_type, value in counters.items():
            if value < self._counters[receipt_type]:
                raise ValueError(
                    f"Cannot rewind {receipt_type.value} sequence from "
                    f"{self._counters[receipt_type]} to {value}"
                )


class ReceiptGenerator:
    """
    Compose receipts for collection and sale events.

    Contract:
        Pure with respect to inventory and ledger state; the only state
        it touches is its ``ReceiptSequence``.
    Non-goals:
        - Does not archive receipts; callers keep what they need.
    """

    def __init__(
        self,
        settings: ReceiptSettings | None = None,
        sequence: ReceiptSequence | None = None,
        clock: Clock | None = None,
    ):
        self._settings = settings or ReceiptSettings()
        self._sequence = sequence or ReceiptSequence(number_width=self._settings.number_width)
        self._clock = clock or SystemClock()

    @property
    def settings(self) -> ReceiptSettings:
        return self._settings

    @property
    def sequence(self) -> ReceiptSequence:
        return self._sequence

    def compute_line(self, item: ReceiptLineItem) -> ReceiptLine:
        """Price one line: rounded total and VAT at the item's own rate."""
        places = self._settings.decimal_places
        rounding = self._settings.rounding
        total = quantize(item.total_amount, places, rounding)
        vat = quantize(total * item.vat_rate, places, rounding)
        return ReceiptLine(
            name=item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_amount=total,
            vat_rate=item.vat_rate,
            vat_amount=vat,
            item_id=item.item_id,
        )

    @traced_engine("receipts", "1.0", fingerprint_fields=("receipt_type", "line_items"))
    def generate(
        self,
        receipt_type: ReceiptType,
        line_items: Sequence[ReceiptLineItem],
        payment_method: PaymentMethod | None = None,
        *,
        supplier_name: str | None = None,
        customer_name: str | None = None,
        notes: str | None = None,
        supersedes: str | None = None,
    ) -> Receipt:
        """
        Generate a new receipt.

        Preconditions:
            - ``line_items`` is non-empty.
        Postconditions:
            - A fresh receipt number has been consumed from the sequence.
        Raises:
            EmptyReceiptError: If ``line_items`` is empty.
        """
        if not line_items:
            logger.warning("receipt_rejected_empty", extra={
                "receipt_type": receipt_type.value,
            })
            raise EmptyReceiptError(receipt_type.value)

        lines = tuple(self.compute_line(item) for item in line_items)
        subtotal = sum((line.total_amount for line in lines), ZERO)
        total_vat = sum((line.vat_amount for line in lines), ZERO)

        receipt = Receipt(
            id=str(uuid4()),
            receipt_number=self._sequence.next_number(receipt_type),
            receipt_type=receipt_type,
            lines=lines,
            subtotal=subtotal,
            total_vat=total_vat,
            total_amount=subtotal + total_vat,
            issued_at=self._clock.now(),
            company_info=self._settings.company_info,
            payment_method=payment_method,
            supplier_name=supplier_name,
            customer_name=customer_name,
            notes=notes,
            supersedes=supersedes,
        )

        logger.info("receipt_generated", extra={
            "receipt_number": receipt.receipt_number,
            "receipt_type": receipt_type.value,
            "line_count": len(lines),
            "subtotal": str(subtotal),
            "total_vat": str(total_vat),
            "total_amount": str(receipt.total_amount),
            "supersedes": supersedes,
        })
        return receipt

    def supersede(
        self,
        original: Receipt,
        line_items: Sequence[ReceiptLineItem],
        *,
        notes: str | None = None,
    ) -> Receipt:
        """
        Issue a replacement for ``original``.

        The replacement carries a new number of the same type and names
        the original in ``supersedes``; ``original`` is left as issued.
        """
        return self.generate(
            receipt_type=original.receipt_type,
            line_items=line_items,
            payment_method=original.payment_method,
            supplier_name=original.supplier_name,
            customer_name=original.customer_name,
            notes=notes if notes is not None else original.notes,
            supersedes=original.receipt_number,
        )
