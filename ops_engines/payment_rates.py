"""
Module: ops_engines.payment_rates
Responsibility:
    Price collected material by weight for collector (mama / janitor)
    payouts, using a rate table injected as configuration rather than a
    module-level constant, so rate changes are testable per period.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``line.amount = weight * rate`` and ``total = sum(line amounts)``.
    - Decimal-only arithmetic.

Failure modes:
    - InvalidQuantityError for negative weights.
    - ValueError for negative rates at table construction.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from ops_engines.tracer import traced_engine
from ops_kernel.domain.values import ZERO, to_decimal
from ops_kernel.exceptions import InvalidQuantityError
from ops_kernel.logging_config import get_logger

logger = get_logger("engines.payment_rates")


@dataclass(frozen=True)
class PaymentRateTable:
    """
    Rate per unit of weight, keyed by collection type then material.

    Contract:
        Material lookup is case-insensitive.  Materials missing from a
        collection type fall back to ``default_rate``.
    """

    rates: Mapping[str, Mapping[str, Decimal]] = field(default_factory=dict)
    default_rate: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        normalized: dict[str, dict[str, Decimal]] = {}
        for collection_type, materials in self.rates.items():
            table: dict[str, Decimal] = {}
            for material, rate in materials.items():
                value = to_decimal(rate)
                if value < ZERO:
                    raise ValueError(f"Rate for {collection_type}/{material} cannot be negative")
                table[material.lower()] = value
            normalized[collection_type.lower()] = table
        object.__setattr__(self, "rates", normalized)
        default = to_decimal(self.default_rate)
        if default < ZERO:
            raise ValueError("default_rate cannot be negative")
        object.__setattr__(self, "default_rate", default)

    def rate_for(self, collection_type: str, material: str) -> Decimal:
        table = self.rates.get(collection_type.lower(), {})
        return table.get(material.lower(), self.default_rate)

    @property
    def collection_types(self) -> tuple[str, ...]:
        return tuple(sorted(self.rates))


@dataclass(frozen=True)
class PaymentLine:
    material: str
    weight: Decimal
    rate: Decimal

    @property
    def amount(self) -> Decimal:
        return self.weight * self.rate


@dataclass(frozen=True)
class CollectorPayment:
    """Priced collection for one collector."""

    collection_type: str
    lines: tuple[PaymentLine, ...]

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)

    @property
    def total_weight(self) -> Decimal:
        return sum((line.weight for line in self.lines), ZERO)


class PaymentCalculator:
    """Pure pricing of collected weights against a ``PaymentRateTable``."""

    def __init__(self, rate_table: PaymentRateTable):
        self._rate_table = rate_table

    @property
    def rate_table(self) -> PaymentRateTable:
        return self._rate_table

    @traced_engine("payment_rates", "1.0", fingerprint_fields=("weights", "collection_type"))
    def calculate(
        self,
        weights: Mapping[str, Decimal],
        collection_type: str,
    ) -> CollectorPayment:
        """
        Price ``weights`` (material -> weight) for ``collection_type``.

        Zero weights are kept as zero-amount lines; negative weights are
        rejected.
        """
        lines: list[PaymentLine] = []
        for material, raw_weight in weights.items():
            try:
                weight = to_decimal(raw_weight)
            except ValueError as e:
                raise InvalidQuantityError(str(raw_weight), "not a finite number") from e
            if weight < ZERO:
                raise InvalidQuantityError(str(weight), "weight cannot be negative")
            lines.append(PaymentLine(
                material=material,
                weight=weight,
                rate=self._rate_table.rate_for(collection_type, material),
            ))

        payment = CollectorPayment(collection_type=collection_type, lines=tuple(lines))
        logger.debug("collector_payment_calculated", extra={
            "collection_type": collection_type,
            "line_count": len(lines),
            "total": str(payment.total),
        })
        return payment
