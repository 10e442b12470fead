"""
Values -- Decimal conversion and validation helpers.

Responsibility:
    Converts caller-supplied numbers into ``Decimal`` and enforces the
    positivity rules shared by the ledger, tracker and inventory store.
    Floats are converted through ``str()`` so ``0.1`` stays ``0.1``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Every amount and quantity handled by the engine is a finite Decimal.
    - Positivity checks raise typed errors; nothing is clamped.

Failure modes:
    - ValueError when a value cannot be read as a finite Decimal.
    - InvalidAmountError / InvalidQuantityError from the ``require_*``
      helpers.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from ops_kernel.exceptions import InvalidAmountError, InvalidQuantityError

Numeric = Union[Decimal, int, float, str]

ZERO = Decimal("0")


def to_decimal(value: Numeric) -> Decimal:
    """
    Convert ``value`` to a finite Decimal.

    Raises:
        ValueError: If the value is not numeric or not finite.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid numeric value: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def require_positive_amount(value: Numeric) -> Decimal:
    """Return ``value`` as Decimal, or raise InvalidAmountError if <= 0."""
    try:
        amount = to_decimal(value)
    except ValueError as e:
        raise InvalidAmountError(str(value), "not a finite number") from e
    if amount <= ZERO:
        raise InvalidAmountError(str(amount))
    return amount


def require_non_negative_amount(value: Numeric) -> Decimal:
    """Return ``value`` as Decimal, or raise InvalidAmountError if < 0."""
    try:
        amount = to_decimal(value)
    except ValueError as e:
        raise InvalidAmountError(str(value), "not a finite number") from e
    if amount < ZERO:
        raise InvalidAmountError(str(amount), "amount cannot be negative")
    return amount


def require_positive_quantity(value: Numeric) -> Decimal:
    """Return ``value`` as Decimal, or raise InvalidQuantityError if <= 0."""
    try:
        quantity = to_decimal(value)
    except ValueError as e:
        raise InvalidQuantityError(str(value), "not a finite number") from e
    if quantity <= ZERO:
        raise InvalidQuantityError(str(quantity))
    return quantity


def quantize(value: Decimal, decimal_places: int, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round ``value`` to ``decimal_places`` (ROUND_HALF_UP by default)."""
    exponent = Decimal(1).scaleb(-decimal_places)
    return value.quantize(exponent, rounding=rounding)
