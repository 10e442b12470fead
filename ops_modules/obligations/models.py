"""
ops_modules.obligations.models
==============================

Responsibility:
    Frozen dataclass value objects for money owed by the business
    (payables) and to the business (receivables).

Architecture:
    Module layer (ops_modules).  In-memory DTOs; see ``orm.py`` for
    persistence.

Invariants enforced:
    - ``status`` and ``pending``/``outstanding`` are derived from
      ``amount`` and ``paid``; they cannot be set independently.
    - All monetary fields are ``Decimal``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class ObligationStatus(Enum):
    """Payment state derived from amount vs. paid."""
    PAID = "paid"
    UNPAID = "unpaid"
    PARTIAL = "partial"


class ObligationKind(Enum):
    PAYABLE = "payable"
    RECEIVABLE = "receivable"


def derive_status(amount: Decimal, paid: Decimal) -> ObligationStatus:
    """
    Status rule shared by payables and receivables.

    ``paid`` when nothing remains, ``unpaid`` when nothing has been paid,
    ``partial`` otherwise.  Amounts are always positive, so the first two
    cases never overlap.
    """
    if amount - paid == 0:
        return ObligationStatus.PAID
    if paid == 0:
        return ObligationStatus.UNPAID
    return ObligationStatus.PARTIAL


@dataclass(frozen=True)
class Payable:
    """
    Money owed by the business.

    Contract:
        Payout order is ``(first_priority, second_priority,
        third_priority, due_date)`` ascending; see ``priority_key``.
    """
    id: str
    due_date: date
    paid_to: str
    purpose: str
    amount: Decimal
    paid: Decimal
    first_priority: int = 0
    second_priority: int = 0
    third_priority: int = 0
    remark: str | None = None
    created_at: datetime | None = None

    @property
    def pending(self) -> Decimal:
        return self.amount - self.paid

    @property
    def status(self) -> ObligationStatus:
        return derive_status(self.amount, self.paid)

    @property
    def priority_key(self) -> tuple[int, int, int, date]:
        return (self.first_priority, self.second_priority, self.third_priority, self.due_date)


@dataclass(frozen=True)
class Receivable:
    """Money owed to the business."""
    id: str
    due_date: date
    receivable_from: str
    purpose: str
    amount: Decimal
    paid: Decimal
    bank: str | None = None
    remark: str | None = None
    created_at: datetime | None = None

    @property
    def outstanding(self) -> Decimal:
        return self.amount - self.paid

    @property
    def status(self) -> ObligationStatus:
        return derive_status(self.amount, self.paid)


@dataclass(frozen=True)
class PayoutRecommendation:
    """A proposed payment against one payable under a cash limit."""
    payable: Payable
    proposed_amount: Decimal

    @property
    def settles_in_full(self) -> bool:
        return self.proposed_amount == self.payable.pending
