"""
ops_modules.obligations.tracker
===============================

Responsibility:
    Maintain payables and receivables, apply payments, and order unpaid
    payables for payout scheduling.  Owns the lifecycle of ``Payable``
    and ``Receivable`` records.

Architecture:
    Module layer (ops_modules).  Stateful, in-process.  Collector
    payouts are priced by ``ops_engines.payment_rates`` with a rate table
    injected at construction.

Invariants enforced:
    - ``0 <= paid <= amount`` for every obligation; ``amount > 0``.
    - ``pending`` and ``status`` are derived, never stored.
    - Payable payout order is ``(first_priority, second_priority,
      third_priority, due_date)`` ascending.

Failure modes:
    - InvalidAmountError for payments <= 0 or bad registration amounts.
    - OverPaymentError when a payment would push paid above amount.
    - UnknownObligationError / DuplicateObligationError on id problems.
    - ImmutableFieldError when an update names ``paid`` or an unknown field.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, replace
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from ops_engines.payment_rates import PaymentCalculator, PaymentRateTable
from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.values import (
    ZERO,
    Numeric,
    require_non_negative_amount,
    require_positive_amount,
)
from ops_kernel.exceptions import (
    DuplicateObligationError,
    ImmutableFieldError,
    OpsKernelError,
    OverPaymentError,
    UnknownObligationError,
)
from ops_kernel.logging_config import get_logger
from ops_modules.obligations.models import (
    ObligationKind,
    ObligationStatus,
    Payable,
    PayoutRecommendation,
    Receivable,
)

logger = get_logger("modules.obligations.tracker")

Obligation = Payable | Receivable

_FIXED_OBLIGATION_FIELDS = frozenset({"id", "paid", "created_at"})


@dataclass(frozen=True)
class ObligationRestore:
    """Validated persisted obligations, ready to install."""

    obligations: dict[str, Obligation]


class ObligationTracker:
    """
    Payables and receivables with derived payment status.

    Contract:
        Each obligation has its own lock; ``record_payment`` is an atomic
        read-modify-write under it.  All returned objects are frozen
        snapshots.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        rate_table: PaymentRateTable | None = None,
    ):
        self._clock = clock or SystemClock()
        self._calculator = PaymentCalculator(rate_table or PaymentRateTable())
        self._registry_lock = threading.Lock()
        self._obligations: dict[str, Obligation] = {}
        self._locks: dict[str, threading.Lock] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_payable(
        self,
        paid_to: str,
        purpose: str,
        amount: Numeric,
        due_date: date,
        *,
        paid: Numeric = ZERO,
        first_priority: int = 0,
        second_priority: int = 0,
        third_priority: int = 0,
        remark: str | None = None,
        payable_id: str | None = None,
    ) -> Payable:
        total, already_paid = self._validate_amounts(payable_id, amount, paid)
        payable = Payable(
            id=payable_id or str(uuid4()),
            due_date=due_date,
            paid_to=paid_to,
            purpose=purpose,
            amount=total,
            paid=already_paid,
            first_priority=first_priority,
            second_priority=second_priority,
            third_priority=third_priority,
            remark=remark,
            created_at=self._clock.now(),
        )
        self._register(payable)
        logger.info("payable_added", extra={
            "obligation_id": payable.id,
            "paid_to": paid_to,
            "amount": str(total),
            "paid": str(already_paid),
            "status": payable.status.value,
        })
        return payable

    def add_receivable(
        self,
        receivable_from: str,
        purpose: str,
        amount: Numeric,
        due_date: date,
        *,
        paid: Numeric = ZERO,
        bank: str | None = None,
        remark: str | None = None,
        receivable_id: str | None = None,
    ) -> Receivable:
        total, already_paid = self._validate_amounts(receivable_id, amount, paid)
        receivable = Receivable(
            id=receivable_id or str(uuid4()),
            due_date=due_date,
            receivable_from=receivable_from,
            purpose=purpose,
            amount=total,
            paid=already_paid,
            bank=bank,
            remark=remark,
            created_at=self._clock.now(),
        )
        self._register(receivable)
        logger.info("receivable_added", extra={
            "obligation_id": receivable.id,
            "receivable_from": receivable_from,
            "amount": str(total),
            "paid": str(already_paid),
            "status": receivable.status.value,
        })
        return receivable

    def accrue_collector_payment(
        self,
        collector: str,
        weights: Mapping[str, Numeric],
        collection_type: str,
        due_date: date,
        *,
        first_priority: int = 0,
        second_priority: int = 0,
        third_priority: int = 0,
        remark: str | None = None,
    ) -> Payable:
        """
        Price a collector's delivered weights and register the payout.

        Raises:
            InvalidAmountError: If the priced total is zero.
            InvalidQuantityError: If any weight is negative.
        """
        payment = self._calculator.calculate(weights=weights, collection_type=collection_type)
        materials = ", ".join(line.material for line in payment.lines)
        return self.add_payable(
            paid_to=collector,
            purpose=f"{collection_type} collection payment ({materials})",
            amount=payment.total,
            due_date=due_date,
            first_priority=first_priority,
            second_priority=second_priority,
            third_priority=third_priority,
            remark=remark,
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def record_payment(self, obligation_id: str, amount: Numeric) -> Obligation:
        """
        Apply a payment to a payable or receivable.

        Raises:
            InvalidAmountError: ``amount <= 0``.
            OverPaymentError: ``paid + amount > obligation amount``.
            UnknownObligationError: No obligation with that id.
        """
        try:
            payment = require_positive_amount(amount)
            with self._lock_for(obligation_id):
                current = self._obligations[obligation_id]
                new_paid = current.paid + payment
                if new_paid > current.amount:
                    raise OverPaymentError(
                        obligation_id, str(current.amount), str(current.paid), str(payment)
                    )
                updated = replace(current, paid=new_paid)
                with self._registry_lock:
                    self._obligations[obligation_id] = updated
        except OpsKernelError as e:
            logger.warning("payment_rejected", extra={
                "error_code": e.code,
                "obligation_id": obligation_id,
                "amount": str(amount),
            })
            raise

        logger.info("payment_recorded", extra={
            "obligation_id": obligation_id,
            "kind": _kind_of(updated).value,
            "payment": str(payment),
            "paid": str(updated.paid),
            "status": updated.status.value,
        })
        return updated

    def update_obligation(self, obligation_id: str, **changes: Any) -> Obligation:
        """
        Edit a payable's or receivable's terms.

        ``paid`` only moves through ``record_payment``.  A new ``amount``
        must stay positive and cover what has already been paid.

        Raises:
            ImmutableFieldError: ``id``, ``paid``, ``created_at`` or a
                field this kind of obligation does not have.
            InvalidAmountError: ``amount <= 0``.
            OverPaymentError: New ``amount`` below ``paid``.
            UnknownObligationError.
        """
        try:
            with self._lock_for(obligation_id):
                current = self._obligations[obligation_id]
                editable = {f.name for f in fields(current)} - _FIXED_OBLIGATION_FIELDS
                for field_name in changes:
                    if field_name not in editable:
                        raise ImmutableFieldError(obligation_id, field_name)
                values = dict(changes)
                if "amount" in values:
                    values["amount"] = require_positive_amount(values["amount"])
                    if values["amount"] < current.paid:
                        raise OverPaymentError(
                            obligation_id, str(values["amount"]), str(current.paid), "0"
                        )
                updated = replace(current, **values)
                with self._registry_lock:
                    self._obligations[obligation_id] = updated
        except OpsKernelError as e:
            logger.warning("obligation_update_rejected", extra={
                "error_code": e.code,
                "obligation_id": obligation_id,
            })
            raise

        logger.info("obligation_updated", extra={
            "obligation_id": obligation_id,
            "kind": _kind_of(updated).value,
            "fields": sorted(changes),
            "status": updated.status.value,
        })
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, obligation_id: str) -> Obligation:
        with self._lock_for(obligation_id):
            return self._obligations[obligation_id]

    def payables(self) -> tuple[Payable, ...]:
        return tuple(o for o in self._snapshot() if isinstance(o, Payable))

    def receivables(self) -> tuple[Receivable, ...]:
        return tuple(o for o in self._snapshot() if isinstance(o, Receivable))

    def unpaid_by_priority(self) -> tuple[Payable, ...]:
        """Open payables in payout order."""
        open_payables = [p for p in self.payables() if p.status is not ObligationStatus.PAID]
        return tuple(sorted(open_payables, key=lambda p: p.priority_key))

    def open_receivables(self) -> tuple[Receivable, ...]:
        return tuple(r for r in self.receivables() if r.status is not ObligationStatus.PAID)

    def outstanding_total(self, kind: ObligationKind = ObligationKind.PAYABLE) -> Decimal:
        """Sum of ``pending`` (payables) or ``outstanding`` (receivables)."""
        if kind is ObligationKind.PAYABLE:
            return sum((p.pending for p in self.payables()), ZERO)
        return sum((r.outstanding for r in self.receivables()), ZERO)

    def recommend_payouts(self, available_cash: Numeric) -> tuple[PayoutRecommendation, ...]:
        """
        Allocate ``available_cash`` across open payables in payout order.

        The last payable reached may be proposed a partial amount.  State
        is not modified.
        """
        remaining = require_non_negative_amount(available_cash)
        recommendations: list[PayoutRecommendation] = []
        for payable in self.unpaid_by_priority():
            if remaining <= ZERO:
                break
            proposed = min(payable.pending, remaining)
            recommendations.append(PayoutRecommendation(payable=payable, proposed_amount=proposed))
            remaining -= proposed

        logger.debug("payouts_recommended", extra={
            "available_cash": str(available_cash),
            "recommendation_count": len(recommendations),
            "unallocated": str(remaining),
        })
        return tuple(recommendations)

    # ------------------------------------------------------------------
    # Persistence support
    # ------------------------------------------------------------------

    def restore(self, payables: Iterable[Payable], receivables: Iterable[Receivable]) -> None:
        """Replace all state with previously persisted records."""
        self.commit_restore(self.prepare_restore(payables, receivables))

    def prepare_restore(
        self,
        payables: Iterable[Payable],
        receivables: Iterable[Receivable],
    ) -> ObligationRestore:
        """Validate persisted obligations without touching current state."""
        obligations: dict[str, Obligation] = {}
        for obligation in [*payables, *receivables]:
            if obligation.id in obligations:
                raise DuplicateObligationError(obligation.id)
            if not (ZERO <= obligation.paid <= obligation.amount):
                raise ValueError(f"Persisted obligation {obligation.id} has paid outside [0, amount]")
            obligations[obligation.id] = obligation
        return ObligationRestore(obligations=obligations)

    def commit_restore(self, plan: ObligationRestore) -> None:
        """Install obligations validated by ``prepare_restore``."""
        with self._registry_lock:
            self._obligations = dict(plan.obligations)
            self._locks = {obligation_id: threading.Lock() for obligation_id in plan.obligations}

        logger.info("obligations_restored", extra={"obligation_count": len(plan.obligations)})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_amounts(
        obligation_id: str | None,
        amount: Numeric,
        paid: Numeric,
    ) -> tuple[Decimal, Decimal]:
        total = require_positive_amount(amount)
        already_paid = require_non_negative_amount(paid)
        if already_paid > total:
            raise OverPaymentError(
                obligation_id or "<new>", str(total), str(ZERO), str(already_paid)
            )
        return total, already_paid

    def _register(self, obligation: Obligation) -> None:
        with self._registry_lock:
            if obligation.id in self._obligations:
                raise DuplicateObligationError(obligation.id)
            self._obligations[obligation.id] = obligation
            self._locks[obligation.id] = threading.Lock()

    def _lock_for(self, obligation_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(obligation_id)
        if lock is None:
            raise UnknownObligationError(obligation_id)
        return lock

    def _snapshot(self) -> list[Obligation]:
        with self._registry_lock:
            return list(self._obligations.values())


def _kind_of(obligation: Obligation) -> ObligationKind:
    return ObligationKind.PAYABLE if isinstance(obligation, Payable) else ObligationKind.RECEIVABLE


