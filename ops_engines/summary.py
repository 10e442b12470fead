"""
Module: ops_engines.summary
Responsibility:
    Produce a point-in-time financial snapshot across the ledger, the
    obligation tracker and (optionally) the inventory store, including a
    reconciliation gap computed by a pluggable formula.

Architecture position:
    Engines -- read-only aggregation.  Owns no entities; every call to
    ``snapshot()`` recomputes from the components' current state.

Invariants enforced:
    - ``cash_receivable_balance = cash_balance + total_receivable
      - total_payable``.
    - ``total_payable`` / ``total_receivable`` only count open
      obligations (pending / outstanding amounts).

Failure modes:
    - ConfigurationError for an unknown reconciliation formula name.

Consistency:
    Each component is read through its own consistent snapshot, one after
    another.  A mutation landing between two reads can make the summary
    slightly stale across components; it is never torn within one.

Usage:
    aggregator = FinancialSummaryAggregator(ledger, tracker, inventory)
    summary = aggregator.snapshot()
    summary.difference  # reconciliation gap for manual review
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ops_engines.tracer import traced_engine
from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.values import ZERO
from ops_kernel.exceptions import ConfigurationError
from ops_kernel.logging_config import get_logger
from ops_modules.cash.ledger import TransactionLedger
from ops_modules.cash.models import BankAccount
from ops_modules.inventory.store import InventoryStore
from ops_modules.obligations.models import ObligationKind
from ops_modules.obligations.tracker import ObligationTracker

logger = get_logger("engines.summary")


@dataclass(frozen=True)
class SummaryInputs:
    """Component totals a reconciliation formula works from."""

    total_payable: Decimal
    total_receivable: Decimal
    total_bank_balance: Decimal
    cash_balance: Decimal


ReconciliationFormula = Callable[[SummaryInputs], Decimal]


def cash_position(inputs: SummaryInputs) -> Decimal:
    """Cash on hand after settling every open obligation."""
    return inputs.cash_balance - inputs.total_payable + inputs.total_receivable


def bank_position(inputs: SummaryInputs) -> Decimal:
    """All account balances after settling every open obligation."""
    return inputs.total_bank_balance - inputs.total_payable + inputs.total_receivable


def net_obligations(inputs: SummaryInputs) -> Decimal:
    return inputs.total_receivable - inputs.total_payable


RECONCILIATION_FORMULAS: dict[str, ReconciliationFormula] = {
    "cash_position": cash_position,
    "bank_position": bank_position,
    "net_obligations": net_obligations,
}

DEFAULT_FORMULA = "cash_position"


def resolve_formula(formula: str | ReconciliationFormula) -> tuple[str, ReconciliationFormula]:
    """Return ``(name, callable)`` for a registered name or a callable."""
    if callable(formula):
        return getattr(formula, "__name__", "custom"), formula
    try:
        return formula, RECONCILIATION_FORMULAS[formula]
    except KeyError:
        raise ConfigurationError(
            "reconciliation_formula",
            f"unknown formula {formula!r}; expected one of {sorted(RECONCILIATION_FORMULAS)}",
        ) from None


def is_cash_account(account: BankAccount) -> bool:
    """Default classifier: accounts opened with ``is_cash=True``."""
    return account.is_cash


@dataclass(frozen=True)
class FinancialSummary:
    """Immutable financial snapshot."""

    total_payable: Decimal
    total_receivable: Decimal
    total_bank_balance: Decimal
    cash_balance: Decimal
    cash_receivable_balance: Decimal
    difference: Decimal
    reconciliation_formula: str
    as_of: datetime
    inventory_value: Decimal | None = None


class FinancialSummaryAggregator:
    """
    Read-only aggregation over the stateful components.

    Contract:
        Never caches; two snapshots with no mutation in between are equal
        apart from ``as_of``.
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        tracker: ObligationTracker,
        inventory: InventoryStore | None = None,
        *,
        cash_classifier: Callable[[BankAccount], bool] = is_cash_account,
        reconciliation: str | ReconciliationFormula = DEFAULT_FORMULA,
        clock: Clock | None = None,
    ):
        self._ledger = ledger
        self._tracker = tracker
        self._inventory = inventory
        self._cash_classifier = cash_classifier
        self._formula_name, self._formula = resolve_formula(reconciliation)
        self._clock = clock or SystemClock()

    @property
    def reconciliation_formula(self) -> str:
        return self._formula_name

    def snapshot(self) -> FinancialSummary:
        accounts = self._ledger.accounts()
        inputs = SummaryInputs(
            total_payable=self._tracker.outstanding_total(ObligationKind.PAYABLE),
            total_receivable=self._tracker.outstanding_total(ObligationKind.RECEIVABLE),
            total_bank_balance=sum((a.balance for a in accounts), ZERO),
            cash_balance=sum(
                (a.balance for a in accounts if self._cash_classifier(a)), ZERO
            ),
        )
        inventory_value = self._inventory.valuation() if self._inventory is not None else None
        return self._summarize(inputs=inputs, inventory_value=inventory_value)

    @traced_engine("financial_summary", "1.0", fingerprint_fields=("inputs",))
    def _summarize(
        self,
        inputs: SummaryInputs,
        inventory_value: Decimal | None,
    ) -> FinancialSummary:
        summary = FinancialSummary(
            total_payable=inputs.total_payable,
            total_receivable=inputs.total_receivable,
            total_bank_balance=inputs.total_bank_balance,
            cash_balance=inputs.cash_balance,
            cash_receivable_balance=(
                inputs.cash_balance + inputs.total_receivable - inputs.total_payable
            ),
            difference=self._formula(inputs),
            reconciliation_formula=self._formula_name,
            as_of=self._clock.now(),
            inventory_value=inventory_value,
        )
        logger.debug("financial_summary_computed", extra={
            "total_payable": str(summary.total_payable),
            "total_receivable": str(summary.total_receivable),
            "total_bank_balance": str(summary.total_bank_balance),
            "cash_balance": str(summary.cash_balance),
            "difference": str(summary.difference),
            "reconciliation_formula": self._formula_name,
        })
        return summary
