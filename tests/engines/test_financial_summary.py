"""
Tests for the Financial Summary Aggregator.

Covers:
- Totals over open obligations and account balances
- Cash classification
- Pluggable reconciliation formulas
- Fresh recomputation on every call
"""

from datetime import date
from decimal import Decimal

import pytest

from ops_engines.summary import (
    RECONCILIATION_FORMULAS,
    FinancialSummaryAggregator,
    SummaryInputs,
)
from ops_kernel.exceptions import ConfigurationError
from ops_modules.cash.models import TransactionType

DUE = date(2024, 2, 1)


@pytest.fixture
def populated(ledger, tracker):
    """Cash 1000, bank 5000; payables pending 600; receivable 300."""
    ledger.open_account("Till", 1000, account_id="till", is_cash=True)
    ledger.open_account("CBE Bank", 5000, account_id="cbe")
    tracker.add_payable("Supplier", "Cartons", 1000, DUE, paid=400)
    tracker.add_payable("Landlord", "Rent", 200, DUE, paid=200)
    tracker.add_receivable("Customer", "Order", 300, DUE)
    return ledger, tracker


class TestSnapshot:
    """Snapshot arithmetic."""

    def test_totals(self, populated, clock):
        ledger, tracker = populated
        aggregator = FinancialSummaryAggregator(ledger, tracker, clock=clock)

        summary = aggregator.snapshot()

        assert summary.total_payable == Decimal("600")
        assert summary.total_receivable == Decimal("300")
        assert summary.total_bank_balance == Decimal("6000")
        assert summary.cash_balance == Decimal("1000")
        assert summary.cash_receivable_balance == Decimal("700")
        assert summary.difference == Decimal("700")
        assert summary.reconciliation_formula == "cash_position"
        assert summary.as_of == clock.now()
        assert summary.inventory_value is None

    def test_custom_cash_classifier(self, populated):
        ledger, tracker = populated
        aggregator = FinancialSummaryAggregator(
            ledger, tracker, cash_classifier=lambda account: True
        )

        assert aggregator.snapshot().cash_balance == Decimal("6000")

    @pytest.mark.parametrize(
        "formula, expected",
        [
            ("cash_position", Decimal("700")),
            ("bank_position", Decimal("5700")),
            ("net_obligations", Decimal("-300")),
        ],
    )
    def test_named_formulas(self, populated, formula, expected):
        ledger, tracker = populated
        aggregator = FinancialSummaryAggregator(ledger, tracker, reconciliation=formula)

        summary = aggregator.snapshot()

        assert summary.difference == expected
        assert summary.reconciliation_formula == formula

    def test_callable_formula(self, populated):
        ledger, tracker = populated

        def payables_only(inputs: SummaryInputs) -> Decimal:
            return -inputs.total_payable

        summary = FinancialSummaryAggregator(ledger, tracker, reconciliation=payables_only).snapshot()

        assert summary.difference == Decimal("-600")
        assert summary.reconciliation_formula == "payables_only"

    def test_unknown_formula(self, ledger, tracker):
        with pytest.raises(ConfigurationError):
            FinancialSummaryAggregator(ledger, tracker, reconciliation="guess")

    def test_formula_registry(self):
        assert set(RECONCILIATION_FORMULAS) == {"cash_position", "bank_position", "net_obligations"}

    def test_recomputed_after_mutation(self, populated):
        ledger, tracker = populated
        aggregator = FinancialSummaryAggregator(ledger, tracker)
        before = aggregator.snapshot()

        ledger.record_transaction("till", 250, TransactionType.DEPOSIT)
        after = aggregator.snapshot()

        assert after.cash_balance - before.cash_balance == Decimal("250")
        assert after.difference - before.difference == Decimal("250")

    def test_inventory_value_included(self, ledger, tracker, inventory):
        inventory.add_item("Bag", unit_price=10, sale_price=20, opening_stock=3)

        summary = FinancialSummaryAggregator(ledger, tracker, inventory).snapshot()

        assert summary.inventory_value == Decimal("30")

    def test_empty_state(self, ledger, tracker):
        summary = FinancialSummaryAggregator(ledger, tracker).snapshot()

        assert summary.total_bank_balance == Decimal("0")
        assert summary.difference == Decimal("0")
