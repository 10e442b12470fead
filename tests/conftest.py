"""
Pytest fixtures for the ops engine test suite.

Provides:
- Deterministic clock
- Fresh ledger / tracker / inventory / service instances
- Structured logging capture

Database tests use in-memory SQLite; no external services are needed.
"""

import json
import logging
from io import StringIO

import pytest

from ops_config import get_active_config
from ops_engines.payment_rates import PaymentRateTable
from ops_engines.receipts import CompanyInfo, ReceiptGenerator, ReceiptSettings
from ops_kernel.domain.clock import DeterministicClock
from ops_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ops_modules.cash.ledger import TransactionLedger
from ops_modules.inventory.store import InventoryStore
from ops_modules.obligations.tracker import ObligationTracker
from ops_services.operations import OperationsService

TEST_ACTOR_ID = "test-actor"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ops_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.open_account("Main")
            logs = captured_logs()
            assert any(r["message"] == "account_opened" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ops_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Component fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def ledger(clock) -> TransactionLedger:
    return TransactionLedger(clock=clock)


@pytest.fixture
def rate_table() -> PaymentRateTable:
    return PaymentRateTable(
        rates={
            "regular": {"carton": "7", "np": "30", "sw": "7"},
            "instore": {"carton": "5.5"},
        },
        default_rate="5.5",
    )


@pytest.fixture
def tracker(clock, rate_table) -> ObligationTracker:
    return ObligationTracker(clock=clock, rate_table=rate_table)


@pytest.fixture
def receipt_generator(clock) -> ReceiptGenerator:
    settings = ReceiptSettings(
        company_info=CompanyInfo(name="Test Trading", tin_number="TIN-1", vat_number="VAT-1"),
    )
    return ReceiptGenerator(settings=settings, clock=clock)


@pytest.fixture
def inventory(clock, receipt_generator) -> InventoryStore:
    return InventoryStore(receipt_generator=receipt_generator, clock=clock)


@pytest.fixture
def service(clock) -> OperationsService:
    """Service built from the bundled default configuration."""
    return OperationsService(get_active_config(), clock=clock, actor_id=TEST_ACTOR_ID)
