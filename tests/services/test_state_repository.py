"""
Tests for the SQL state repository.

Round-trips a populated service through in-memory SQLite and checks that
the restored service carries on where the saved one stopped.
"""

from datetime import date
from decimal import Decimal

import pytest

from ops_config import get_active_config
from ops_kernel.db import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from ops_engines.receipts import ReceiptType
from ops_modules.cash.models import TransactionReference, TransactionType
from ops_services.operations import OperationsService
from ops_services.persistence import StateRepository


@pytest.fixture
def database():
    init_engine_from_url("sqlite://")
    create_tables()
    yield
    drop_tables()
    reset_engine()


@pytest.fixture
def populated_service(service):
    service.record_transaction(
        "cbe", 500, TransactionType.DEPOSIT,
        TransactionReference(description="Sales deposit", fs_number="FS-1"),
    )
    service.transfer("awash", "enat", 1000)
    payable = service.add_payable("Supplier", "Cartons", 1000, date(2024, 2, 1), first_priority=1)
    service.record_payment(payable.id, 250)
    service.add_receivable("Customer", "Order", 300, date(2024, 2, 15), bank="CBE Bank")
    supplier = service.add_supplier("Almaz", phone="0911")
    item = service.add_item("Paper bag", 20, 30, min_stock_level=5, sku="PB-1")
    service.apply_collection(item.id, 10, 20, supplier_id=supplier.id)
    service.apply_sale(item.id, 6, customer_name="Hana")
    return service


class TestStateRepository:
    """Save then load into a fresh service."""

    def test_round_trip(self, database, populated_service, clock):
        with session_scope() as session:
            StateRepository(session).save(populated_service)

        restored = OperationsService(get_active_config(), clock=clock)
        with session_scope() as session:
            StateRepository(session).load(restored)

        before = populated_service.snapshot()
        after = restored.snapshot()
        assert after.total_bank_balance == before.total_bank_balance
        assert after.total_payable == before.total_payable == Decimal("750")
        assert after.total_receivable == before.total_receivable
        assert after.inventory_value == before.inventory_value

        assert restored.ledger.get_account("enat").balance == Decimal("79000")
        assert restored.ledger.history("cbe")[0].reference.fs_number == "FS-1"

        item = restored.inventory.items()[0]
        assert item.current_stock == Decimal("4")
        assert item.sku == "PB-1"
        assert {i.id for i in restored.inventory.low_stock_items()} == {item.id}
        assert restored.inventory.suppliers()[0].total_collections == Decimal("200")

        receipt = restored.receipt("SAL-000001")
        assert receipt.total_amount == Decimal("207.00")
        assert len(receipt.lines) == 1
        assert receipt.customer_name == "Hana"

    def test_numbering_resumes_after_load(self, database, populated_service, clock):
        with session_scope() as session:
            StateRepository(session).save(populated_service)

        restored = OperationsService(get_active_config(), clock=clock)
        with session_scope() as session:
            StateRepository(session).load(restored)

        item = restored.inventory.items()[0]
        sale = restored.apply_sale(item.id, 1)
        assert sale.receipt_number == "SAL-000002"

    def test_save_replaces_previous_state(self, database, populated_service, clock):
        with session_scope() as session:
            StateRepository(session).save(populated_service)
        populated_service.record_transaction("cbe", 100, TransactionType.WITHDRAWAL)
        with session_scope() as session:
            StateRepository(session).save(populated_service)

        restored = OperationsService(get_active_config(), clock=clock)
        with session_scope() as session:
            StateRepository(session).load(restored)

        assert len(restored.ledger.history("cbe")) == 2
        assert restored.ledger.get_account("cbe").balance == Decimal("620652.27")

    def test_rejected_load_leaves_service_untouched(self, database, service, clock):
        service.record_transaction("cbe", 500, TransactionType.DEPOSIT)
        with session_scope() as session:
            StateRepository(session).save(service)

        target = OperationsService(get_active_config(), clock=clock)
        item = target.add_item("Paper bag", 20, 30, opening_stock=10)
        sale = target.apply_sale(item.id, 2)
        assert sale.receipt_number == "SAL-000001"
        balance_before = target.ledger.get_account("cbe").balance
        history_before = target.ledger.history("cbe")

        with session_scope() as session:
            with pytest.raises(ValueError, match="Cannot rewind"):
                StateRepository(session).load(target)

        assert target.ledger.get_account("cbe").balance == balance_before
        assert target.ledger.history("cbe") == history_before
        assert [i.id for i in target.inventory.items()] == [item.id]
        assert target.inventory.get_item(item.id).current_stock == Decimal("8")
        assert [r.receipt_number for r in target.receipts()] == ["SAL-000001"]
        assert target.receipt_generator.sequence.current()[ReceiptType.SALE] == 1
        assert target.apply_sale(item.id, 1).receipt_number == "SAL-000002"
