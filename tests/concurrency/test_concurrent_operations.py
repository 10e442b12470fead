"""
Thread-level concurrency tests for the in-memory stores.

Every test releases its workers through a Barrier so the operations
genuinely overlap, then checks the invariant that a lost update would
break: balances, stock levels, paid caps and receipt number uniqueness.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from threading import Barrier

from ops_kernel.exceptions import InsufficientStockError, OverPaymentError
from ops_modules.cash.models import TransactionType


def run_concurrently(workers, fn):
    """Run ``fn(i)`` in ``workers`` threads started together; return results or exceptions."""
    barrier = Barrier(workers)

    def _task(i):
        barrier.wait()
        try:
            return fn(i)
        except Exception as exc:
            return exc

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_task, range(workers)))


class TestConcurrentLedger:

    def test_parallel_deposits_all_counted(self, ledger):
        account = ledger.open_account("Main", 0)

        results = run_concurrently(
            25, lambda i: ledger.record_transaction(account.id, 10, TransactionType.DEPOSIT)
        )

        assert not any(isinstance(r, Exception) for r in results)
        assert ledger.get_account(account.id).balance == Decimal("250")
        history = ledger.history(account.id)
        assert [tx.sequence for tx in history] == list(range(1, 26))
        assert history[-1].balance == Decimal("250")

    def test_opposite_transfers_do_not_deadlock(self, ledger):
        a = ledger.open_account("A", 1000)
        b = ledger.open_account("B", 1000)

        def _transfer(i):
            if i % 2:
                return ledger.transfer(a.id, b.id, 5)
            return ledger.transfer(b.id, a.id, 5)

        results = run_concurrently(20, _transfer)

        assert not any(isinstance(r, Exception) for r in results)
        assert ledger.get_account(a.id).balance == Decimal("1000")
        assert ledger.get_account(b.id).balance == Decimal("1000")
        assert ledger.total_balance() == Decimal("2000")


class TestConcurrentInventory:

    def test_sales_never_oversell(self, inventory):
        item = inventory.add_item("Bag", unit_price=10, sale_price=20, opening_stock=50)

        results = run_concurrently(20, lambda i: inventory.apply_sale(item.id, 5))

        sold = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, InsufficientStockError)]
        assert len(sold) == 10
        assert len(rejected) == 10
        assert inventory.get_item(item.id).current_stock == Decimal("0")
        assert inventory.get_item(item.id).total_sold == Decimal("50")

    def test_receipt_numbers_unique(self, inventory):
        items = [
            inventory.add_item(f"Item {n}", unit_price=1, sale_price=2, opening_stock=100)
            for n in range(4)
        ]

        def _move(i):
            item = items[i % len(items)]
            if i % 2:
                return inventory.apply_collection(item.id, 1, 1).receipt_number
            return inventory.apply_sale(item.id, 1).receipt_number

        results = run_concurrently(40, _move)

        assert not any(isinstance(r, Exception) for r in results)
        assert len(set(results)) == 40
        assert sorted(r for r in results if r.startswith("SAL-"))[-1] == "SAL-000020"
        assert sorted(r for r in results if r.startswith("COL-"))[-1] == "COL-000020"


class TestConcurrentObligations:

    def test_payments_capped_at_amount(self, tracker):
        payable = tracker.add_payable("Supplier", "Cartons", 100, date(2024, 2, 1))

        results = run_concurrently(30, lambda i: tracker.record_payment(payable.id, 5))

        accepted = [r for r in results if not isinstance(r, Exception)]
        rejected = [r for r in results if isinstance(r, OverPaymentError)]
        assert len(accepted) == 20
        assert len(rejected) == 10
        assert tracker.get(payable.id).paid == Decimal("100")
