"""
ops_services.operations -- Facade wiring the ledger, tracker, inventory and receipts.

Responsibility:
    Build every component from an ``OpsConfiguration``, keep an archive of
    every receipt issued, and expose the day-to-day operations (cash
    movements, obligations, stock movements, checkout) plus the read
    models (financial snapshot, inventory report, receipt lookup).

Architecture position:
    Services -- stateful orchestration over modules and engines.  Owns
    the receipt archive; the stores own everything else.

Invariants enforced:
    - Every receipt the inventory store issues is archived exactly once,
      keyed by its unique receipt number.
    - Each public call runs inside a ``LogContext`` carrying the
      operation name and a fresh correlation id.

Failure modes:
    - Typed ``OpsKernelError`` subclasses propagate unchanged from the
      components.
    - ReceiptNotFoundError from ``receipt()`` for unknown numbers.

Usage:
    from ops_services.operations import OperationsService

    service = OperationsService.from_active_config()
    service.record_transaction("cbe", Decimal("500"), TransactionType.DEPOSIT)
    summary = service.snapshot()
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from ops_config import get_active_config
from ops_config.schema import OpsConfiguration
from ops_engines.inventory_report import InventoryReport, build_inventory_report
from ops_engines.receipts import (
    Receipt,
    ReceiptGenerator,
    ReceiptLineItem,
    ReceiptSequence,
    ReceiptType,
)
from ops_engines.summary import FinancialSummary, FinancialSummaryAggregator, is_cash_account
from ops_kernel.domain.clock import Clock, SystemClock
from ops_kernel.domain.values import Numeric
from ops_kernel.exceptions import ReceiptNotFoundError
from ops_kernel.logging_config import LogContext, get_logger
from ops_modules.cash.ledger import TransactionLedger
from ops_modules.cash.models import (
    BankAccount,
    CashFlowTransaction,
    TransactionReference,
    TransactionType,
)
from ops_modules.inventory.models import (
    CollectionTransaction,
    InventoryItem,
    PaymentMethod,
    SaleLine,
    SaleTransaction,
    Supplier,
)
from ops_modules.inventory.store import InventoryStore
from ops_modules.obligations.models import Payable, Receivable
from ops_modules.obligations.tracker import Obligation, ObligationTracker

logger = get_logger("services.operations")


@dataclass(frozen=True)
class ReceiptRestore:
    """Validated persisted receipt archive and counters, ready to install."""

    receipts: dict[str, Receipt]
    counters: dict[ReceiptType, int]


def _classifier_for(config: OpsConfiguration) -> Callable[[BankAccount], bool]:
    if config.cash_classification == "all":
        return lambda account: True
    return is_cash_account


class OperationsService:
    """
    Single entry point for the operations engine.

    The components are public attributes (``ledger``, ``tracker``,
    ``inventory``, ``receipt_generator``, ``aggregator``) for read access;
    mutations should go through the service so they are logged with an
    operation context.
    """

    def __init__(
        self,
        config: OpsConfiguration,
        clock: Clock | None = None,
        actor_id: str | None = None,
    ):
        self._config = config
        self._clock = clock or SystemClock()
        self._actor_id = actor_id

        self.ledger = TransactionLedger(clock=self._clock)
        for seed in config.accounts:
            self.ledger.open_account(
                seed.name,
                seed.opening_balance,
                account_id=seed.account_id,
                is_cash=seed.is_cash,
            )

        self.tracker = ObligationTracker(clock=self._clock, rate_table=config.payment_rates)
        self.receipt_generator = ReceiptGenerator(
            settings=config.receipt_settings,
            sequence=ReceiptSequence(number_width=config.receipt_settings.number_width),
            clock=self._clock,
        )
        self.inventory = InventoryStore(
            receipt_generator=self.receipt_generator,
            clock=self._clock,
            default_vat_rate=config.default_vat_rate,
        )
        self.aggregator = FinancialSummaryAggregator(
            self.ledger,
            self.tracker,
            self.inventory,
            cash_classifier=_classifier_for(config),
            reconciliation=config.reconciliation_formula,
            clock=self._clock,
        )

        self._archive_lock = threading.Lock()
        self._receipts: dict[str, Receipt] = {}
        self.inventory.on_receipt(self._archive)

        logger.info("operations_service_started", extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "account_count": len(config.accounts),
        })

    @classmethod
    def from_active_config(
        cls,
        path: Path | str | None = None,
        clock: Clock | None = None,
        actor_id: str | None = None,
    ) -> OperationsService:
        return cls(get_active_config(path), clock=clock, actor_id=actor_id)

    @property
    def config(self) -> OpsConfiguration:
        return self._config

    # ------------------------------------------------------------------
    # Cash
    # ------------------------------------------------------------------

    def record_transaction(
        self,
        account_id: str,
        amount: Numeric,
        transaction_type: TransactionType | str,
        reference: TransactionReference | None = None,
        *,
        counter_account_id: str | None = None,
        occurred_at: datetime | None = None,
    ) -> CashFlowTransaction:
        with self._operation("record_transaction"):
            return self.ledger.record_transaction(
                account_id,
                amount,
                transaction_type,
                reference,
                counter_account_id=counter_account_id,
                occurred_at=occurred_at,
            )

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Numeric,
        reference: TransactionReference | None = None,
    ) -> tuple[CashFlowTransaction, CashFlowTransaction]:
        with self._operation("transfer"):
            return self.ledger.transfer(from_account_id, to_account_id, amount, reference)

    # ------------------------------------------------------------------
    # Obligations
    # ------------------------------------------------------------------

    def add_payable(self, paid_to: str, purpose: str, amount: Numeric, due_date: date,
                    **kwargs: Any) -> Payable:
        with self._operation("add_payable"):
            return self.tracker.add_payable(paid_to, purpose, amount, due_date, **kwargs)

    def add_receivable(self, receivable_from: str, purpose: str, amount: Numeric,
                       due_date: date, **kwargs: Any) -> Receivable:
        with self._operation("add_receivable"):
            return self.tracker.add_receivable(receivable_from, purpose, amount, due_date, **kwargs)

    def record_payment(self, obligation_id: str, amount: Numeric) -> Obligation:
        with self._operation("record_payment"):
            return self.tracker.record_payment(obligation_id, amount)

    def update_obligation(self, obligation_id: str, **changes: Any) -> Obligation:
        with self._operation("update_obligation"):
            return self.tracker.update_obligation(obligation_id, **changes)

    def accrue_collector_payment(
        self,
        collector: str,
        weights: Mapping[str, Numeric],
        collection_type: str,
        due_date: date,
        **kwargs: Any,
    ) -> Payable:
        with self._operation("accrue_collector_payment"):
            return self.tracker.accrue_collector_payment(
                collector, weights, collection_type, due_date, **kwargs
            )

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def add_supplier(self, name: str, **kwargs: Any) -> Supplier:
        with self._operation("add_supplier"):
            return self.inventory.add_supplier(name, **kwargs)

    def add_item(self, name: str, unit_price: Numeric, sale_price: Numeric,
                 **kwargs: Any) -> InventoryItem:
        with self._operation("add_item"):
            return self.inventory.add_item(name, unit_price, sale_price, **kwargs)

    def update_item(self, item_id: str, **changes: Any) -> InventoryItem:
        with self._operation("update_item"):
            return self.inventory.update_item(item_id, **changes)

    def update_supplier(self, supplier_id: str, **changes: Any) -> Supplier:
        with self._operation("update_supplier"):
            return self.inventory.update_supplier(supplier_id, **changes)

    def apply_collection(
        self,
        item_id: str,
        quantity: Numeric,
        unit_price: Numeric,
        *,
        supplier_id: str | None = None,
        notes: str | None = None,
    ) -> CollectionTransaction:
        with self._operation("apply_collection"):
            return self.inventory.apply_collection(
                item_id, quantity, unit_price, supplier_id=supplier_id, notes=notes
            )

    def apply_sale(
        self,
        item_id: str,
        quantity: Numeric,
        *,
        payment_method: PaymentMethod | str = PaymentMethod.CASH,
        customer_name: str | None = None,
    ) -> SaleTransaction:
        with self._operation("apply_sale"):
            return self.inventory.apply_sale(
                item_id, quantity, payment_method=payment_method, customer_name=customer_name
            )

    def checkout(
        self,
        lines: Sequence[SaleLine],
        *,
        payment_method: PaymentMethod | str = PaymentMethod.CASH,
        customer_name: str | None = None,
    ) -> tuple[SaleTransaction, ...]:
        with self._operation("checkout"):
            return self.inventory.checkout(
                lines, payment_method=payment_method, customer_name=customer_name
            )

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    def receipt(self, receipt_number: str) -> Receipt:
        with self._archive_lock:
            receipt = self._receipts.get(receipt_number)
        if receipt is None:
            raise ReceiptNotFoundError(receipt_number)
        return receipt

    def receipts(self, receipt_type: ReceiptType | None = None) -> tuple[Receipt, ...]:
        """Archived receipts in issue order, optionally of one type."""
        with self._archive_lock:
            archived = list(self._receipts.values())
        if receipt_type is not None:
            archived = [r for r in archived if r.receipt_type is receipt_type]
        return tuple(sorted(archived, key=lambda r: (r.issued_at, r.receipt_number)))

    def supersede_receipt(
        self,
        receipt_number: str,
        line_items: Sequence[ReceiptLineItem],
        *,
        notes: str | None = None,
    ) -> Receipt:
        """Issue and archive a replacement; the original stays archived as issued."""
        with self._operation("supersede_receipt"):
            replacement = self.receipt_generator.supersede(
                self.receipt(receipt_number), line_items, notes=notes
            )
            self._archive(replacement)
            return replacement

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    def snapshot(self) -> FinancialSummary:
        with self._operation("snapshot"):
            return self.aggregator.snapshot()

    def inventory_report(self, since: datetime | None = None, top_n: int = 5) -> InventoryReport:
        with self._operation("inventory_report"):
            return build_inventory_report(
                items=self.inventory.items(),
                collections=self.inventory.collections(),
                sales=self.inventory.sales(),
                since=since,
                top_n=top_n,
            )

    # ------------------------------------------------------------------
    # Persistence support
    # ------------------------------------------------------------------

    def restore_receipts(
        self,
        receipts: Iterable[Receipt],
        counters: Mapping[ReceiptType, int],
    ) -> None:
        """Replace the archive and resume receipt numbering."""
        self.commit_receipts(self.prepare_receipts(receipts, counters))

    def prepare_receipts(
        self,
        receipts: Iterable[Receipt],
        counters: Mapping[ReceiptType, int],
    ) -> ReceiptRestore:
        """
        Check persisted receipts and counters without touching live state.

        Raises:
            ValueError: A receipt number appears twice, or a counter is
                behind a number this service has already issued.
        """
        archive: dict[str, Receipt] = {}
        for receipt in receipts:
            if receipt.receipt_number in archive:
                raise ValueError(f"Persisted receipt number repeated: {receipt.receipt_number}")
            archive[receipt.receipt_number] = receipt
        self.receipt_generator.sequence.check_restore(counters)
        return ReceiptRestore(receipts=archive, counters=dict(counters))

    def commit_receipts(self, plan: ReceiptRestore) -> None:
        self.receipt_generator.sequence.restore(plan.counters)
        with self._archive_lock:
            self._receipts = dict(plan.receipts)
        logger.info("receipts_restored", extra={"receipt_count": len(plan.receipts)})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _archive(self, receipt: Receipt) -> None:
        with self._archive_lock:
            if receipt.receipt_number in self._receipts:
                raise ValueError(f"Receipt number issued twice: {receipt.receipt_number}")
            self._receipts[receipt.receipt_number] = receipt
        logger.debug("receipt_archived", extra={"receipt_number": receipt.receipt_number})

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        with LogContext.bind(
            operation=name,
            correlation_id=str(uuid4()),
            actor_id=self._actor_id,
        ):
            yield
