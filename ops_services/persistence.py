"""
ops_services.persistence -- SQL state repository for the operations service.

Responsibility:
    Write the complete in-memory state of an ``OperationsService`` to SQL
    tables and read it back.  The engine itself never needs a store; this
    repository is the eventual-persistence adapter.

Architecture position:
    Services -- I/O boundary.  Uses the ORM models in ``ops_modules.*.orm``
    and ``ops_services.orm``; the caller owns the session and therefore
    the transaction (see ``ops_kernel.db.session_scope``).

Invariants enforced:
    - ``save`` replaces every persisted row, so the tables always hold one
      consistent copy of the state.
    - ``load`` validates every store's rows (running balances, paid
      ranges, stock levels, receipt counters) before installing any of
      them.

Failure modes:
    - SQLAlchemy errors propagate; ``session_scope`` rolls back.
    - ValueError from the stores' checks when persisted rows are
      inconsistent; the service is left untouched.
    - ValueError when loading into a service that already issued receipt
      numbers beyond the persisted counters' range.

Usage:
    with session_scope() as session:
        StateRepository(session).save(service)

    with session_scope() as session:
        StateRepository(session).load(fresh_service)
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from ops_engines.receipts import ReceiptType
from ops_kernel.logging_config import get_logger
from ops_modules.cash.orm import BankAccountModel, CashFlowTransactionModel
from ops_modules.inventory.orm import (
    CollectionTransactionModel,
    InventoryItemModel,
    SaleTransactionModel,
    SupplierModel,
)
from ops_modules.obligations.orm import PayableModel, ReceivableModel
from ops_services.operations import OperationsService
from ops_services.orm import ReceiptCounterModel, ReceiptLineModel, ReceiptModel

logger = get_logger("services.persistence")

# Children before parents.
_DELETE_ORDER = (
    ReceiptLineModel,
    ReceiptModel,
    ReceiptCounterModel,
    SaleTransactionModel,
    CollectionTransactionModel,
    InventoryItemModel,
    SupplierModel,
    PayableModel,
    ReceivableModel,
    CashFlowTransactionModel,
    BankAccountModel,
)


class StateRepository:
    """Full-state save/load over a caller-owned SQLAlchemy session."""

    def __init__(self, session: Session):
        self._session = session

    def save(self, service: OperationsService) -> None:
        session = self._session
        for model in _DELETE_ORDER:
            session.execute(delete(model))

        accounts = service.ledger.accounts()
        transactions = service.ledger.transactions()
        session.add_all(BankAccountModel.from_dto(a) for a in accounts)
        session.flush()
        session.add_all(CashFlowTransactionModel.from_dto(tx) for tx in transactions)

        payables = service.tracker.payables()
        receivables = service.tracker.receivables()
        session.add_all(PayableModel.from_dto(p) for p in payables)
        session.add_all(ReceivableModel.from_dto(r) for r in receivables)

        inventory = service.inventory
        session.add_all(SupplierModel.from_dto(s) for s in inventory.suppliers())
        session.flush()
        session.add_all(InventoryItemModel.from_dto(i) for i in inventory.items())
        session.flush()
        session.add_all(CollectionTransactionModel.from_dto(c) for c in inventory.collections())
        session.add_all(SaleTransactionModel.from_dto(s) for s in inventory.sales())

        receipts = service.receipts()
        session.add_all(ReceiptModel.from_dto(r) for r in receipts)
        session.add_all(
            ReceiptCounterModel(id=receipt_type.value, last_value=value)
            for receipt_type, value in service.receipt_generator.sequence.current().items()
        )
        session.flush()

        logger.info("state_saved", extra={
            "account_count": len(accounts),
            "transaction_count": len(transactions),
            "obligation_count": len(payables) + len(receivables),
            "receipt_count": len(receipts),
        })

    def load(self, service: OperationsService) -> None:
        """
        Replace the service's state with the persisted state.

        Every store checks its rows before any of them is replaced, so a
        rejected load leaves the service exactly as it was.
        """
        session = self._session

        ledger_plan = service.ledger.prepare_restore(
            [m.to_dto() for m in session.scalars(select(BankAccountModel))],
            [m.to_dto() for m in session.scalars(select(CashFlowTransactionModel))],
        )
        obligation_plan = service.tracker.prepare_restore(
            [m.to_dto() for m in session.scalars(select(PayableModel))],
            [m.to_dto() for m in session.scalars(select(ReceivableModel))],
        )
        inventory_plan = service.inventory.prepare_restore(
            [m.to_dto() for m in session.scalars(select(InventoryItemModel))],
            [m.to_dto() for m in session.scalars(select(SupplierModel))],
            [m.to_dto() for m in session.scalars(select(CollectionTransactionModel))],
            [m.to_dto() for m in session.scalars(select(SaleTransactionModel))],
        )
        receipt_plan = service.prepare_receipts(
            [
                m.to_dto()
                for m in session.scalars(
                    select(ReceiptModel).options(selectinload(ReceiptModel.lines))
                )
            ],
            {
                ReceiptType(m.id): m.last_value
                for m in session.scalars(select(ReceiptCounterModel))
            },
        )

        # Receipt counters first: the only install step that re-checks.
        service.commit_receipts(receipt_plan)
        service.ledger.commit_restore(ledger_plan)
        service.tracker.commit_restore(obligation_plan)
        service.inventory.commit_restore(inventory_plan)

        logger.info("state_loaded", extra={
            "account_count": len(ledger_plan.accounts),
            "receipt_count": len(receipt_plan.receipts),
        })
