"""
Ops Modules.

Stateful in-process stores, one sub-package per domain:

- cash: bank accounts and the cash-flow transaction ledger
- obligations: payables and receivables with derived payment status
- inventory: items, suppliers, collections and sales

Each sub-package holds frozen DTOs in ``models.py``, the store itself and
SQLAlchemy persistence models in ``orm.py``.  Stores are imported from
their modules directly (``ops_modules.cash.ledger`` etc.).
"""
