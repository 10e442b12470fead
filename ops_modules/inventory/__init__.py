"""
Inventory module (``ops_modules.inventory``).

Stock items with collection (inbound) and sale (outbound) movements.
Every movement issues a receipt through ``ops_engines.receipts``, so the
store is imported from ``ops_modules.inventory.store`` rather than
re-exported here.
"""
