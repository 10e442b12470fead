"""Cash module: bank accounts and the per-account transaction ledger."""
