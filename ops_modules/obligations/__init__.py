"""Obligations module: payables, receivables and payout ordering."""
