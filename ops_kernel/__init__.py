"""
Ops Kernel

Shared foundation for the operations ledger:
- Typed, coded exceptions
- Structured JSON logging
- Injectable clock
- Decimal value helpers
- SQLAlchemy base and engine management
"""

__version__ = "0.1.0"
