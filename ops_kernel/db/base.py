"""
Module: ops_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models.  Provides
    the string primary key convention and the type annotation map for
    consistent column types.
Architecture position: Kernel > DB.  Lowest-level import target for every
    ``orm.py`` module.  MUST NOT import from modules, engines or services.

Invariants enforced:
    - Decimal precision: Python Decimal maps to Numeric(38, 9).  NEVER
      use float for monetary amounts or quantities.
    - Timestamps round-trip as timezone-aware UTC datetimes on every
      backend, including SQLite which drops tzinfo.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as naive UTC.

    Contract:
        Binds aware datetimes converted to UTC with tzinfo stripped, and
        re-attaches UTC on load.

    Guarantees:
        - Loaded values compare correctly against ``Clock.now()`` output.
    """

    impl = DateTime(timezone=False)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime cannot be stored: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is the domain identifier, stored as String(64).
        - Decimal maps to Numeric(38, 9).
        - datetime maps to UTCDateTime.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
    }

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
