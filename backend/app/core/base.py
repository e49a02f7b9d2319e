"""SQLAlchemy declarative base, shared mixins and column types.

Custody rationale:
- Amounts are unsigned 256-bit integers in atomic units. They are stored exactly
  (NUMERIC(78,0) on PostgreSQL, decimal strings elsewhere) and never pass through floats.
- Explicit UTC-only, timezone-aware timestamps for strict audit timelines.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Final, Optional

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator, TypeEngine


UINT256_MAX: Final[int] = 2**256 - 1


class Uint256(TypeDecorator):
    """Exact unsigned 256-bit integer column.

    Rejects negative and oversized values at bind time so an underflow can never be
    persisted, whatever the calling code does.
    """

    impl = Numeric(78, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(78, 0))
        return dialect.type_descriptor(String(78))

    def process_bind_param(self, value: Optional[int], dialect: Dialect) -> Any:
        if value is None:
            return None
        v = int(value)
        if v < 0 or v > UINT256_MAX:
            raise ValueError(f"uint256 out of range: {v}")
        if dialect.name == "postgresql":
            return Decimal(v)
        return str(v)

    def process_result_value(self, value: Any, dialect: Dialect) -> Optional[int]:
        if value is None:
            return None
        return int(value)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class CreatedAtMixin:
    """Created-at timestamp mixin (UTC timestamptz)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class UpdatedAtMixin:
    """Updated-at timestamp mixin (UTC timestamptz).

    Only use for mutable tables. Ledger events are append-only.
    """

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )
