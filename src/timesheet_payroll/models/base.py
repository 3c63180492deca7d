"""Base model class for SQLAlchemy ORM."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _json_safe(value: Any, scale: int | None = None) -> Any:
    if isinstance(value, Decimal):
        if scale is not None:
            value = value.quantize(Decimal(1).scaleb(-scale))
        return str(value)
    if isinstance(value, datetime):
        # SQLite hands back naive values for timestamptz columns
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        UUID: Uuid(as_uuid=True),
        datetime: DateTime(timezone=True),
    }

    def to_snapshot(self) -> dict[str, Any]:
        """Convert model to a JSON-serializable dictionary for audit snapshots.

        Decimals are written at their column scale so a value reads the same
        before and after a round trip through the database.
        """
        return {
            attr.key: _json_safe(
                getattr(self, attr.key), getattr(attr.columns[0].type, "scale", None)
            )
            for attr in self.__mapper__.column_attrs
        }


class TimestampMixin:
    """Mixin for models with created_at/updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
