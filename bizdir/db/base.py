# bizdir/db/base.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, MetaData
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# Use naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = MetaData(naming_convention=convention)

    def to_dict(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        """Convert model instance to dictionary."""
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            if column.name in exclude:
                continue
            value = getattr(self, column.key)

            # Handle datetime serialization
            if hasattr(value, "isoformat"):
                value = value.isoformat()

            result[column.name] = value

        return result

    def __repr__(self) -> str:
        attrs = []
        for column in self.__table__.columns:
            if column.name in ["created_at", "updated_at"]:
                continue
            value = getattr(self, column.key, None)
            if value is not None:
                attrs.append(f"{column.key}={value!r}")

        return f"<{self.__class__.__name__}({', '.join(attrs)})>"


class TimestampMixin:
    """created_at / updated_at columns maintained by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


async def init_models(engine: AsyncEngine, *, drop: bool = False) -> None:
    """Create (optionally recreate) every table registered on ``Base.metadata``."""
    # Registers the mapped classes on the metadata.
    import bizdir.models  # noqa: F401

    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


__all__ = [
    "Base",
    "TimestampMixin",
    "init_models",
]
