# bizdir/models/business.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Boolean, Index, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizdir.db.base import Base, TimestampMixin


class Business(TimestampMixin, Base):
    __tablename__ = "businesses"
    __table_args__ = (
        Index("idx_businesses_featured_title", "featured", "title"),
        Index("idx_businesses_city", "city"),
        Index("idx_businesses_category_label", "category_label"),
        Index("idx_businesses_closed", "closed"),
    )

    # Externally sourced (import place id) or generated on create; never rewritten.
    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # Free text; matched against categories.name at read time, never a foreign key.
    category_label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    slug_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    seo_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    seo_title_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    seo_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    seo_description_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    claims: Mapped[List["OwnershipClaim"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    leads: Mapped[List["Lead"]] = relationship(
        back_populates="business",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
