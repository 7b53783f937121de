# bizdir/models/ownership_claim.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizdir.db.base import Base, TimestampMixin

CLAIM_PENDING = "pending"
CLAIM_APPROVED = "approved"
CLAIM_REJECTED = "rejected"
CLAIM_STATUSES = (CLAIM_PENDING, CLAIM_APPROVED, CLAIM_REJECTED)
ACTIVE_CLAIM_STATUSES = (CLAIM_PENDING, CLAIM_APPROVED)

_ACTIVE_PREDICATE = "status IN ('pending', 'approved')"


class OwnershipClaim(TimestampMixin, Base):
    __tablename__ = "ownership_claims"
    __table_args__ = (
        Index("idx_ownership_claims_business_status", "business_id", "status"),
        Index("idx_ownership_claims_user_id", "user_id"),
        # At most one pending/approved claim per (business, user).
        Index(
            "uq_ownership_claims_active_business_user",
            "business_id",
            "user_id",
            unique=True,
            postgresql_where=text(_ACTIVE_PREDICATE),
            sqlite_where=text(_ACTIVE_PREDICATE),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    business_id: Mapped[str] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    # Opaque id supplied by the authentication layer.
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)

    status: Mapped[str] = mapped_column(
        Enum(*CLAIM_STATUSES, name="claim_status"),
        nullable=False,
        default=CLAIM_PENDING,
        server_default=CLAIM_PENDING,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    admin_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    business: Mapped["Business"] = relationship(back_populates="claims")
