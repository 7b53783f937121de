# bizdir/models/lead.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizdir.db.base import Base, TimestampMixin

LEAD_STATUSES = ("new", "contacted", "qualified", "converted", "closed")


class Lead(TimestampMixin, Base):
    """Inbound contact-form submission addressed to a business.

    Immutable once created except for ``status``. Which actor may see it is not
    stored here; it is resolved from ownership claims on every read.
    """

    __tablename__ = "leads"
    __table_args__ = (
        Index("idx_leads_business_created", "business_id", "created_at"),
        Index("idx_leads_status", "status"),
        CheckConstraint("length(sender_email) > 0", name="sender_email_not_empty"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    business_id: Mapped[str] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )

    sender_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sender_email: Mapped[str] = mapped_column(String(320), nullable=False)
    sender_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        Enum(*LEAD_STATUSES, name="lead_status"),
        nullable=False,
        default="new",
        server_default="new",
    )

    business: Mapped["Business"] = relationship(back_populates="leads")
