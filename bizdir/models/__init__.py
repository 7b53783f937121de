# bizdir/models/__init__.py
"""
SQLAlchemy ORM models for database entities.
"""

from bizdir.models.business import Business
from bizdir.models.category import Category
from bizdir.models.lead import LEAD_STATUSES, Lead
from bizdir.models.ownership_claim import (
    ACTIVE_CLAIM_STATUSES,
    CLAIM_APPROVED,
    CLAIM_PENDING,
    CLAIM_REJECTED,
    CLAIM_STATUSES,
    OwnershipClaim,
)

__all__ = [
    "Business",
    "Category",
    "Lead",
    "LEAD_STATUSES",
    "OwnershipClaim",
    "ACTIVE_CLAIM_STATUSES",
    "CLAIM_APPROVED",
    "CLAIM_PENDING",
    "CLAIM_REJECTED",
    "CLAIM_STATUSES",
]
