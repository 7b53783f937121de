# bizdir/schemas/__init__.py
"""
Pydantic request/response models for the HTTP adapter.
"""

from bizdir.schemas.business import (
    BusinessCreate,
    BusinessOut,
    BusinessUpdate,
    BusinessWithCategoryOut,
)
from bizdir.schemas.category import CategoryCreate, CategoryOut
from bizdir.schemas.claim import ClaimCreate, ClaimOut, ClaimReview
from bizdir.schemas.common import APIError, Page
from bizdir.schemas.lead import LeadIn, LeadOut, LeadStatusUpdate

__all__ = [
    "APIError",
    "BusinessCreate",
    "BusinessOut",
    "BusinessUpdate",
    "BusinessWithCategoryOut",
    "CategoryCreate",
    "CategoryOut",
    "ClaimCreate",
    "ClaimOut",
    "ClaimReview",
    "LeadIn",
    "LeadOut",
    "LeadStatusUpdate",
    "Page",
]
