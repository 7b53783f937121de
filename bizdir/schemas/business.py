# bizdir/schemas/business.py
from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from bizdir.schemas.category import CategoryOut


class BusinessCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = Field(None, max_length=128, description="External id; generated when omitted")
    title: str = Field(..., max_length=255)
    category_label: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=320)
    website: Optional[str] = Field(None, max_length=500)
    featured: bool = False
    closed: bool = False
    slug: Optional[str] = Field(None, max_length=255, description="Operator override")
    seo_title: Optional[str] = Field(None, max_length=255, description="Operator override")
    seo_description: Optional[str] = Field(None, description="Operator override")


class BusinessUpdate(BaseModel):
    """Only the fields present in the request body are applied."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, max_length=255)
    category_label: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=128)
    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=320)
    website: Optional[str] = Field(None, max_length=500)
    featured: Optional[bool] = None
    closed: Optional[bool] = None
    slug: Optional[str] = Field(None, max_length=255)
    seo_title: Optional[str] = Field(None, max_length=255)
    seo_description: Optional[str] = None


class BusinessOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    slug: str
    category_label: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    slug_custom: bool
    seo_title_custom: bool
    seo_description_custom: bool
    featured: bool
    closed: bool
    created_at: datetime
    updated_at: datetime


class BusinessWithCategoryOut(BaseModel):
    business: BusinessOut
    category: Optional[CategoryOut] = None
    match_status: str


class OwnershipOut(BaseModel):
    business_id: str
    claimed: bool
    owner_id: Optional[str] = None


class CityCountOut(BaseModel):
    city: str
    count: int


class BusinessStatsOut(BaseModel):
    total: int
    featured: int
    claimed: int
    closed: int
    by_match_status: Dict[str, int]
