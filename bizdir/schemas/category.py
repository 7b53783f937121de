# bizdir/schemas/category.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None


class CategoryWithCount(CategoryOut):
    business_count: int


class CategoryMatchOut(BaseModel):
    label: str
    status: str
    level: Optional[int] = None
    category: Optional[CategoryOut] = None
