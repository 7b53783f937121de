# bizdir/schemas/claim.py
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ClaimCreate(BaseModel):
    business_id: str = Field(..., min_length=1, max_length=128)
    message: str


class ClaimReview(BaseModel):
    decision: Literal["approve", "reject"]
    admin_message: Optional[str] = None


class ClaimOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_id: str
    user_id: str
    status: str
    message: str
    admin_message: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ClaimStatsOut(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
