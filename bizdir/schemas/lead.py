# bizdir/schemas/lead.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LeadIn(BaseModel):
    business_id: str = Field(..., min_length=1, max_length=128)
    sender_name: str = Field(..., max_length=200)
    sender_email: str = Field(..., max_length=320)
    sender_phone: Optional[str] = Field(None, max_length=32)
    message: str = Field(..., max_length=5000)


class LeadStatusUpdate(BaseModel):
    status: str


class LeadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_id: str
    sender_name: str
    sender_email: str
    sender_phone: Optional[str] = None
    message: str
    status: str
    created_at: datetime
    updated_at: datetime
