# bizdir/routes/leads.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.session import get_session
from bizdir.schemas.lead import LeadIn, LeadOut, LeadStatusUpdate
from bizdir.services import lead_router
from bizdir.services.auth import get_current_user
from bizdir.services.lead_router import Actor

router = APIRouter(prefix="/leads", tags=["leads"])


@router.post("", response_model=LeadOut, status_code=status.HTTP_201_CREATED)
async def submit_lead(body: LeadIn, session: AsyncSession = Depends(get_session)):
    """Public contact form; no identity required."""
    return await lead_router.create_lead(
        session,
        business_id=body.business_id,
        sender_name=body.sender_name,
        sender_email=body.sender_email,
        sender_phone=body.sender_phone,
        message=body.message,
    )


@router.get("", response_model=List[LeadOut])
async def inbox(actor: Actor = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    return await lead_router.route_leads(session, actor)


@router.get("/business/{business_id}", response_model=List[LeadOut])
async def business_leads(
    business_id: str,
    actor: Actor = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await lead_router.leads_for_business(session, actor, business_id)


@router.get("/{lead_id}", response_model=LeadOut)
async def get_lead(lead_id: int, actor: Actor = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    return await lead_router.get_lead(session, actor, lead_id)


@router.patch("/{lead_id}", response_model=LeadOut)
async def update_status(
    lead_id: int,
    body: LeadStatusUpdate,
    actor: Actor = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    return await lead_router.update_lead_status(session, actor, lead_id, body.status)


@router.delete("/{lead_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lead(lead_id: int, actor: Actor = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    await lead_router.delete_lead(session, actor, lead_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
