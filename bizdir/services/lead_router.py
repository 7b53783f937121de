# bizdir/services/lead_router.py
"""Decide which actor sees which lead.

Every lead belongs to exactly one inbox: the resolved owner's when its business has
an approved claim, the administrator's otherwise. The decision is re-derived from
the claims table on each call and never written onto the lead.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from bizdir.core.logging import get_structlog_logger
from bizdir.models.business import Business
from bizdir.models.lead import LEAD_STATUSES, Lead
from bizdir.services.normalization import PHONE_MAX_LENGTH, clean_phone, clean_text, normalize_email
from bizdir.services.ownership import Ownership, resolve_owners, resolve_ownership

logger = get_structlog_logger(__name__)


@dataclass(frozen=True)
class Admin:
    def __str__(self) -> str:
        return "admin"


@dataclass(frozen=True)
class Owner:
    user_id: str

    def __str__(self) -> str:
        return f"owner:{self.user_id}"


Actor = Union[Admin, Owner]


def is_visible_to(actor: Actor, ownership: Ownership) -> bool:
    if isinstance(actor, Admin):
        return not ownership.claimed
    if isinstance(actor, Owner):
        return ownership.claimed and ownership.owner_id == actor.user_id
    return False


async def route_leads(session: AsyncSession, actor: Actor) -> List[Lead]:
    """All leads visible to ``actor``, newest first."""
    owners = await resolve_owners(session)

    stmt = select(Lead).order_by(Lead.created_at.desc(), Lead.id.desc())
    if isinstance(actor, Owner):
        owned = [bid for bid, o in owners.items() if o.owner_id == actor.user_id]
        if not owned:
            return []
        stmt = stmt.where(Lead.business_id.in_(owned))
    elif isinstance(actor, Admin):
        if owners:
            stmt = stmt.where(Lead.business_id.not_in(sorted(owners)))
    else:
        raise AuthorizationError(details={"actor": str(actor)})

    res = await session.execute(stmt)
    leads = list(res.scalars().all())
    logger.debug("leads.routed", actor=str(actor), count=len(leads))
    return leads


async def leads_for_business(session: AsyncSession, actor: Actor, business_id: str) -> List[Lead]:
    if await session.get(Business, business_id) is None:
        raise NotFoundError("Business not found", code="business_not_found", details={"business_id": business_id})
    ownership = await resolve_ownership(session, business_id)
    if not is_visible_to(actor, ownership):
        raise AuthorizationError(
            "Not allowed to view leads for this business",
            details={"business_id": business_id, "actor": str(actor)},
        )
    res = await session.execute(
        select(Lead).where(Lead.business_id == business_id).order_by(Lead.created_at.desc(), Lead.id.desc())
    )
    return list(res.scalars().all())


async def create_lead(
    session: AsyncSession,
    *,
    business_id: str,
    sender_name: str,
    sender_email: str,
    message: str,
    sender_phone: Optional[str] = None,
) -> Lead:
    """Store an inbound contact message. Who sees it is decided at read time."""
    errors: Dict[str, str] = {}
    name = clean_text(sender_name)
    body = clean_text(message)
    email = normalize_email(sender_email)
    phone = clean_phone(sender_phone)
    if not name:
        errors["sender_name"] = "is required"
    if not body:
        errors["message"] = "is required"
    if email is None:
        errors["sender_email"] = "is not a valid email address"
    if phone is not None and len(phone) > PHONE_MAX_LENGTH:
        errors["sender_phone"] = f"must be at most {PHONE_MAX_LENGTH} characters"
    if errors:
        raise ValidationError("Invalid lead", errors=errors)

    if await session.get(Business, business_id) is None:
        raise NotFoundError("Business not found", code="business_not_found", details={"business_id": business_id})

    lead = Lead(
        business_id=business_id,
        sender_name=name,
        sender_email=email,
        sender_phone=phone,
        message=body,
        status="new",
    )
    session.add(lead)
    await session.commit()
    await session.refresh(lead)

    logger.info("lead.created", lead_id=lead.id, business_id=business_id)
    return lead


async def _load_lead(session: AsyncSession, lead_id: int) -> Lead:
    lead = await session.get(Lead, lead_id)
    if lead is None:
        raise NotFoundError("Lead not found", code="lead_not_found", details={"lead_id": lead_id})
    return lead


async def can_access_lead(session: AsyncSession, actor: Actor, lead_id: int) -> bool:
    lead = await _load_lead(session, lead_id)
    return is_visible_to(actor, await resolve_ownership(session, lead.business_id))


async def _authorized_lead(session: AsyncSession, actor: Actor, lead_id: int) -> Lead:
    lead = await _load_lead(session, lead_id)
    if not is_visible_to(actor, await resolve_ownership(session, lead.business_id)):
        raise AuthorizationError(
            "Not allowed to access this lead",
            details={"lead_id": lead_id, "actor": str(actor)},
        )
    return lead


async def get_lead(session: AsyncSession, actor: Actor, lead_id: int) -> Lead:
    return await _authorized_lead(session, actor, lead_id)


async def update_lead_status(session: AsyncSession, actor: Actor, lead_id: int, status: Any) -> Lead:
    if status not in LEAD_STATUSES:
        raise ValidationError("Invalid lead status", errors={"status": f"must be one of {list(LEAD_STATUSES)}"})
    lead = await _authorized_lead(session, actor, lead_id)
    previous = lead.status
    lead.status = status
    await session.commit()
    await session.refresh(lead)
    logger.info("lead.status_updated", lead_id=lead_id, actor=str(actor), previous=previous, status=status)
    return lead


async def delete_lead(session: AsyncSession, actor: Actor, lead_id: int) -> None:
    lead = await _authorized_lead(session, actor, lead_id)
    await session.delete(lead)
    await session.commit()
    logger.info("lead.deleted", lead_id=lead_id, actor=str(actor))
