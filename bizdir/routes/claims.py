# bizdir/routes/claims.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.core.exceptions import AuthorizationError
from bizdir.db.session import get_session
from bizdir.schemas.claim import ClaimCreate, ClaimOut, ClaimReview, ClaimStatsOut
from bizdir.services import ownership
from bizdir.services.auth import get_current_user, get_user_id, require_admin
from bizdir.services.lead_router import Actor, Admin

router = APIRouter(prefix="/claims", tags=["claims"])


@router.post("", response_model=ClaimOut, status_code=status.HTTP_201_CREATED)
async def submit_claim(
    body: ClaimCreate,
    user_id: str = Depends(get_user_id),
    session: AsyncSession = Depends(get_session),
):
    return await ownership.create_ownership_claim(
        session,
        user_id=user_id,
        business_id=body.business_id,
        message=body.message,
    )


@router.get("", response_model=List[ClaimOut])
async def list_claims(
    status: Optional[str] = None,
    business_id: Optional[str] = None,
    actor: Actor = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    # Non-admins only ever see their own claims.
    user_id = None if isinstance(actor, Admin) else actor.user_id
    return await ownership.list_claims(session, status=status, business_id=business_id, user_id=user_id)


@router.get("/stats", response_model=ClaimStatsOut, dependencies=[Depends(require_admin)])
async def stats(session: AsyncSession = Depends(get_session)):
    s = await ownership.claim_stats(session)
    return ClaimStatsOut(total=s.total, pending=s.pending, approved=s.approved, rejected=s.rejected)


@router.get("/{claim_id}", response_model=ClaimOut)
async def get_claim(
    claim_id: int,
    actor: Actor = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    claim = await ownership.get_claim(session, claim_id)
    if not isinstance(actor, Admin) and claim.user_id != actor.user_id:
        raise AuthorizationError("Not allowed to view this claim", details={"claim_id": claim_id})
    return claim


@router.post("/{claim_id}/review", response_model=ClaimOut)
async def review_claim(
    claim_id: int,
    body: ClaimReview,
    reviewer_id: str = Depends(get_user_id),
    _admin: Admin = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return await ownership.review_ownership_claim(
        session,
        claim_id=claim_id,
        decision=body.decision,
        reviewer_id=reviewer_id,
        admin_message=body.admin_message,
    )


@router.delete("/{claim_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_claim(claim_id: int, session: AsyncSession = Depends(get_session)):
    await ownership.delete_claim(session, claim_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
