# bizdir/services/ownership.py
"""Ownership claims and the resolver that turns them into a current owner.

Ownership is never stored on the business row. The owner is whoever holds the
approved claim, looked up on every call, so an approval is visible to the very next
read.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import DateTime, Integer, String, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.core.config import settings
from bizdir.core.exceptions import (
    ConflictError,
    DuplicateClaimError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from bizdir.core.logging import get_structlog_logger
from bizdir.models.business import Business
from bizdir.models.ownership_claim import (
    ACTIVE_CLAIM_STATUSES,
    CLAIM_APPROVED,
    CLAIM_PENDING,
    CLAIM_REJECTED,
    CLAIM_STATUSES,
    OwnershipClaim,
)
from bizdir.services.normalization import clean_text

logger = get_structlog_logger(__name__)

DECISION_APPROVE = "approve"
DECISION_REJECT = "reject"
_DECISIONS = {DECISION_APPROVE: CLAIM_APPROVED, DECISION_REJECT: CLAIM_REJECTED}


@dataclass(frozen=True)
class Ownership:
    business_id: str
    claimed: bool
    owner_id: Optional[str] = None
    claim_id: Optional[int] = None


@dataclass(frozen=True)
class ClaimStats:
    total: int
    pending: int
    approved: int
    rejected: int


_SQL_APPROVED_FOR_BUSINESS = text(
    """
    SELECT
      id AS claim_id,
      business_id,
      user_id,
      reviewed_at
    FROM ownership_claims
    WHERE business_id = :business_id
      AND status = 'approved'
"""
).columns(
    claim_id=Integer,
    business_id=String,
    user_id=String,
    reviewed_at=DateTime(timezone=True),
)


def _recency(row: Any):
    # Most recently reviewed first; unreviewed rows sort last, then higher id wins.
    return (row.reviewed_at is not None, row.reviewed_at or datetime.min, int(row.claim_id))


def _pick(business_id: str, rows: Sequence[Any]) -> Ownership:
    if not rows:
        return Ownership(business_id=business_id, claimed=False)

    ordered = sorted(rows, key=_recency, reverse=True)
    chosen = ordered[0]

    if len(ordered) > 1:
        violation = InvariantViolation(
            code="multiple_approved_claims",
            message="Business has more than one approved ownership claim",
            details={
                "business_id": business_id,
                "claim_ids": [int(r.claim_id) for r in ordered],
                "chosen_claim_id": int(chosen.claim_id),
                "chosen_owner_id": str(chosen.user_id),
            },
        )
        logger.warning(
            "ownership.invariant_violation",
            code=violation.code,
            message=violation.message,
            **violation.details,
        )

    return Ownership(
        business_id=business_id,
        claimed=True,
        owner_id=str(chosen.user_id),
        claim_id=int(chosen.claim_id),
    )


async def resolve_ownership(session: AsyncSession, business_id: str) -> Ownership:
    """Current owner of ``business_id``, if an approved claim exists.

    When several approved claims exist, after a transfer or a race, the most
    recently reviewed one wins and the condition is logged rather than raised.
    """
    res = await session.execute(_SQL_APPROVED_FOR_BUSINESS, {"business_id": business_id})
    return _pick(business_id, res.fetchall())


async def resolve_owners(
    session: AsyncSession,
    business_ids: Optional[Iterable[str]] = None,
) -> Dict[str, Ownership]:
    """Batch form of ``resolve_ownership``; only claimed businesses appear in the result."""
    stmt = select(
        OwnershipClaim.id.label("claim_id"),
        OwnershipClaim.business_id,
        OwnershipClaim.user_id,
        OwnershipClaim.reviewed_at,
    ).where(OwnershipClaim.status == CLAIM_APPROVED)
    if business_ids is not None:
        ids = sorted(set(business_ids))
        if not ids:
            return {}
        stmt = stmt.where(OwnershipClaim.business_id.in_(ids))

    grouped: Dict[str, List[Any]] = {}
    for row in (await session.execute(stmt)).fetchall():
        grouped.setdefault(row.business_id, []).append(row)
    return {bid: _pick(bid, rows) for bid, rows in grouped.items()}


async def find_multiply_approved(session: AsyncSession) -> Dict[str, List[int]]:
    """Businesses with more than one approved claim, mapped to their claim ids."""
    stmt = (
        select(OwnershipClaim.business_id)
        .where(OwnershipClaim.status == CLAIM_APPROVED)
        .group_by(OwnershipClaim.business_id)
        .having(func.count(OwnershipClaim.id) > 1)
    )
    business_ids = (await session.execute(stmt)).scalars().all()
    out: Dict[str, List[int]] = {}
    for bid in business_ids:
        res = await session.execute(
            select(OwnershipClaim.id)
            .where(OwnershipClaim.business_id == bid, OwnershipClaim.status == CLAIM_APPROVED)
            .order_by(OwnershipClaim.id)
        )
        out[bid] = list(res.scalars().all())
    return out


async def _active_claim(
    session: AsyncSession,
    business_id: str,
    user_id: str,
    *,
    exclude_id: Optional[int] = None,
) -> Optional[OwnershipClaim]:
    stmt = select(OwnershipClaim).where(
        OwnershipClaim.business_id == business_id,
        OwnershipClaim.user_id == user_id,
        OwnershipClaim.status.in_(ACTIVE_CLAIM_STATUSES),
    )
    if exclude_id is not None:
        stmt = stmt.where(OwnershipClaim.id != exclude_id)
    res = await session.execute(stmt.order_by(OwnershipClaim.id).limit(1))
    return res.scalar_one_or_none()


async def create_ownership_claim(
    session: AsyncSession,
    *,
    user_id: str,
    business_id: str,
    message: str,
) -> OwnershipClaim:
    errors = {}
    user_id = clean_text(user_id)
    message = clean_text(message) or ""
    if not user_id:
        errors["user_id"] = "is required"
    if len(message) < settings.claim_message_min_length:
        errors["message"] = f"must be at least {settings.claim_message_min_length} characters"
    if errors:
        raise ValidationError("Invalid ownership claim", errors=errors)

    if await session.get(Business, business_id) is None:
        raise NotFoundError("Business not found", code="business_not_found", details={"business_id": business_id})

    existing = await _active_claim(session, business_id, user_id)
    if existing is not None:
        raise DuplicateClaimError(
            details={"business_id": business_id, "claim_id": existing.id, "status": existing.status}
        )

    claim = OwnershipClaim(business_id=business_id, user_id=user_id, message=message, status=CLAIM_PENDING)
    try:
        async with session.begin_nested():
            session.add(claim)
            await session.flush()
    except IntegrityError as e:
        # Lost the race against a concurrent submission for the same pair.
        raise DuplicateClaimError(details={"business_id": business_id}) from e

    await session.commit()
    await session.refresh(claim)

    logger.info("claim.created", claim_id=claim.id, business_id=business_id, user_id=user_id)
    return claim


async def review_ownership_claim(
    session: AsyncSession,
    *,
    claim_id: int,
    decision: str,
    reviewer_id: str,
    admin_message: Optional[str] = None,
) -> OwnershipClaim:
    """Move a pending claim to approved or rejected, exactly once.

    Approving a claim for a business that already has an owner transfers it: the
    newly approved claim is the most recent one and wins resolution. Earlier
    approvals stay on record.
    """
    status = _DECISIONS.get((decision or "").strip().lower())
    admin_message = clean_text(admin_message)
    errors = {}
    if status is None:
        errors["decision"] = f"must be one of {sorted(_DECISIONS)}"
    if not clean_text(reviewer_id):
        errors["reviewer_id"] = "is required"
    if status == CLAIM_REJECTED and len(admin_message or "") < settings.claim_rejection_message_min_length:
        errors["admin_message"] = (
            f"must be at least {settings.claim_rejection_message_min_length} characters when rejecting"
        )
    if errors:
        raise ValidationError("Invalid claim review", errors=errors)

    res = await session.execute(
        select(OwnershipClaim).where(OwnershipClaim.id == claim_id).with_for_update()
    )
    claim = res.scalar_one_or_none()
    if claim is None:
        raise NotFoundError("Ownership claim not found", code="claim_not_found", details={"claim_id": claim_id})

    if claim.status != CLAIM_PENDING:
        raise ConflictError(
            "Ownership claim has already been reviewed",
            code="claim_already_reviewed",
            details={"claim_id": claim.id, "status": claim.status},
        )

    previous: Optional[Ownership] = None
    if status == CLAIM_APPROVED:
        other = await _active_claim(session, claim.business_id, claim.user_id, exclude_id=claim.id)
        if other is not None:
            raise DuplicateClaimError(
                details={"business_id": claim.business_id, "claim_id": other.id, "status": other.status}
            )
        previous = await resolve_ownership(session, claim.business_id)

    claim.status = status
    claim.admin_message = admin_message
    claim.reviewed_by = clean_text(reviewer_id)
    claim.reviewed_at = datetime.now(timezone.utc)
    try:
        async with session.begin_nested():
            await session.flush()
    except IntegrityError as e:
        raise DuplicateClaimError(details={"business_id": claim.business_id, "claim_id": claim.id}) from e

    await session.commit()
    await session.refresh(claim)

    if previous is not None and previous.claimed and previous.owner_id != claim.user_id:
        logger.info(
            "ownership.transferred",
            business_id=claim.business_id,
            previous_owner_id=previous.owner_id,
            owner_id=claim.user_id,
            claim_id=claim.id,
        )

    logger.info(
        "claim.reviewed",
        claim_id=claim.id,
        business_id=claim.business_id,
        user_id=claim.user_id,
        status=claim.status,
        reviewed_by=claim.reviewed_by,
    )
    return claim


async def get_claim(session: AsyncSession, claim_id: int) -> OwnershipClaim:
    claim = await session.get(OwnershipClaim, claim_id)
    if claim is None:
        raise NotFoundError("Ownership claim not found", code="claim_not_found", details={"claim_id": claim_id})
    return claim


async def list_claims(
    session: AsyncSession,
    *,
    status: Optional[str] = None,
    business_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> List[OwnershipClaim]:
    if status is not None and status not in CLAIM_STATUSES:
        raise ValidationError("Invalid claim filter", errors={"status": f"must be one of {list(CLAIM_STATUSES)}"})
    stmt = select(OwnershipClaim)
    if status is not None:
        stmt = stmt.where(OwnershipClaim.status == status)
    if business_id is not None:
        stmt = stmt.where(OwnershipClaim.business_id == business_id)
    if user_id is not None:
        stmt = stmt.where(OwnershipClaim.user_id == user_id)
    res = await session.execute(stmt.order_by(OwnershipClaim.created_at.desc(), OwnershipClaim.id.desc()))
    return list(res.scalars().all())


async def claim_stats(session: AsyncSession) -> ClaimStats:
    res = await session.execute(
        select(OwnershipClaim.status, func.count(OwnershipClaim.id)).group_by(OwnershipClaim.status)
    )
    counts = {s: 0 for s in CLAIM_STATUSES}
    for status, n in res:
        counts[status] = int(n)
    return ClaimStats(
        total=sum(counts.values()),
        pending=counts[CLAIM_PENDING],
        approved=counts[CLAIM_APPROVED],
        rejected=counts[CLAIM_REJECTED],
    )


async def delete_claim(session: AsyncSession, claim_id: int) -> None:
    """Remove a claim outright. Deleting an approved claim releases the business."""
    claim = await get_claim(session, claim_id)
    await session.delete(claim)
    await session.commit()
    logger.info(
        "claim.deleted",
        claim_id=claim_id,
        business_id=claim.business_id,
        status=claim.status,
    )
