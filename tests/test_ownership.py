# tests/test_ownership.py
import asyncio
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from bizdir.core.exceptions import (
    ConflictError,
    DuplicateClaimError,
    NotFoundError,
    ValidationError,
)
from bizdir.models.ownership_claim import OwnershipClaim
from bizdir.services.lead_router import Admin, Owner, create_lead, route_leads
from bizdir.services import ownership
from bizdir.services.ownership import (
    claim_stats,
    create_ownership_claim,
    delete_claim,
    find_multiply_approved,
    list_claims,
    resolve_owners,
    resolve_ownership,
    review_ownership_claim,
)

from conftest import CLAIM_MESSAGE, make_business


class _Result:
    def __init__(self, rows):
        self._rows = rows

    def fetchall(self):
        return list(self._rows)


class _Session:
    def __init__(self, rows):
        self._rows = rows

    async def execute(self, stmt, params):
        assert "from ownership_claims" in str(stmt).lower()
        return _Result([r for r in self._rows if r.business_id == params["business_id"]])


class _RecordingLogger:
    def __init__(self):
        self.events = []

    def warning(self, event, **kw):
        self.events.append((event, kw))

    info = warning


def _row(claim_id, user_id, reviewed_at, business_id="b1"):
    return SimpleNamespace(claim_id=claim_id, business_id=business_id, user_id=user_id, reviewed_at=reviewed_at)


def test_unclaimed_business_resolves_to_nobody():
    out = asyncio.run(resolve_ownership(_Session([]), "b1"))
    assert out.claimed is False
    assert out.owner_id is None


def test_multiple_approved_claims_pick_most_recent_and_log(monkeypatch):
    log = _RecordingLogger()
    monkeypatch.setattr(ownership, "logger", log)
    now = datetime(2024, 5, 1, 12, 0, 0)
    s = _Session(
        [
            _row(1, "u-old", now - timedelta(days=2)),
            _row(2, "u-new", now),
            _row(3, "u-mid", now - timedelta(days=1)),
        ]
    )

    out = asyncio.run(resolve_ownership(s, "b1"))

    assert out.claimed is True
    assert out.owner_id == "u-new"
    assert out.claim_id == 2
    assert len(log.events) == 1
    event, details = log.events[0]
    assert event == "ownership.invariant_violation"
    assert details["code"] == "multiple_approved_claims"
    assert details["claim_ids"] == [2, 3, 1]


def test_same_review_time_falls_back_to_highest_id(monkeypatch):
    monkeypatch.setattr(ownership, "logger", _RecordingLogger())
    t = datetime(2024, 5, 1)
    s = _Session([_row(4, "u-a", t), _row(9, "u-b", t), _row(7, "u-c", None)])
    assert asyncio.run(resolve_ownership(s, "b1")).owner_id == "u-b"


@pytest.mark.asyncio
async def test_duplicate_pending_claim_rejected_then_allowed_after_rejection(session):
    b = await make_business(session, "Joe's Café")
    first = await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)
    assert first.status == "pending"

    with pytest.raises(DuplicateClaimError) as ei:
        await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)
    assert ei.value.status_code == 409
    assert ei.value.code == "duplicate_claim"

    await review_ownership_claim(
        session,
        claim_id=first.id,
        decision="reject",
        reviewer_id="admin-1",
        admin_message="Could not verify ownership documents.",
    )
    second = await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)
    assert second.id != first.id
    assert second.status == "pending"


@pytest.mark.asyncio
async def test_other_users_may_claim_concurrently(session):
    b = await make_business(session, "Joe's Café")
    await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)
    other = await create_ownership_claim(session, user_id="u2", business_id=b.id, message=CLAIM_MESSAGE)
    assert other.user_id == "u2"


@pytest.mark.asyncio
async def test_claim_validation(session):
    b = await make_business(session, "Joe's Café")
    with pytest.raises(ValidationError) as ei:
        await create_ownership_claim(session, user_id="u1", business_id=b.id, message="mine")
    assert "message" in ei.value.errors

    with pytest.raises(ValidationError) as ei:
        await create_ownership_claim(session, user_id="  ", business_id=b.id, message=CLAIM_MESSAGE)
    assert "user_id" in ei.value.errors

    with pytest.raises(NotFoundError):
        await create_ownership_claim(session, user_id="u1", business_id="missing", message=CLAIM_MESSAGE)


@pytest.mark.asyncio
async def test_approval_establishes_owner(session):
    b = await make_business(session, "Joe's Café")
    claim = await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)
    assert (await resolve_ownership(session, b.id)).claimed is False

    reviewed = await review_ownership_claim(session, claim_id=claim.id, decision="approve", reviewer_id="admin-1")
    assert reviewed.status == "approved"
    assert reviewed.reviewed_by == "admin-1"
    assert reviewed.reviewed_at is not None

    out = await resolve_ownership(session, b.id)
    assert out.claimed is True
    assert out.owner_id == "u1"
    assert (await resolve_owners(session, [b.id]))[b.id].owner_id == "u1"


@pytest.mark.asyncio
async def test_claim_can_only_be_reviewed_once(session):
    b = await make_business(session, "Joe's Café")
    claim = await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)
    await review_ownership_claim(session, claim_id=claim.id, decision="approve", reviewer_id="admin-1")

    with pytest.raises(ConflictError) as ei:
        await review_ownership_claim(
            session,
            claim_id=claim.id,
            decision="reject",
            reviewer_id="admin-1",
            admin_message="Changed my mind about it.",
        )
    assert ei.value.code == "claim_already_reviewed"


@pytest.mark.asyncio
async def test_approving_second_user_transfers_ownership(session, monkeypatch):
    log = _RecordingLogger()
    monkeypatch.setattr(ownership, "logger", log)
    b = await make_business(session, "Joe's Café")
    lead = await create_lead(
        session,
        business_id=b.id,
        sender_name="Ana",
        sender_email="ana@example.com",
        message="Are you open on Sundays?",
    )
    c1 = await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)
    await review_ownership_claim(session, claim_id=c1.id, decision="approve", reviewer_id="admin-1")
    c2 = await create_ownership_claim(session, user_id="u2", business_id=b.id, message=CLAIM_MESSAGE)

    reviewed = await review_ownership_claim(session, claim_id=c2.id, decision="approve", reviewer_id="admin-1")

    assert reviewed.status == "approved"
    out = await resolve_ownership(session, b.id)
    assert (out.owner_id, out.claim_id) == ("u2", c2.id)
    assert ("ownership.transferred", "u1") in [(e, kw.get("previous_owner_id")) for e, kw in log.events]

    assert [x.id for x in await route_leads(session, Owner("u2"))] == [lead.id]
    assert await route_leads(session, Owner("u1")) == []
    assert await route_leads(session, Admin()) == []


@pytest.mark.asyncio
async def test_multiple_approved_claims_in_store_resolve_to_latest(session, monkeypatch):
    log = _RecordingLogger()
    monkeypatch.setattr(ownership, "logger", log)
    b = await make_business(session, "Joe's Café")
    now = datetime(2024, 5, 1, 12, 0, 0)
    session.add_all(
        [
            OwnershipClaim(
                business_id=b.id, user_id="u1", message=CLAIM_MESSAGE, status="approved", reviewed_at=now
            ),
            OwnershipClaim(
                business_id=b.id,
                user_id="u2",
                message=CLAIM_MESSAGE,
                status="approved",
                reviewed_at=now - timedelta(days=3),
            ),
        ]
    )
    await session.commit()

    out = await resolve_ownership(session, b.id)
    assert out.owner_id == "u1"
    assert (await resolve_owners(session))[b.id].owner_id == "u1"
    assert [e for e, _ in log.events].count("ownership.invariant_violation") == 2
    assert list(await find_multiply_approved(session)) == [b.id]


@pytest.mark.asyncio
async def test_review_validation(session):
    b = await make_business(session, "Joe's Café")
    claim = await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)

    with pytest.raises(ValidationError) as ei:
        await review_ownership_claim(session, claim_id=claim.id, decision="reject", reviewer_id="admin-1")
    assert "admin_message" in ei.value.errors

    with pytest.raises(ValidationError) as ei:
        await review_ownership_claim(session, claim_id=claim.id, decision="maybe", reviewer_id="admin-1")
    assert "decision" in ei.value.errors

    with pytest.raises(NotFoundError):
        await review_ownership_claim(session, claim_id=9999, decision="approve", reviewer_id="admin-1")


@pytest.mark.asyncio
async def test_store_rejects_second_active_claim_for_same_user(session):
    b = await make_business(session, "Joe's Café")
    session.add(OwnershipClaim(business_id=b.id, user_id="u1", message=CLAIM_MESSAGE, status="pending"))
    await session.commit()

    session.add(OwnershipClaim(business_id=b.id, user_id="u1", message=CLAIM_MESSAGE, status="pending"))
    with pytest.raises(IntegrityError):
        await session.flush()
    await session.rollback()

    # Rejected rows are outside the partial index.
    session.add(OwnershipClaim(business_id=b.id, user_id="u1", message=CLAIM_MESSAGE, status="rejected"))
    await session.commit()


@pytest.mark.asyncio
async def test_list_stats_and_delete(session):
    b = await make_business(session, "Joe's Café")
    c1 = await create_ownership_claim(session, user_id="u1", business_id=b.id, message=CLAIM_MESSAGE)
    c2 = await create_ownership_claim(session, user_id="u2", business_id=b.id, message=CLAIM_MESSAGE)
    await review_ownership_claim(session, claim_id=c1.id, decision="approve", reviewer_id="admin-1")

    assert [c.id for c in await list_claims(session)] == [c2.id, c1.id]
    assert [c.id for c in await list_claims(session, status="approved")] == [c1.id]
    assert [c.id for c in await list_claims(session, user_id="u2")] == [c2.id]
    with pytest.raises(ValidationError):
        await list_claims(session, status="bogus")

    stats = await claim_stats(session)
    assert (stats.total, stats.pending, stats.approved, stats.rejected) == (2, 1, 1, 0)

    assert await find_multiply_approved(session) == {}

    await delete_claim(session, c1.id)
    assert (await resolve_ownership(session, b.id)).claimed is False
    with pytest.raises(NotFoundError):
        await delete_claim(session, c1.id)
