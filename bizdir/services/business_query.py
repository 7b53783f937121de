# bizdir/services/business_query.py
"""Read side of the directory: filtered, paginated, deterministically ordered listings.

Category filtering goes through the matcher rather than a join on a stored key: the
distinct labels present in the table are resolved against the current category set
and the query is narrowed to the labels that land on the requested category.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.core.config import settings
from bizdir.core.exceptions import NotFoundError, ValidationError
from bizdir.models.business import Business
from bizdir.models.ownership_claim import CLAIM_APPROVED, OwnershipClaim
from bizdir.services.category_matcher import (
    CategoryRef,
    CategoryResolver,
    MatchStatus,
    load_resolver,
)

_LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class BusinessWithCategory:
    business: Business
    category: Optional[CategoryRef]
    match_status: MatchStatus


@dataclass(frozen=True)
class BusinessFilters:
    category_id: Optional[int] = None
    search: Optional[str] = None
    city: Optional[str] = None
    featured: Optional[bool] = None
    include_closed: bool = False
    limit: Optional[int] = None
    offset: int = 0


@dataclass(frozen=True)
class BusinessPage:
    rows: List[BusinessWithCategory]
    total: int
    limit: int
    offset: int


@dataclass(frozen=True)
class CityCount:
    city: str
    count: int


@dataclass(frozen=True)
class CategoryCount:
    category: CategoryRef
    count: int


@dataclass(frozen=True)
class BusinessStats:
    total: int
    featured: int
    claimed: int
    closed: int
    by_match_status: Dict[str, int] = field(default_factory=dict)


def escape_like(term: str) -> str:
    return (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def _validate_page(limit: Optional[int], offset: int) -> int:
    errors = {}
    if limit is None:
        limit = settings.query_default_limit
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1 or limit > settings.query_max_limit:
        errors["limit"] = f"must be an integer between 1 and {settings.query_max_limit}"
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        errors["offset"] = "must be a non-negative integer"
    if errors:
        raise ValidationError("Invalid pagination", errors=errors)
    return limit


def with_category(resolver: CategoryResolver, business: Business) -> BusinessWithCategory:
    match = resolver.resolve(business.category_label)
    return BusinessWithCategory(business=business, category=match.category, match_status=match.status)


async def _conditions(
    session: AsyncSession,
    filters: BusinessFilters,
    resolver: CategoryResolver,
) -> Optional[List[Any]]:
    """WHERE clauses for ``filters``; None when the filters cannot match anything."""
    conds: List[Any] = []

    if not filters.include_closed:
        conds.append(Business.closed.is_(False))

    if filters.featured is not None:
        conds.append(Business.featured.is_(bool(filters.featured)))

    city = (filters.city or "").strip()
    if city:
        conds.append(func.lower(Business.city) == city.lower())

    term = (filters.search or "").strip()
    if term:
        pattern = f"%{escape_like(term)}%"
        conds.append(
            or_(
                Business.title.ilike(pattern, escape=_LIKE_ESCAPE),
                Business.description.ilike(pattern, escape=_LIKE_ESCAPE),
                Business.category_label.ilike(pattern, escape=_LIKE_ESCAPE),
            )
        )

    if filters.category_id is not None:
        if resolver.get(filters.category_id) is None:
            raise NotFoundError(
                "Category not found",
                code="category_not_found",
                details={"category_id": filters.category_id},
            )
        res = await session.execute(
            select(distinct(Business.category_label)).where(Business.category_label.is_not(None))
        )
        labels = resolver.labels_for(filters.category_id, res.scalars().all())
        if not labels:
            return None
        conds.append(Business.category_label.in_(labels))

    return conds


async def query_businesses(
    session: AsyncSession,
    filters: Optional[BusinessFilters] = None,
    **kwargs: Any,
) -> BusinessPage:
    """Filtered page of businesses plus the unpaginated total.

    Filters are AND-combined. Ordering is featured first, then title, then id, so
    repeated calls with the same filters page identically.
    """
    if filters is None:
        filters = BusinessFilters(**kwargs)
    limit = _validate_page(filters.limit, filters.offset)

    resolver = await load_resolver(session)
    conds = await _conditions(session, filters, resolver)
    if conds is None:
        return BusinessPage(rows=[], total=0, limit=limit, offset=filters.offset)

    total = await session.scalar(select(func.count()).select_from(Business).where(*conds))

    stmt = (
        select(Business)
        .where(*conds)
        .order_by(Business.featured.desc(), Business.title.asc(), Business.id.asc())
        .limit(limit)
        .offset(filters.offset)
    )
    res = await session.execute(stmt)
    rows = [with_category(resolver, b) for b in res.scalars().all()]
    return BusinessPage(rows=rows, total=int(total or 0), limit=limit, offset=filters.offset)


async def get_random(
    session: AsyncSession,
    limit: Optional[int] = None,
    *,
    category_id: Optional[int] = None,
) -> List[BusinessWithCategory]:
    """Open businesses in a fresh random order on every call."""
    limit = _validate_page(settings.random_default_limit if limit is None else limit, 0)
    resolver = await load_resolver(session)
    conds = await _conditions(session, BusinessFilters(category_id=category_id), resolver)
    if conds is None:
        return []
    res = await session.execute(select(Business).where(*conds).order_by(func.random()).limit(limit))
    return [with_category(resolver, b) for b in res.scalars().all()]


async def get_featured(session: AsyncSession, limit: Optional[int] = None) -> List[BusinessWithCategory]:
    page = await query_businesses(
        session,
        BusinessFilters(featured=True, limit=settings.featured_default_limit if limit is None else limit),
    )
    return page.rows


async def get_business(session: AsyncSession, business_id: str) -> BusinessWithCategory:
    business = await session.get(Business, business_id)
    if business is None:
        raise NotFoundError("Business not found", code="business_not_found", details={"business_id": business_id})
    return with_category(await load_resolver(session), business)


async def get_business_by_slug(session: AsyncSession, slug: str) -> BusinessWithCategory:
    res = await session.execute(select(Business).where(Business.slug == slug))
    business = res.scalar_one_or_none()
    if business is None:
        raise NotFoundError("Business not found", code="business_not_found", details={"slug": slug})
    return with_category(await load_resolver(session), business)


async def get_cities_with_counts(session: AsyncSession) -> List[CityCount]:
    stmt = (
        select(Business.city, func.count(Business.id).label("n"))
        .where(Business.closed.is_(False), Business.city.is_not(None), Business.city != "")
        .group_by(Business.city)
        .order_by(func.count(Business.id).desc(), Business.city.asc())
    )
    res = await session.execute(stmt)
    return [CityCount(city=row.city, count=int(row.n)) for row in res]


async def list_categories_with_counts(session: AsyncSession) -> List[CategoryCount]:
    """Every category with the number of open businesses the matcher assigns to it."""
    resolver = await load_resolver(session)
    res = await session.execute(
        select(Business.category_label, func.count(Business.id).label("n"))
        .where(Business.closed.is_(False), Business.category_label.is_not(None))
        .group_by(Business.category_label)
    )
    counts: Dict[int, int] = {c.id: 0 for c in resolver.categories}
    for row in res:
        match = resolver.resolve(row.category_label)
        if match.category is not None:
            counts[match.category.id] += int(row.n)
    ordered = sorted(resolver.categories, key=lambda c: (c.name, c.id))
    return [CategoryCount(category=c, count=counts[c.id]) for c in ordered]


async def get_business_stats(session: AsyncSession) -> BusinessStats:
    total = await session.scalar(select(func.count(Business.id)).where(Business.closed.is_(False)))
    featured = await session.scalar(
        select(func.count(Business.id)).where(Business.closed.is_(False), Business.featured.is_(True))
    )
    closed = await session.scalar(select(func.count(Business.id)).where(Business.closed.is_(True)))
    claimed = await session.scalar(
        select(func.count(distinct(OwnershipClaim.business_id)))
        .join(Business, Business.id == OwnershipClaim.business_id)
        .where(OwnershipClaim.status == CLAIM_APPROVED, Business.closed.is_(False))
    )

    resolver = await load_resolver(session)
    res = await session.execute(
        select(Business.category_label, func.count(Business.id).label("n"))
        .where(Business.closed.is_(False))
        .group_by(Business.category_label)
    )
    by_status: Dict[str, int] = {s.value: 0 for s in MatchStatus}
    for row in res:
        by_status[resolver.resolve(row.category_label).status.value] += int(row.n)

    return BusinessStats(
        total=int(total or 0),
        featured=int(featured or 0),
        claimed=int(claimed or 0),
        closed=int(closed or 0),
        by_match_status=by_status,
    )
