# bizdir/routes/businesses.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.session import get_session
from bizdir.schemas.business import (
    BusinessCreate,
    BusinessOut,
    BusinessStatsOut,
    BusinessUpdate,
    BusinessWithCategoryOut,
    CityCountOut,
    OwnershipOut,
)
from bizdir.schemas.category import CategoryOut
from bizdir.schemas.common import Page
from bizdir.services import business_query, business_writer
from bizdir.services.auth import require_admin
from bizdir.services.business_query import BusinessFilters, BusinessWithCategory
from bizdir.services.ownership import resolve_ownership

router = APIRouter(prefix="/businesses", tags=["businesses"])


def to_out(row: BusinessWithCategory) -> BusinessWithCategoryOut:
    return BusinessWithCategoryOut(
        business=BusinessOut.model_validate(row.business),
        category=CategoryOut.model_validate(row.category) if row.category is not None else None,
        match_status=row.match_status.value,
    )


@router.get("", response_model=Page[BusinessWithCategoryOut])
async def list_businesses(
    category_id: Optional[int] = Query(None, alias="categoryId"),
    search: Optional[str] = Query(None, max_length=200),
    city: Optional[str] = Query(None, max_length=128),
    featured: Optional[bool] = None,
    include_closed: bool = Query(False, alias="includeClosed"),
    limit: Optional[int] = None,
    offset: int = 0,
    session: AsyncSession = Depends(get_session),
):
    page = await business_query.query_businesses(
        session,
        BusinessFilters(
            category_id=category_id,
            search=search,
            city=city,
            featured=featured,
            include_closed=include_closed,
            limit=limit,
            offset=offset,
        ),
    )
    return Page[BusinessWithCategoryOut](
        items=[to_out(r) for r in page.rows],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/featured", response_model=List[BusinessWithCategoryOut])
async def featured_businesses(limit: Optional[int] = None, session: AsyncSession = Depends(get_session)):
    return [to_out(r) for r in await business_query.get_featured(session, limit)]


@router.get("/random", response_model=List[BusinessWithCategoryOut])
async def random_businesses(
    limit: Optional[int] = None,
    category_id: Optional[int] = Query(None, alias="categoryId"),
    session: AsyncSession = Depends(get_session),
):
    return [to_out(r) for r in await business_query.get_random(session, limit, category_id=category_id)]


@router.get("/cities", response_model=List[CityCountOut])
async def cities(session: AsyncSession = Depends(get_session)):
    return [CityCountOut(city=c.city, count=c.count) for c in await business_query.get_cities_with_counts(session)]


@router.get("/stats", response_model=BusinessStatsOut, dependencies=[Depends(require_admin)])
async def stats(session: AsyncSession = Depends(get_session)):
    s = await business_query.get_business_stats(session)
    return BusinessStatsOut(
        total=s.total,
        featured=s.featured,
        claimed=s.claimed,
        closed=s.closed,
        by_match_status=s.by_match_status,
    )


@router.get("/slug/{slug}", response_model=BusinessWithCategoryOut)
async def get_by_slug(slug: str, session: AsyncSession = Depends(get_session)):
    return to_out(await business_query.get_business_by_slug(session, slug))


@router.get("/{business_id}", response_model=BusinessWithCategoryOut)
async def get_business(business_id: str, session: AsyncSession = Depends(get_session)):
    return to_out(await business_query.get_business(session, business_id))


@router.get("/{business_id}/ownership", response_model=OwnershipOut)
async def get_ownership(business_id: str, session: AsyncSession = Depends(get_session)):
    await business_query.get_business(session, business_id)
    o = await resolve_ownership(session, business_id)
    return OwnershipOut(business_id=o.business_id, claimed=o.claimed, owner_id=o.owner_id)


@router.post(
    "",
    response_model=BusinessWithCategoryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_business(body: BusinessCreate, session: AsyncSession = Depends(get_session)):
    return to_out(await business_writer.create_business(session, body.model_dump(exclude_unset=True)))


@router.patch("/{business_id}", response_model=BusinessWithCategoryOut, dependencies=[Depends(require_admin)])
async def update_business(business_id: str, body: BusinessUpdate, session: AsyncSession = Depends(get_session)):
    changes = body.model_dump(exclude_unset=True)
    return to_out(await business_writer.update_business(session, business_id, changes))


@router.delete("/{business_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_business(business_id: str, session: AsyncSession = Depends(get_session)):
    await business_writer.delete_business(session, business_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
