# bizdir/routes/categories.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.db.session import get_session
from bizdir.schemas.category import CategoryCreate, CategoryMatchOut, CategoryOut, CategoryWithCount
from bizdir.services.auth import require_admin
from bizdir.services.business_query import list_categories_with_counts
from bizdir.services.business_writer import create_category
from bizdir.services.category_matcher import load_categories, resolve_category

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=List[CategoryWithCount])
async def list_categories(session: AsyncSession = Depends(get_session)):
    return [
        CategoryWithCount(
            id=c.category.id,
            name=c.category.name,
            slug=c.category.slug,
            description=c.category.description,
            business_count=c.count,
        )
        for c in await list_categories_with_counts(session)
    ]


@router.get("/match", response_model=CategoryMatchOut)
async def match(label: str = Query(..., max_length=255), session: AsyncSession = Depends(get_session)):
    m = resolve_category(label, await load_categories(session))
    return CategoryMatchOut(
        label=label,
        status=m.status.value,
        level=int(m.level) if m.level is not None else None,
        category=CategoryOut.model_validate(m.category) if m.category is not None else None,
    )


@router.post(
    "",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create(body: CategoryCreate, session: AsyncSession = Depends(get_session)):
    ref = await create_category(session, body.name, slug=body.slug, description=body.description)
    return CategoryOut.model_validate(ref)
