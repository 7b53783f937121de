# tests/test_slug_generator.py
import os

import pytest
from sqlalchemy import select

from bizdir.core.config import settings
from bizdir.core.exceptions import ConflictError
from bizdir.models.business import Business
from bizdir.services import slug_generator
from bizdir.services.business_writer import create_business
from bizdir.services.slug_generator import build_base_slug, generate_slug, normalize_segment

from conftest import make_business


def test_normalize_strips_punctuation_and_accents():
    assert normalize_segment("Joe's Café!") == "joes-cafe"
    assert normalize_segment("  Hello   World  ") == "hello-world"
    assert normalize_segment("a -- b") == "a-b"
    assert normalize_segment("-edge-") == "edge"


def test_base_slug_appends_city_and_category_segments():
    assert build_base_slug("Joe's Café!", "Austin", "Coffee Shops") == "joes-cafe-austin-coffee-shops"
    assert build_base_slug("Joe's Café!") == "joes-cafe"
    assert build_base_slug("Joe's Café!", None, "Bakery") == "joes-cafe-bakery"


def test_segments_are_truncated():
    slug = build_base_slug("a" * 80, "b" * 40, "c" * 40)
    title, city, category = slug.split("-")
    assert len(title) == settings.slug_title_max_length
    assert len(city) == settings.slug_city_max_length
    assert len(category) == settings.slug_category_max_length
    assert len(slug) <= settings.slug_max_length


@pytest.mark.parametrize("title", ["", None, "!!!", "   "])
def test_empty_title_falls_back_to_placeholder(title):
    assert build_base_slug(title) == settings.slug_fallback_token
    assert build_base_slug(title, "Austin") == f"{settings.slug_fallback_token}-austin"


@pytest.mark.asyncio
async def test_generate_slug_appends_numeric_suffix(session):
    await make_business(session, "Joe's Café!")
    assert await generate_slug(session, "Joe's Café!") == "joes-cafe-2"

    await make_business(session, "Joe's Café!")
    assert await generate_slug(session, "Joe's Café!") == "joes-cafe-3"


@pytest.mark.asyncio
async def test_generate_slug_excludes_the_record_being_updated(session):
    b = await make_business(session, "Joe's Café!")
    assert await generate_slug(session, "Joe's Café!", exclude_id=b.id) == "joes-cafe"


@pytest.mark.asyncio
async def test_identical_titles_get_distinct_slugs(session):
    slugs = [(await make_business(session, "Joe's Café!")).slug for _ in range(5)]
    assert len(set(slugs)) == 5
    assert all(s.startswith("joes-cafe") for s in slugs)
    assert slugs[0] == "joes-cafe"


@pytest.mark.asyncio
async def test_lost_race_is_retried_with_next_suffix(session, monkeypatch):
    await make_business(session, "Joe's Café!")

    # Pretend the check never sees the existing row, as a concurrent writer's
    # uncommitted insert would be invisible; the unique index catches it.
    async def _never_exists(*args, **kwargs):
        return False

    monkeypatch.setattr(slug_generator, "slug_exists", _never_exists)
    monkeypatch.setattr(settings, "slug_retry_backoff_seconds", 0.0)

    created = await create_business(session, {"title": "Joe's Café!"})
    assert created.business.slug == "joes-cafe-2"

    res = await session.execute(select(Business.slug).order_by(Business.slug))
    assert res.scalars().all() == ["joes-cafe", "joes-cafe-2"]


@pytest.mark.asyncio
async def test_retries_are_bounded(session, monkeypatch):
    await make_business(session, "Joe's Café!")

    async def _always_taken(*args, **kwargs):
        return "joes-cafe"

    monkeypatch.setattr(slug_generator, "unique_slug", _always_taken)
    monkeypatch.setattr(settings, "slug_retry_backoff_seconds", 0.0)
    monkeypatch.setattr(settings, "slug_max_retries", 3)

    with pytest.raises(ConflictError) as ei:
        await create_business(session, {"title": "Joe's Café!"})
    assert ei.value.status_code == 409
    assert ei.value.details["attempts"] == 3


@pytest.mark.skipif(not os.getenv("DATABASE_URL"), reason="DATABASE_URL not set (expected async postgres url)")
@pytest.mark.asyncio
async def test_concurrent_creates_on_postgres_never_share_a_slug():
    import asyncio
    import uuid

    from sqlalchemy import delete
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from bizdir.db.base import init_models

    engine = create_async_engine(os.environ["DATABASE_URL"])
    await init_models(engine)
    maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    title = f"Race Test {uuid.uuid4().hex[:8]}"

    async def one():
        async with maker() as s:
            return (await create_business(s, {"title": title})).business

    try:
        created = await asyncio.gather(*[one() for _ in range(5)])
        slugs = [b.slug for b in created]
        assert len(set(slugs)) == 5
    finally:
        async with maker() as s:
            await s.execute(delete(Business).where(Business.title == title))
            await s.commit()
        await engine.dispose()
