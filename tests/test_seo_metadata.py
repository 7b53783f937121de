# tests/test_seo_metadata.py
import pytest

from bizdir.core.config import settings
from bizdir.services.business_writer import create_business, update_business
from bizdir.services.seo_metadata import synthesize_seo, truncate


def test_title_includes_city_and_category():
    seo = synthesize_seo({"title": "Joe's Café", "city": "Austin"}, "Restaurants")
    assert seo.seo_title == "Joe's Café - Austin | Restaurants"


def test_title_falls_back_to_raw_label():
    seo = synthesize_seo({"title": "Joe's Café", "category_label": "Coffee"})
    assert seo.seo_title == "Joe's Café | Coffee"


def test_long_title_is_truncated_with_ellipsis():
    seo = synthesize_seo({"title": "X" * 100, "city": "Austin"})
    assert len(seo.seo_title) == settings.seo_title_max_length
    assert seo.seo_title.endswith("...")


def test_own_description_preferred_and_truncated():
    text = "Family-run bakery with fresh bread every morning. " * 10
    seo = synthesize_seo({"title": "Bakery", "description": text})
    assert len(seo.seo_description) <= settings.seo_description_max_length
    assert seo.seo_description.endswith("...")
    assert seo.seo_description.startswith("Family-run bakery")


def test_short_description_uses_template():
    seo = synthesize_seo(
        {
            "title": "Joe's Café",
            "description": "Coffee.",
            "address": "1 Main St",
            "city": "Austin",
            "phone": "512-555-0100",
        }
    )
    assert seo.seo_description == (
        "Visit Joe's Café located at 1 Main St in Austin. Call 512-555-0100 for more information."
    )


def test_template_skips_missing_parts():
    seo = synthesize_seo({"title": "Joe's Café"})
    assert seo.seo_description == "Visit Joe's Café."


def test_truncate_leaves_short_text_alone():
    assert truncate("short", 10) == "short"
    assert truncate("abcdefghijk", 10) == "abcdefg..."


@pytest.mark.asyncio
async def test_operator_title_survives_title_change(session, restaurants):
    created = await create_business(
        session,
        {"title": "Joe's Café", "city": "Austin", "category_label": "Restaurant", "seo_title": "Best coffee"},
    )
    assert created.business.seo_title == "Best coffee"
    assert created.business.seo_title_custom is True
    assert created.business.seo_description == "Visit Joe's Café in Austin."

    updated = await update_business(session, created.business.id, {"title": "Joe's Diner"})
    assert updated.business.seo_title == "Best coffee"
    assert updated.business.seo_description == "Visit Joe's Diner in Austin."


@pytest.mark.asyncio
async def test_generated_title_uses_matched_category_name(session, restaurants):
    created = await create_business(
        session, {"title": "Casa", "city": "Austin", "category_label": "Mexican restaurant"}
    )
    assert created.business.seo_title == "Casa - Austin | Restaurants"
    assert created.category.name == "Restaurants"


@pytest.mark.asyncio
async def test_clearing_override_resumes_generation(session):
    created = await create_business(session, {"title": "Joe's Café", "seo_description": "Hand written"})
    assert created.business.seo_description == "Hand written"

    updated = await update_business(session, created.business.id, {"seo_description": ""})
    assert updated.business.seo_description_custom is False
    assert updated.business.seo_description == "Visit Joe's Café."


@pytest.mark.asyncio
async def test_slug_follows_title_unless_pinned(session):
    created = await create_business(session, {"title": "Joe's Café", "city": "Austin"})
    assert created.business.slug == "joes-cafe-austin"

    renamed = await update_business(session, created.business.id, {"title": "Joe's Diner"})
    assert renamed.business.slug == "joes-diner-austin"

    pinned = await update_business(session, created.business.id, {"slug": "Joe's Original"})
    assert pinned.business.slug == "joes-original"
    assert pinned.business.slug_custom is True

    moved = await update_business(session, created.business.id, {"city": "Dallas"})
    assert moved.business.slug == "joes-original"
