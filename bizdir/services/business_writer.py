# bizdir/services/business_writer.py
"""Business and category write path.

Every write that touches title, city or category label re-derives the slug and the
non-sticky SEO fields before persisting. Slug allocation goes through
``write_with_unique_slug`` so a concurrent writer taking the same slug costs a retry
instead of a failed request.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.core.exceptions import ConflictError, NotFoundError, ValidationError
from bizdir.core.logging import get_structlog_logger
from bizdir.core.config import settings
from bizdir.models.business import Business
from bizdir.models.category import Category
from bizdir.services.business_query import BusinessWithCategory, with_category
from bizdir.services.category_matcher import CategoryRef, load_resolver
from bizdir.services.normalization import clean_text, is_valid_website, normalize_email
from bizdir.services.seo_metadata import apply_seo
from bizdir.services.slug_generator import build_base_slug, normalize_segment, write_with_unique_slug

logger = get_structlog_logger(__name__)

_TEXT_FIELDS = ("title", "category_label", "description", "address", "city", "phone", "email", "website")
_FLAG_FIELDS = ("featured", "closed")
_OVERRIDE_FIELDS = ("slug", "seo_title", "seo_description")
_SLUG_INPUTS = ("title", "city", "category_label")
_ALLOWED_FIELDS = frozenset(_TEXT_FIELDS + _FLAG_FIELDS + _OVERRIDE_FIELDS)


def _validate(data: Mapping[str, Any], *, creating: bool) -> Dict[str, Any]:
    """Clean ``data`` into column values, collecting field-level errors."""
    errors: Dict[str, str] = {}
    out: Dict[str, Any] = {}

    allowed = _ALLOWED_FIELDS | {"id"} if creating else _ALLOWED_FIELDS
    for key in data:
        if key not in allowed:
            errors[key] = "unknown field"

    for key in _TEXT_FIELDS + _OVERRIDE_FIELDS:
        if key in data:
            value = data[key]
            if value is not None and not isinstance(value, str):
                errors[key] = "must be a string"
                continue
            out[key] = clean_text(value)

    if creating or "title" in data:
        if not out.get("title"):
            errors["title"] = "is required"

    if out.get("email"):
        email = normalize_email(out["email"])
        if email is None:
            errors["email"] = "is not a valid email address"
        else:
            out["email"] = email

    if out.get("website") and not is_valid_website(out["website"]):
        errors["website"] = "must be an http(s) URL"

    if "slug" in out and out["slug"] and not normalize_segment(out["slug"]):
        errors["slug"] = "must contain at least one letter or digit"

    for key in _FLAG_FIELDS:
        if key in data:
            if not isinstance(data[key], bool):
                errors[key] = "must be a boolean"
            else:
                out[key] = data[key]

    if creating and data.get("id") is not None:
        business_id = clean_text(str(data["id"]))
        if not business_id:
            errors["id"] = "must not be empty"
        out["id"] = business_id

    if errors:
        raise ValidationError("Invalid business data", errors=errors)
    return out


def _category_name(resolver, business: Business) -> Optional[str]:
    ref: Optional[CategoryRef] = resolver.resolve(business.category_label).category
    return ref.name if ref is not None else None


def _apply_overrides(business: Business, values: Mapping[str, Any]) -> None:
    for key in ("seo_title", "seo_description"):
        if key in values:
            setattr(business, key, values[key])
            setattr(business, f"{key}_custom", values[key] is not None)


async def create_business(session: AsyncSession, data: Mapping[str, Any]) -> BusinessWithCategory:
    values = _validate(data, creating=True)
    business_id = values.pop("id", None) or uuid.uuid4().hex

    if await session.get(Business, business_id) is not None:
        raise ConflictError(
            "Business already exists",
            code="business_exists",
            details={"business_id": business_id},
        )

    business = Business(id=business_id, slug_custom=False, seo_title_custom=False, seo_description_custom=False)
    for key in _TEXT_FIELDS:
        setattr(business, key, values.get(key))
    business.featured = values.get("featured", False)
    business.closed = values.get("closed", False)
    _apply_overrides(business, values)

    resolver = await load_resolver(session)
    apply_seo(business, _category_name(resolver, business))

    if values.get("slug"):
        base = normalize_segment(values["slug"], settings.slug_max_length)
        business.slug_custom = True
    else:
        base = build_base_slug(business.title, business.city, business.category_label)

    async def _insert(slug: str) -> Business:
        business.slug = slug
        session.add(business)
        return business

    await write_with_unique_slug(session, base, _insert)
    await session.commit()
    await session.refresh(business)

    logger.info("business.created", business_id=business.id, slug=business.slug)
    return with_category(resolver, business)


async def update_business(
    session: AsyncSession,
    business_id: str,
    changes: Mapping[str, Any],
) -> BusinessWithCategory:
    """Apply ``changes``; slug and SEO follow unless pinned by the operator.

    Passing an empty ``slug``/``seo_title``/``seo_description`` clears the override
    and hands the field back to automatic derivation.
    """
    business = await session.get(Business, business_id)
    if business is None:
        raise NotFoundError("Business not found", code="business_not_found", details={"business_id": business_id})

    values = _validate(changes, creating=False)

    slug_inputs_changed = any(
        key in values and values[key] != getattr(business, key) for key in _SLUG_INPUTS
    )
    for key in _TEXT_FIELDS + _FLAG_FIELDS:
        if key in values:
            setattr(business, key, values[key])
    _apply_overrides(business, values)

    base: Optional[str] = None
    if "slug" in values:
        if values["slug"]:
            base = normalize_segment(values["slug"], settings.slug_max_length)
            business.slug_custom = True
        else:
            business.slug_custom = False
            base = build_base_slug(business.title, business.city, business.category_label)
    elif slug_inputs_changed and not business.slug_custom:
        base = build_base_slug(business.title, business.city, business.category_label)

    resolver = await load_resolver(session)
    apply_seo(business, _category_name(resolver, business))

    if base is not None:

        async def _set_slug(slug: str) -> Business:
            # A rolled-back savepoint expires the row; reload before writing again.
            await session.refresh(business)
            business.slug = slug
            return business

        await write_with_unique_slug(session, base, _set_slug, exclude_id=business.id)

    await session.commit()
    await session.refresh(business)

    logger.info(
        "business.updated",
        business_id=business.id,
        fields=sorted(values),
        slug=business.slug,
    )
    return with_category(resolver, business)


async def delete_business(session: AsyncSession, business_id: str) -> None:
    business = await session.get(Business, business_id)
    if business is None:
        raise NotFoundError("Business not found", code="business_not_found", details={"business_id": business_id})
    await session.delete(business)
    await session.commit()
    logger.info("business.deleted", business_id=business_id)


async def regenerate_seo(session: AsyncSession) -> int:
    """Re-derive non-sticky SEO fields for every business. Returns rows changed."""
    resolver = await load_resolver(session)
    res = await session.execute(select(Business).order_by(Business.id))
    changed = 0
    for business in res.scalars().all():
        before = (business.seo_title, business.seo_description)
        after = apply_seo(business, _category_name(resolver, business))
        if (after.seo_title, after.seo_description) != before:
            changed += 1
    await session.commit()
    logger.info("business.seo_regenerated", changed=changed)
    return changed


async def create_category(
    session: AsyncSession,
    name: str,
    slug: Optional[str] = None,
    description: Optional[str] = None,
) -> CategoryRef:
    name = clean_text(name)
    if not name:
        raise ValidationError("Invalid category", errors={"name": "is required"})
    slug = normalize_segment(slug or name, 200)
    if not slug:
        raise ValidationError("Invalid category", errors={"slug": "must contain at least one letter or digit"})

    res = await session.execute(
        select(Category.id).where(or_(Category.name == name, Category.slug == slug)).limit(1)
    )
    if res.first() is not None:
        raise ConflictError("Category already exists", code="category_exists", details={"name": name, "slug": slug})

    category = Category(name=name, slug=slug, description=clean_text(description))
    try:
        async with session.begin_nested():
            session.add(category)
            await session.flush()
    except IntegrityError as e:
        raise ConflictError(
            "Category already exists",
            code="category_exists",
            details={"name": name, "slug": slug},
        ) from e
    await session.commit()

    logger.info("category.created", category_id=category.id, name=name, slug=slug)
    return CategoryRef.from_model(category)
