# bizdir/services/slug_generator.py
from __future__ import annotations

import asyncio
import re
import unicodedata
from typing import AbstractSet, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.core.config import settings
from bizdir.core.exceptions import ConflictError
from bizdir.core.logging import get_structlog_logger
from bizdir.models.business import Business

logger = get_structlog_logger(__name__)

T = TypeVar("T")

_DISALLOWED_RE = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-{2,}")


def normalize_segment(value: Optional[str], max_length: Optional[int] = None) -> str:
    """Lower-case, ASCII-fold and hyphenate one slug segment.

    "Joe's Café!" -> "joes-cafe"
    """
    if not value:
        return ""
    folded = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    s = _DISALLOWED_RE.sub("", folded.lower())
    s = _WHITESPACE_RE.sub("-", s.strip())
    s = _HYPHENS_RE.sub("-", s).strip("-")
    if max_length is not None and len(s) > max_length:
        s = s[:max_length].rstrip("-")
    return s


def build_base_slug(
    title: Optional[str],
    city: Optional[str] = None,
    category: Optional[str] = None,
) -> str:
    parts = [
        normalize_segment(title, settings.slug_title_max_length) or settings.slug_fallback_token,
        normalize_segment(city, settings.slug_city_max_length),
        normalize_segment(category, settings.slug_category_max_length),
    ]
    base = "-".join(p for p in parts if p)
    if len(base) > settings.slug_max_length:
        base = base[: settings.slug_max_length].rstrip("-")
    return base or settings.slug_fallback_token


async def slug_exists(session: AsyncSession, slug: str, exclude_id: Optional[str] = None) -> bool:
    stmt = select(Business.id).where(Business.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Business.id != exclude_id)
    res = await session.execute(stmt.limit(1))
    return res.first() is not None


async def unique_slug(
    session: AsyncSession,
    base: str,
    *,
    exclude_id: Optional[str] = None,
    skip: AbstractSet[str] = frozenset(),
) -> str:
    """First of ``base``, ``base-2``, ``base-3``, ... not taken in the store.

    ``skip`` holds candidates already lost to a concurrent writer in this attempt.
    """
    candidate = base
    counter = 2
    while candidate in skip or await slug_exists(session, candidate, exclude_id):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


async def generate_slug(
    session: AsyncSession,
    title: Optional[str],
    city: Optional[str] = None,
    category: Optional[str] = None,
    exclude_id: Optional[str] = None,
) -> str:
    """Derive a slug for the given fields that no other business currently holds.

    Check-then-insert is racy; callers persisting the result go through
    ``write_with_unique_slug`` so a lost race is retried.
    """
    return await unique_slug(session, build_base_slug(title, city, category), exclude_id=exclude_id)


def is_slug_violation(exc: IntegrityError) -> bool:
    return "slug" in str(getattr(exc, "orig", exc)).lower()


async def write_with_unique_slug(
    session: AsyncSession,
    base: str,
    write: Callable[[str], Awaitable[T]],
    *,
    exclude_id: Optional[str] = None,
) -> T:
    """Pick a free slug from ``base`` and run ``write(slug)`` inside a savepoint.

    A unique violation on slug means another writer took the candidate between
    our check and our flush; the candidate is skipped and the write retried with
    exponential backoff, up to ``settings.slug_max_retries`` attempts.
    """
    lost: set = set()
    attempts = settings.slug_max_retries
    for attempt in range(1, attempts + 1):
        slug = await unique_slug(session, base, exclude_id=exclude_id, skip=lost)
        try:
            async with session.begin_nested():
                result = await write(slug)
                await session.flush()
            return result
        except IntegrityError as e:
            if not is_slug_violation(e):
                raise
            lost.add(slug)
            logger.warning(
                "slug.conflict",
                slug=slug,
                attempt=attempt,
                max_attempts=attempts,
            )
            if attempt < attempts:
                await asyncio.sleep(settings.slug_retry_backoff_seconds * (2 ** (attempt - 1)))

    logger.error("slug.retries_exhausted", base=base, attempts=attempts)
    raise ConflictError(
        message="Could not allocate a unique slug",
        code="slug_conflict",
        details={"base_slug": base, "attempts": attempts},
    )
