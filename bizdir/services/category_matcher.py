# bizdir/services/category_matcher.py
"""Resolve a business's free-text category label to one canonical category.

Businesses reference categories by label text only, so every read re-derives the
match. The functions here are pure: same (label, categories) in, same answer out.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizdir.models.category import Category

_RESTAURANTS_RE = re.compile(r"restaurants", re.IGNORECASE)


class MatchLevel(IntEnum):
    """Lower value wins."""

    EXACT = 1
    SINGULAR_LABEL = 2  # "Restaurant" -> "Restaurants"
    PLURAL_LABEL = 3  # "Dentists" -> "Dentist"
    NORMALIZED_SUBSTRING = 4
    SUBSTRING = 5


class MatchStatus(str, Enum):
    MATCHED = "matched"
    # The business carries no label at all.
    UNCATEGORIZED = "uncategorized"
    # The business carries a label that no canonical category answers to,
    # e.g. the category it named has been deleted.
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class CategoryRef:
    id: int
    name: str
    slug: str
    description: Optional[str] = None

    @classmethod
    def from_model(cls, category: Any) -> "CategoryRef":
        return cls(
            id=int(category.id),
            name=category.name,
            slug=category.slug,
            description=getattr(category, "description", None),
        )


@dataclass(frozen=True)
class CategoryMatch:
    status: MatchStatus
    category: Optional[CategoryRef] = None
    level: Optional[MatchLevel] = None

    @property
    def matched(self) -> bool:
        return self.status is MatchStatus.MATCHED


def _normalize_restaurants(value: str) -> str:
    return _RESTAURANTS_RE.sub("restaurant", value).lower()


def match_level(label: str, name: str) -> Optional[MatchLevel]:
    """Best level at which ``label`` matches category ``name``, or None."""
    if not label or not name:
        return None
    if label == name:
        return MatchLevel.EXACT
    if label + "s" == name:
        return MatchLevel.SINGULAR_LABEL
    if label == name + "s":
        return MatchLevel.PLURAL_LABEL

    if _normalize_restaurants(name) in _normalize_restaurants(label):
        return MatchLevel.NORMALIZED_SUBSTRING

    lowered_label = label.lower()
    lowered_name = name.lower()
    if lowered_name in lowered_label or lowered_label in lowered_name:
        return MatchLevel.SUBSTRING
    return None


def resolve_category(label: Optional[str], categories: Iterable[Any]) -> CategoryMatch:
    """Pick the single best category for ``label``.

    Every category is scored by its best level; the lowest level wins and ties go
    to the lowest category id, so input order never changes the answer.
    """
    cleaned = (label or "").strip()
    if not cleaned:
        return CategoryMatch(status=MatchStatus.UNCATEGORIZED)

    best: Optional[Tuple[Tuple[int, int], Any, MatchLevel]] = None
    for category in categories:
        level = match_level(cleaned, category.name)
        if level is None:
            continue
        key = (int(level), int(category.id))
        if best is None or key < best[0]:
            best = (key, category, level)

    if best is None:
        return CategoryMatch(status=MatchStatus.UNMATCHED)

    _, category, level = best
    ref = category if isinstance(category, CategoryRef) else CategoryRef.from_model(category)
    return CategoryMatch(status=MatchStatus.MATCHED, category=ref, level=level)


def match_category(label: Optional[str], categories: Iterable[Any]) -> Optional[CategoryRef]:
    """Return the best-matching canonical category for ``label``, or None."""
    return resolve_category(label, categories).category


class CategoryResolver:
    """Per-call memo of label -> match over one snapshot of the category set.

    Built fresh for every query; nothing is kept between calls.
    """

    def __init__(self, categories: Sequence[Any]):
        self.categories: List[CategoryRef] = [
            c if isinstance(c, CategoryRef) else CategoryRef.from_model(c) for c in categories
        ]
        self._by_id: Dict[int, CategoryRef] = {c.id: c for c in self.categories}
        self._memo: Dict[str, CategoryMatch] = {}

    def get(self, category_id: int) -> Optional[CategoryRef]:
        return self._by_id.get(category_id)

    def resolve(self, label: Optional[str]) -> CategoryMatch:
        key = (label or "").strip()
        if key not in self._memo:
            self._memo[key] = resolve_category(key, self.categories)
        return self._memo[key]

    def labels_for(self, category_id: int, labels: Iterable[Optional[str]]) -> List[str]:
        """Labels (as stored) whose best match is ``category_id``."""
        out = []
        for label in labels:
            if label is None:
                continue
            match = self.resolve(label)
            if match.category is not None and match.category.id == category_id:
                out.append(label)
        return sorted(set(out))


async def load_categories(session: AsyncSession) -> List[CategoryRef]:
    result = await session.execute(select(Category).order_by(Category.id))
    return [CategoryRef.from_model(c) for c in result.scalars().all()]


async def load_resolver(session: AsyncSession) -> CategoryResolver:
    return CategoryResolver(await load_categories(session))
