# bizdir/services/seo_metadata.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from bizdir.core.config import settings

_ELLIPSIS = "..."


@dataclass(frozen=True)
class SeoMetadata:
    seo_title: str
    seo_description: str


def _field(business: Any, name: str) -> Optional[str]:
    if isinstance(business, Mapping):
        value = business.get(name)
    else:
        value = getattr(business, name, None)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(limit - len(_ELLIPSIS), 0)].rstrip() + _ELLIPSIS


def build_seo_title(title: Optional[str], city: Optional[str], category: Optional[str]) -> str:
    out = title or "Business"
    if city:
        out += f" - {city}"
    if category:
        out += f" | {category}"
    return truncate(out, settings.seo_title_max_length)


def build_seo_description(
    title: Optional[str],
    description: Optional[str],
    address: Optional[str],
    city: Optional[str],
    phone: Optional[str],
) -> str:
    limit = settings.seo_description_max_length
    if description and len(description) > settings.seo_description_min_source_length:
        return truncate(description, limit)

    parts = [f"Visit {title or 'this business'}"]
    if address:
        parts.append(f"located at {address}")
    if city:
        parts.append(f"in {city}")
    sentence = " ".join(parts) + "."
    if phone:
        sentence += f" Call {phone} for more information."
    return truncate(sentence, limit)


def synthesize_seo(business: Any, category_name: Optional[str] = None) -> SeoMetadata:
    """Derive fallback SEO title and description from a business snapshot.

    ``business`` may be an ORM row or a plain mapping. ``category_name`` is the
    matched canonical category name; the raw label is used when it is omitted.
    """
    title = _field(business, "title")
    city = _field(business, "city")
    category = category_name or _field(business, "category_label")
    return SeoMetadata(
        seo_title=build_seo_title(title, city, category),
        seo_description=build_seo_description(
            title,
            _field(business, "description"),
            _field(business, "address"),
            city,
            _field(business, "phone"),
        ),
    )


def apply_seo(business: Any, category_name: Optional[str] = None) -> SeoMetadata:
    """Regenerate only the SEO fields an operator has not set on ``business``."""
    derived = synthesize_seo(business, category_name)
    if not business.seo_title_custom:
        business.seo_title = derived.seo_title
    if not business.seo_description_custom:
        business.seo_description = derived.seo_description
    return SeoMetadata(seo_title=business.seo_title, seo_description=business.seo_description)
