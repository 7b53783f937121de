# bizdir/services/__init__.py
"""Business resolution and lead-routing engine."""

from bizdir.services.business_query import (
    BusinessFilters,
    BusinessPage,
    BusinessWithCategory,
    get_business,
    get_business_by_slug,
    get_featured,
    get_random,
    query_businesses,
)
from bizdir.services.business_writer import create_business, delete_business, update_business
from bizdir.services.category_matcher import CategoryRef, MatchStatus, match_category, resolve_category
from bizdir.services.lead_router import Admin, Owner, create_lead, route_leads
from bizdir.services.ownership import (
    Ownership,
    create_ownership_claim,
    resolve_ownership,
    review_ownership_claim,
)
from bizdir.services.seo_metadata import SeoMetadata, synthesize_seo
from bizdir.services.slug_generator import generate_slug

__all__ = [
    "Admin",
    "BusinessFilters",
    "BusinessPage",
    "BusinessWithCategory",
    "CategoryRef",
    "MatchStatus",
    "Owner",
    "Ownership",
    "SeoMetadata",
    "create_business",
    "create_lead",
    "create_ownership_claim",
    "delete_business",
    "generate_slug",
    "get_business",
    "get_business_by_slug",
    "get_featured",
    "get_random",
    "match_category",
    "query_businesses",
    "resolve_category",
    "resolve_ownership",
    "review_ownership_claim",
    "route_leads",
    "synthesize_seo",
    "update_business",
]
