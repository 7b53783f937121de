# bizdir/routes/__init__.py
"""
API route handlers organized by domain.
"""

from bizdir.routes.businesses import router as businesses_router
from bizdir.routes.categories import router as categories_router
from bizdir.routes.claims import router as claims_router
from bizdir.routes.health import router as health_router
from bizdir.routes.leads import router as leads_router

__all__ = [
    "businesses_router",
    "categories_router",
    "claims_router",
    "health_router",
    "leads_router",
]
