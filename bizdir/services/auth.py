# bizdir/services/auth.py
"""Actor extraction for the HTTP layer.

Authentication happens upstream; by the time a request reaches us the gateway has
set ``X-User-Id`` and ``X-User-Role``. This module only turns those headers into an
engine actor.
"""
from typing import Optional

from fastapi import Depends, Header

from bizdir.core.exceptions import AuthenticationError, AuthorizationError
from bizdir.core.logging import bind_actor
from bizdir.services.lead_router import Actor, Admin, Owner

ADMIN_ROLE = "admin"


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Actor:
    user_id = (x_user_id or "").strip()
    role = (x_user_role or "").strip().lower()
    if role == ADMIN_ROLE:
        actor: Actor = Admin()
    elif user_id:
        actor = Owner(user_id=user_id)
    else:
        raise AuthenticationError("Missing user identity", code="missing_identity")
    bind_actor(str(actor))
    return actor


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Opaque user id, required for endpoints that act on behalf of a user."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AuthenticationError("Missing user identity", code="missing_identity")
    return user_id


def require_admin(actor: Actor = Depends(get_current_user)) -> Admin:
    if not isinstance(actor, Admin):
        raise AuthorizationError("Administrator role required", code="admin_required")
    return actor
