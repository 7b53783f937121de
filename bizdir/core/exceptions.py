# bizdir/core/exceptions.py
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class BaseAPIException(Exception):
    """Base exception for all engine errors surfaced to callers."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class AuthenticationError(BaseAPIException):
    """Authentication failed."""
    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(message, status_code=401, **kwargs)


class AuthorizationError(BaseAPIException):
    """Authorization failed."""
    def __init__(self, message: str = "Authorization failed", **kwargs):
        super().__init__(message, status_code=403, **kwargs)


class NotFoundError(BaseAPIException):
    """Resource not found."""
    def __init__(self, message: str = "Resource not found", **kwargs):
        super().__init__(message, status_code=404, **kwargs)


class ValidationError(BaseAPIException):
    """Malformed input, rejected before any write.

    ``errors`` maps field names to messages and lands in ``details["errors"]``.
    """
    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[Mapping[str, str]] = None,
        **kwargs,
    ):
        details = dict(kwargs.pop("details", None) or {})
        if errors:
            details["errors"] = dict(errors)
        super().__init__(message, status_code=422, details=details, **kwargs)
        self.errors = dict(errors or {})


class ConflictError(BaseAPIException):
    """Resource conflict."""
    def __init__(self, message: str = "Resource conflict", **kwargs):
        super().__init__(message, status_code=409, **kwargs)


class DuplicateClaimError(ConflictError):
    """A pending or approved claim already exists for this (business, user)."""
    def __init__(self, message: str = "An active ownership claim already exists", **kwargs):
        kwargs.setdefault("code", "duplicate_claim")
        super().__init__(message, **kwargs)


class DatabaseError(BaseAPIException):
    """Database error."""
    def __init__(self, message: str = "Database error", **kwargs):
        super().__init__(message, status_code=500, **kwargs)


class InvariantViolation(Exception):
    """Internal record of a broken storage invariant.

    Never raised to callers: the detecting component logs it and continues with a
    deterministic fallback.
    """

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
