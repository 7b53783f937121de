# bizdir/services/normalization.py
"""Input cleaning shared by the business, claim and lead write paths."""
from __future__ import annotations

import re
from typing import Optional

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_WEBSITE_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)

# Width of the phone columns on businesses and leads.
PHONE_MAX_LENGTH = 32


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace; empty strings become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lower-cased address, or None when it is missing or not shaped like one."""
    email = clean_text(email)
    if email is None:
        return None
    email = email.lower()
    return email if _EMAIL_RE.match(email) else None


def clean_phone(phone: Optional[str]) -> Optional[str]:
    # Stored as typed; numbers come from anywhere, so no country rules apply.
    phone = clean_text(phone)
    if phone is None:
        return None
    return re.sub(r"\s+", " ", phone)


def is_valid_website(url: Optional[str]) -> bool:
    return bool(url) and bool(_WEBSITE_RE.match(url.strip()))
