from __future__ import annotations

import re
from typing import Iterable

from ..core.exceptions import InvalidIdentity, ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_positive_id(value, field_name: str) -> int:
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if v <= 0:
        raise ValidationError(f"{field_name} is invalid")
    return v


def normalize_claimant_key(value: str, *, allowed_domains: Iterable[str] = ()) -> str:
    """Normalize a claimant email into the key challenges are stored under."""

    key = (value or "").strip().lower()
    if not _EMAIL_RE.match(key):
        raise InvalidIdentity("A valid email address is required")

    domains = [d.strip().lower().lstrip("@") for d in allowed_domains if d and d.strip()]
    if domains and key.rsplit("@", 1)[1] not in domains:
        raise InvalidIdentity("Email domain is not allowed: " + ", ".join("@" + d for d in domains))
    return key
