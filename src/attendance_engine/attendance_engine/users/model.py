from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Roster entry supplied by the surrounding application (read-only here).

    Note: Plain data object, no DB access code.
    """

    user_id: int
    name: str
    email: str
    role: Role
    class_id: Optional[int] = None
    is_active: bool = True
