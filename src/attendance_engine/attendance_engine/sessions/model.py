from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ..core.enums import SessionState


@dataclass(frozen=True)
class Session:
    """Domain entity: one class meeting open for marking.

    ``state`` is what was last persisted. Callers must use ``effective_state(now)``:
    an active session whose deadline has passed reads as expired even before the sweep
    writes it.
    """

    session_id: int
    owner_id: int
    class_id: int
    subject_id: int
    code: str
    created_at: datetime
    expires_at: datetime
    state: SessionState = SessionState.ACTIVE
    closed_at: Optional[datetime] = None

    def effective_state(self, now: datetime) -> SessionState:
        if self.state is SessionState.ACTIVE and now >= self.expires_at:
            return SessionState.EXPIRED
        return self.state

    def is_active(self, now: datetime) -> bool:
        return self.effective_state(now) is SessionState.ACTIVE

    def seconds_remaining(self, now: datetime) -> int:
        if not self.is_active(now):
            return 0
        return max(0, int((self.expires_at - now).total_seconds()))

    def as_of(self, now: datetime) -> "Session":
        """Copy with the lazily-evaluated state applied."""
        state = self.effective_state(now)
        if state is self.state:
            return self
        return replace(self, state=state, closed_at=self.closed_at or self.expires_at)

    def to_dict(self, now: datetime) -> dict:
        return {
            "session_id": self.session_id,
            "owner_id": self.owner_id,
            "class_id": self.class_id,
            "subject_id": self.subject_id,
            "session_code": self.code,
            "status": self.effective_state(now).value,
            "created_at": self.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            "expires_at": self.expires_at.strftime("%Y-%m-%d %H:%M:%S"),
            "seconds_remaining": self.seconds_remaining(now),
        }
