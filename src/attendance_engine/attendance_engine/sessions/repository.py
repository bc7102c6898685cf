from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SessionState
from .model import Session


class SessionRepository(Protocol):
    def insert(
        self,
        *,
        owner_id: int,
        class_id: int,
        subject_id: int,
        code: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> Session:
        """Persist a new active session.

        Raises DuplicateSessionCode when another active session already holds ``code``.
        """

        raise NotImplementedError

    def release_stale_code(self, *, code: str, now: datetime) -> bool:
        """Expire the session holding ``code`` if its deadline already passed.

        Returns True when the code was freed.
        """

        raise NotImplementedError

    def get_by_id(self, session_id: int) -> Optional[Session]:
        raise NotImplementedError

    def find_latest_by_code(self, code: str) -> Optional[Session]:
        raise NotImplementedError

    def mark_terminal(self, *, session_id: int, state: SessionState, closed_at: datetime) -> bool:
        """Active -> terminal transition. Returns False if the session was already terminal."""

        raise NotImplementedError

    def expire_due(self, *, now: datetime) -> int:
        raise NotImplementedError

    def find_recent_for_binding(
        self,
        *,
        owner_id: int,
        class_id: int,
        subject_id: int,
        since: datetime,
    ) -> Optional[Session]:
        raise NotImplementedError

    def list_for_subject_on(self, *, subject_id: int, on_date: date) -> Sequence[Session]:
        raise NotImplementedError

    def list_active_for_owner(self, *, owner_id: int, now: datetime) -> Sequence[Session]:
        raise NotImplementedError
