from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from ..app_logger import get_logger
from ..common.datetime_utils import now_local
from ..common.validators import require_positive_id
from ..core.constants import (
    DEFAULT_SESSION_CODE_LENGTH,
    DEFAULT_SESSION_MAX_MINUTES,
    SESSION_CODE_MAX_ATTEMPTS,
)
from ..core.enums import SessionState
from ..core.exceptions import (
    ConflictError,
    DuplicateSessionCode,
    InvalidDuration,
    SessionNotActive,
    SessionNotFound,
    ValidationError,
)
from .codes import generate_session_code, normalize_session_code
from .model import Session
from .repository import SessionRepository

log = get_logger(__name__)


class SessionService:
    """Session lifecycle: open, look up by code, close, sweep.

    Expiry is evaluated against ``now`` on every read; the persisted ``state`` is only
    a record of transitions that have already been written.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        *,
        code_length: int = DEFAULT_SESSION_CODE_LENGTH,
        max_duration: timedelta = timedelta(minutes=DEFAULT_SESSION_MAX_MINUTES),
        code_generator: Callable[[int], str] = generate_session_code,
    ):
        self._sessions = sessions
        self._code_length = int(code_length)
        self._max_duration = max_duration
        self._generate_code = code_generator

    def open_session(
        self,
        *,
        owner_id: int,
        class_id: int,
        subject_id: int,
        duration: timedelta,
        now: datetime | None = None,
    ) -> Session:
        now = now or now_local()
        owner_id = require_positive_id(owner_id, "owner_id")
        class_id = require_positive_id(class_id, "class_id")
        subject_id = require_positive_id(subject_id, "subject_id")

        if duration is None or duration <= timedelta(0):
            raise InvalidDuration("Session duration must be positive")
        if duration > self._max_duration:
            raise InvalidDuration(
                f"Session duration must not exceed {int(self._max_duration.total_seconds() // 60)} minutes"
            )

        expires_at = now + duration
        for attempt in range(1, SESSION_CODE_MAX_ATTEMPTS + 1):
            code = self._generate_code(self._code_length)
            try:
                session = self._sessions.insert(
                    owner_id=owner_id,
                    class_id=class_id,
                    subject_id=subject_id,
                    code=code,
                    created_at=now,
                    expires_at=expires_at,
                )
            except DuplicateSessionCode:
                # The holder may only be lazily expired; free its code and retry.
                released = self._sessions.release_stale_code(code=code, now=now)
                log.debug("session code collision code=%s attempt=%d released=%s", code, attempt, released)
                continue

            log.info(
                "session opened id=%s owner=%s class=%s subject=%s expires_at=%s",
                session.session_id, owner_id, class_id, subject_id, expires_at,
            )
            return session

        raise ConflictError("Could not allocate a unique session code, please retry")

    def get(self, session_id: int, *, now: datetime | None = None) -> Session:
        now = now or now_local()
        session = self._sessions.get_by_id(int(session_id))
        if not session:
            raise SessionNotFound("Session does not exist")
        return session.as_of(now)

    def lookup_by_code(self, code: str, *, now: datetime | None = None) -> Session:
        now = now or now_local()
        normalized = normalize_session_code(code)
        if not normalized:
            raise ValidationError("Session code is required")

        session = self._sessions.find_latest_by_code(normalized)
        if not session:
            raise SessionNotFound("No session with this code")
        if not session.is_active(now):
            raise SessionNotActive("This session is no longer active, ask your teacher for a new code")
        return session

    def close(self, session_id: int, *, reason: SessionState, now: datetime | None = None) -> Session:
        now = now or now_local()
        if reason not in (SessionState.EXPIRED, SessionState.COMPLETED):
            raise ValidationError("Close reason must be expired or completed")

        session = self.get(session_id, now=now)
        if session.state.is_terminal:
            # Already terminal (persisted or lazily): persist a lazy expiry, otherwise no-op.
            if session.state is SessionState.EXPIRED:
                self._sessions.mark_terminal(session_id=session.session_id, state=SessionState.EXPIRED, closed_at=session.expires_at)
            return session

        if self._sessions.mark_terminal(session_id=session.session_id, state=reason, closed_at=now):
            log.info("session closed id=%s reason=%s", session.session_id, reason.value)
        # Re-read: a concurrent close may have won with another reason.
        return self.get(session.session_id, now=now)

    def sweep_expired(self, *, now: datetime | None = None) -> int:
        now = now or now_local()
        count = self._sessions.expire_due(now=now)
        if count:
            log.info("expired %d session(s) past their deadline", count)
        return count

    def find_recent_for_binding(
        self,
        *,
        owner_id: int,
        class_id: int,
        subject_id: int,
        since: datetime,
    ) -> Optional[Session]:
        return self._sessions.find_recent_for_binding(
            owner_id=int(owner_id),
            class_id=int(class_id),
            subject_id=int(subject_id),
            since=since,
        )

    def list_active_for_owner(self, owner_id: int, *, now: datetime | None = None) -> Sequence[Session]:
        now = now or now_local()
        return [s for s in self._sessions.list_active_for_owner(owner_id=int(owner_id), now=now) if s.is_active(now)]
