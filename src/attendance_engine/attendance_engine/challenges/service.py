from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ..app_logger import get_logger
from ..common.datetime_utils import now_local
from ..common.validators import normalize_claimant_key
from ..core.constants import DEFAULT_OTP_LENGTH, DEFAULT_OTP_TTL_MINUTES
from ..core.enums import Role, VerifyResult
from ..core.exceptions import AuthorizationError, NotFoundError
from ..notifications import messages
from ..notifications.dispatcher import NotificationDispatcher
from ..sessions.service import SessionService
from ..users.repository import UserRepository
from .model import IdentityChallenge, Verification
from .repository import DurableChallengeRepository
from .store import ChallengeStore

log = get_logger(__name__)


def generate_otp(length: int = DEFAULT_OTP_LENGTH) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(int(length)))


class ChallengeService:
    """Issues and redeems one-time passcodes that bind a claimant to a session."""

    def __init__(
        self,
        store: ChallengeStore,
        sessions: SessionService,
        users: UserRepository,
        dispatcher: NotificationDispatcher,
        *,
        durable: Optional[DurableChallengeRepository] = None,
        ttl: timedelta = timedelta(minutes=DEFAULT_OTP_TTL_MINUTES),
        code_length: int = DEFAULT_OTP_LENGTH,
        allowed_domains: Sequence[str] = (),
    ):
        self._store = store
        self._sessions = sessions
        self._users = users
        self._dispatcher = dispatcher
        self._durable = durable
        self._ttl = ttl
        self._code_length = int(code_length)
        self._allowed_domains = tuple(allowed_domains)

    def normalize_key(self, claimant: str) -> str:
        return normalize_claimant_key(claimant, allowed_domains=self._allowed_domains)

    def issue(
        self,
        claimant_key: str,
        *,
        session_id: Optional[int] = None,
        session_code: Optional[str] = None,
        now: datetime | None = None,
    ) -> IdentityChallenge:
        now = now or now_local()
        key = self.normalize_key(claimant_key)
        challenge = IdentityChallenge(
            claimant_key=key,
            code=generate_otp(self._code_length),
            issued_at=now,
            expires_at=now + self._ttl,
            session_id=int(session_id) if session_id is not None else None,
        )
        self._store.put(challenge)

        if self._durable is not None:
            try:
                self._durable.save(challenge)
            except Exception:
                log.warning("durable challenge store unavailable, issued in memory only for %s", key, exc_info=True)

        self._dispatcher.send(
            key,
            messages.otp_code(code=challenge.code, expires_at=challenge.expires_at, session_code=session_code),
        )
        log.info("challenge issued key=%s session=%s expires_at=%s", key, challenge.session_id, challenge.expires_at)
        return challenge

    def request_for_session(self, email: str, session_code: str, *, now: datetime | None = None) -> IdentityChallenge:
        """Claimant entry point: resolve the session by code, check enrolment, issue."""

        now = now or now_local()
        key = self.normalize_key(email)
        session = self._sessions.lookup_by_code(session_code, now=now)

        claimant = self._users.get_by_email(key)
        if not claimant or not claimant.is_active or claimant.role != Role.STUDENT:
            raise NotFoundError("No active student is registered with this email")
        if claimant.class_id is not None and claimant.class_id != session.class_id:
            raise AuthorizationError("You are not enrolled in the class of this session")

        return self.issue(key, session_id=session.session_id, session_code=session.code, now=now)

    def verify(
        self,
        claimant_key: str,
        supplied_code: str,
        *,
        session_id: Optional[int] = None,
        now: datetime | None = None,
    ) -> Verification:
        now = now or now_local()
        key = self.normalize_key(claimant_key)
        supplied = str(supplied_code if supplied_code is not None else "").strip()

        outcome = self._store.verify_and_consume(key, supplied, now=now, session_id=session_id)
        if outcome.ok or outcome.discarded:
            self._invalidate_durable(key, now=now)
        elif outcome.result is VerifyResult.NOT_FOUND and self._durable is not None:
            try:
                outcome = self._durable.consume(key, supplied, now=now, session_id=session_id)
            except Exception:
                log.warning("durable challenge lookup failed for %s", key, exc_info=True)
            else:
                if outcome.result is not VerifyResult.NOT_FOUND:
                    log.info("challenge for %s resolved from durable store: %s", key, outcome.result.value)

        log.info("challenge verify key=%s result=%s", key, outcome.result.value)
        return outcome

    def _invalidate_durable(self, key: str, *, now: datetime) -> None:
        if self._durable is None:
            return
        try:
            self._durable.invalidate(key, now=now)
        except Exception:
            log.warning("could not invalidate durable challenge copy for %s", key, exc_info=True)

    def purge_expired(self, *, now: datetime | None = None) -> int:
        return self._store.purge_expired(now=now or now_local())
