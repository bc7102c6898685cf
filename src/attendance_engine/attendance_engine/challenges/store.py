from __future__ import annotations

import hmac
import threading
from datetime import datetime
from typing import Dict, Optional, Protocol

from ..core.constants import DEFAULT_OTP_MAX_ATTEMPTS
from ..core.enums import VerifyResult
from .model import IdentityChallenge, Verification


class ChallengeStore(Protocol):
    """Primary, process-scoped challenge store."""

    def put(self, challenge: IdentityChallenge) -> None:
        """Store ``challenge``, superseding any prior one for the same claimant key."""

        raise NotImplementedError

    def verify_and_consume(
        self,
        claimant_key: str,
        supplied_code: str,
        *,
        now: datetime,
        session_id: Optional[int] = None,
    ) -> Verification:
        """Check and consume in one indivisible step."""

        raise NotImplementedError

    def delete(self, claimant_key: str) -> bool:
        raise NotImplementedError

    def purge_expired(self, *, now: datetime) -> int:
        raise NotImplementedError


class InMemoryChallengeStore(ChallengeStore):
    """Thread-safe dict of challenges keyed by claimant.

    One lock guards every read-modify-write, so two requests redeeming the same code
    cannot both observe it unconsumed.
    """

    def __init__(self, *, max_attempts: int = DEFAULT_OTP_MAX_ATTEMPTS):
        self._lock = threading.Lock()
        self._items: Dict[str, IdentityChallenge] = {}
        self._max_attempts = int(max_attempts)

    def put(self, challenge: IdentityChallenge) -> None:
        with self._lock:
            self._items[challenge.claimant_key] = challenge

    def get(self, claimant_key: str) -> Optional[IdentityChallenge]:
        with self._lock:
            return self._items.get(claimant_key)

    def verify_and_consume(
        self,
        claimant_key: str,
        supplied_code: str,
        *,
        now: datetime,
        session_id: Optional[int] = None,
    ) -> Verification:
        supplied = str(supplied_code or "").strip()
        with self._lock:
            challenge = self._items.get(claimant_key)
            if challenge is None or challenge.consumed:
                return Verification(VerifyResult.NOT_FOUND)

            same_session = session_id is None or challenge.session_id is None or int(session_id) == challenge.session_id
            if not same_session or not hmac.compare_digest(challenge.code.encode("utf-8"), supplied.encode("utf-8")):
                failed = challenge.with_failed_attempt()
                if failed.attempts >= self._max_attempts:
                    del self._items[claimant_key]
                    return Verification(VerifyResult.MISMATCH, failed, discarded=True)
                self._items[claimant_key] = failed
                return Verification(VerifyResult.MISMATCH, failed)

            del self._items[claimant_key]
            if challenge.is_expired(now):
                return Verification(VerifyResult.EXPIRED, challenge)
            return Verification(VerifyResult.OK, challenge)

    def delete(self, claimant_key: str) -> bool:
        with self._lock:
            return self._items.pop(claimant_key, None) is not None

    def purge_expired(self, *, now: datetime) -> int:
        with self._lock:
            stale = [k for k, c in self._items.items() if c.is_expired(now)]
            for k in stale:
                del self._items[k]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
