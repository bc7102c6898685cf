from __future__ import annotations

import hashlib
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ..core.enums import VerifyResult


@dataclass(frozen=True)
class IdentityChallenge:
    """A one-time passcode bound to a claimant key (normalized email).

    ``code`` is always a string: numeric codes keep their leading zeros.
    """

    claimant_key: str
    code: str
    issued_at: datetime
    expires_at: datetime
    session_id: Optional[int] = None
    consumed: bool = False
    attempts: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def with_failed_attempt(self) -> "IdentityChallenge":
        return replace(self, attempts=self.attempts + 1)


@dataclass(frozen=True)
class Verification:
    """Outcome of a redemption attempt.

    ``discarded`` is set when a mismatch used up the last allowed attempt and the
    challenge was dropped; every copy of it must then stop accepting the code.
    """

    result: VerifyResult
    challenge: Optional[IdentityChallenge] = None
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return self.result is VerifyResult.OK


def hash_code(code: str) -> str:
    """Digest stored by the durable fallback instead of the plain code."""
    return hashlib.sha256(str(code).encode("utf-8")).hexdigest()
