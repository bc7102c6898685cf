from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import IdentityChallenge, Verification


class DurableChallengeRepository(Protocol):
    """Degraded-mode safety net for challenges.

    Consulted only when the primary store misses (e.g. after a process restart); it is
    not a cache and is not synchronised with the primary store. It counts failed
    attempts on its own and gives up after the same limit as the primary store.
    """

    def save(self, challenge: IdentityChallenge) -> None:
        raise NotImplementedError

    def consume(
        self,
        claimant_key: str,
        supplied_code: str,
        *,
        now: datetime,
        session_id: Optional[int] = None,
    ) -> Verification:
        raise NotImplementedError

    def invalidate(self, claimant_key: str, *, now: datetime) -> int:
        """Mark every unused challenge for ``claimant_key`` as used."""

        raise NotImplementedError
