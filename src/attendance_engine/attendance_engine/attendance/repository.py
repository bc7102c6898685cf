from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get(self, *, session_id: int, claimant_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def upsert_while_active(
        self,
        *,
        session_id: int,
        claimant_id: int,
        status: AttendanceStatus,
        marked_at: datetime,
        marked_by: str,
    ) -> Optional[AttendanceRecord]:
        """Insert or update the (session, claimant) record.

        The write only happens if the session is still active at ``marked_at``
        (checked in the same statement). Returns None when it was not.
        """

        raise NotImplementedError

    def upsert_many(
        self,
        *,
        session_ids: Sequence[int],
        claimant_id: int,
        status: AttendanceStatus,
        marked_at: datetime,
        marked_by: str,
    ) -> int:
        """Upsert one record per session in a single transaction; all or nothing."""

        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
