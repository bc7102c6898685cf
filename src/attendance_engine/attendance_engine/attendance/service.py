from __future__ import annotations

from datetime import date, datetime
from typing import Sequence

from ..app_logger import get_logger
from ..challenges.service import ChallengeService
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, require_positive_id
from ..core.constants import OD_APPROVAL_MARKER, SELF_MARKED
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import ChallengeFailed, NotFoundError, SessionExpired, SessionNotFound
from ..sessions.repository import SessionRepository
from ..users.repository import UserRepository
from .model import AttendanceRecord
from .repository import AttendanceRepository

log = get_logger(__name__)


class AttendanceRecorder:
    """Writes attendance records; one per (session, claimant), always as an upsert."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        users: UserRepository,
        challenges: ChallengeService | None = None,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._users = users
        self._challenges = challenges

    def mark(
        self,
        *,
        session_id: int,
        claimant_id: int,
        status: AttendanceStatus,
        marked_by: str,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        now = now or now_local()
        session_id = require_positive_id(session_id, "session_id")
        claimant_id = require_positive_id(claimant_id, "student_id")
        marked_by = require_non_empty(marked_by, "marked_by")
        status = AttendanceStatus(status)

        # Re-validated here, never trusted from an earlier lookup.
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise SessionNotFound("Session does not exist")
        if not session.is_active(now):
            raise SessionExpired("Session has expired, attendance can no longer be marked")

        record = self._attendance.upsert_while_active(
            session_id=session_id,
            claimant_id=claimant_id,
            status=status,
            marked_at=now,
            marked_by=marked_by,
        )
        if record is None:
            # Expired or closed between the check above and the write.
            raise SessionExpired("Session has expired, attendance can no longer be marked")

        log.info("attendance marked session=%s student=%s status=%s by=%s", session_id, claimant_id, status.value, marked_by)
        return record

    def check_in(
        self,
        *,
        claimant_key: str,
        session_id: int,
        code: str,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        """Redeem the claimant's challenge for ``session_id`` and mark them present."""

        if self._challenges is None:
            raise RuntimeError("AttendanceRecorder was built without a ChallengeService")

        now = now or now_local()
        session_id = require_positive_id(session_id, "session_id")
        key = self._challenges.normalize_key(claimant_key)

        claimant = self._users.get_by_email(key)
        if not claimant or not claimant.is_active or claimant.role != Role.STUDENT:
            raise NotFoundError("No active student is registered with this email")

        verification = self._challenges.verify(key, code, session_id=session_id, now=now)
        if not verification.ok:
            raise ChallengeFailed(verification.result)

        return self.mark(
            session_id=session_id,
            claimant_id=claimant.user_id,
            status=AttendanceStatus.PRESENT,
            marked_by=SELF_MARKED,
            now=now,
        )

    def reconcile_on_duty(
        self,
        *,
        claimant_id: int,
        subject_id: int,
        on_date: date,
        now: datetime | None = None,
    ) -> int:
        """Tag every session of ``subject_id`` on ``on_date`` as on-duty for the claimant.

        Returns the number of sessions touched; zero is not an error.
        """

        now = now or now_local()
        sessions = self._sessions.list_for_subject_on(subject_id=int(subject_id), on_date=on_date)
        if not sessions:
            log.info("no sessions to reconcile student=%s subject=%s date=%s", claimant_id, subject_id, on_date)
            return 0

        count = self._attendance.upsert_many(
            session_ids=[s.session_id for s in sessions],
            claimant_id=int(claimant_id),
            status=AttendanceStatus.ON_DUTY,
            marked_at=now,
            marked_by=OD_APPROVAL_MARKER,
        )
        log.info("on-duty reconciled student=%s subject=%s date=%s sessions=%d", claimant_id, subject_id, on_date, count)
        return count

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        return self._attendance.list_for_session(int(session_id))

    def summarize(self, session_id: int) -> dict:
        records = self.list_for_session(session_id)
        counts = {s.value: 0 for s in AttendanceStatus}
        for r in records:
            counts[r.status.value] += 1
        return {"total": len(records), **counts}
