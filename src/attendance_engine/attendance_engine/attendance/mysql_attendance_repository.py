from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus, SessionState
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord
from .repository import AttendanceRepository


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        session_id=int(r["session_id"]),
        claimant_id=int(r["student_id"]),
        status=AttendanceStatus(r["status"]),
        marked_at=r["marked_at"],
        marked_by=r["marked_by"],
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, session_id: int, claimant_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT record_id, session_id, student_id, status, marked_at, marked_by
                FROM attendance_records
                WHERE session_id=%s AND student_id=%s
                """,
                (int(session_id), int(claimant_id)),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def upsert_while_active(
        self,
        *,
        session_id: int,
        claimant_id: int,
        status: AttendanceStatus,
        marked_at: datetime,
        marked_by: str,
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(session_id, student_id, status, marked_at, marked_by)
                SELECT s.session_id, %s, %s, %s, %s
                FROM attendance_sessions s
                WHERE s.session_id=%s AND s.status=%s AND s.expires_at>%s
                ON DUPLICATE KEY UPDATE
                    status=VALUES(status), marked_at=VALUES(marked_at), marked_by=VALUES(marked_by)
                """,
                (
                    int(claimant_id),
                    status.value,
                    marked_at,
                    marked_by,
                    int(session_id),
                    SessionState.ACTIVE.value,
                    marked_at,
                ),
            )
            # rowcount: 1 inserted, 2 updated, 0 unchanged row or session not active.
            if cur.rowcount <= 0:
                cur.execute(
                    """
                    SELECT 1 AS active FROM attendance_sessions
                    WHERE session_id=%s AND status=%s AND expires_at>%s
                    """,
                    (int(session_id), SessionState.ACTIVE.value, marked_at),
                )
                if not fetchone(cur):
                    return None

            cur.execute(
                """
                SELECT record_id, session_id, student_id, status, marked_at, marked_by
                FROM attendance_records
                WHERE session_id=%s AND student_id=%s
                """,
                (int(session_id), int(claimant_id)),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def upsert_many(
        self,
        *,
        session_ids: Sequence[int],
        claimant_id: int,
        status: AttendanceStatus,
        marked_at: datetime,
        marked_by: str,
    ) -> int:
        if not session_ids:
            return 0
        rows = [(int(sid), int(claimant_id), status.value, marked_at, marked_by) for sid in session_ids]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO attendance_records(session_id, student_id, status, marked_at, marked_by)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    status=VALUES(status), marked_at=VALUES(marked_at), marked_by=VALUES(marked_by)
                """,
                rows,
            )
        return len(rows)

    def list_for_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT record_id, session_id, student_id, status, marked_at, marked_by
                FROM attendance_records
                WHERE session_id=%s
                ORDER BY marked_at DESC
                """,
                (int(session_id),),
            )
            return [_to_record(r) for r in fetchall(cur)]
