from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..core.enums import SessionState
from ..core.exceptions import DuplicateSessionCode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import Session
from .repository import SessionRepository

_COLUMNS = """
    session_id, teacher_id, class_id, subject_id, session_code,
    status, created_at, expires_at, closed_at
"""


def _to_session(r: dict) -> Session:
    return Session(
        session_id=int(r["session_id"]),
        owner_id=int(r["teacher_id"]),
        class_id=int(r["class_id"]),
        subject_id=int(r["subject_id"]),
        code=r["session_code"],
        created_at=r["created_at"],
        expires_at=r["expires_at"],
        state=SessionState(r["status"]),
        closed_at=r.get("closed_at"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_sessions(
                        teacher_id, class_id, subject_id, session_code, active_code,
                        status, created_at, expires_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(owner_id),
                        int(class_id),
                        int(subject_id),
                        code,
                        code,
                        SessionState.ACTIVE.value,
                        created_at,
                        expires_at,
                    ),
                )
                session_id = int(cur.lastrowid)
        except Exception as e:
            if is_duplicate_key(e):
                raise DuplicateSessionCode(code) from e
            raise

        return Session(
            session_id=session_id,
            owner_id=int(owner_id),
            class_id=int(class_id),
            subject_id=int(subject_id),
            code=code,
            created_at=created_at,
            expires_at=expires_at,
        )

    def release_stale_code(self, *, code: str, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET status=%s, active_code=NULL, closed_at=expires_at
                WHERE active_code=%s AND expires_at<=%s
                """,
                (SessionState.EXPIRED.value, code, now),
            )
            return cur.rowcount > 0

    def get_by_id(self, session_id: int) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_sessions WHERE session_id=%s",
                (int(session_id),),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def find_latest_by_code(self, code: str) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_sessions
                WHERE session_code=%s
                ORDER BY created_at DESC, session_id DESC
                LIMIT 1
                """,
                (code,),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def mark_terminal(self, *, session_id: int, state: SessionState, closed_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET status=%s, active_code=NULL, closed_at=%s
                WHERE session_id=%s AND status=%s
                """,
                (state.value, closed_at, int(session_id), SessionState.ACTIVE.value),
            )
            return cur.rowcount > 0

    def expire_due(self, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET status=%s, active_code=NULL, closed_at=expires_at
                WHERE status=%s AND expires_at<=%s
                """,
                (SessionState.EXPIRED.value, SessionState.ACTIVE.value, now),
            )
            return int(cur.rowcount or 0)

    def find_recent_for_binding(
        self,
        *,
        owner_id: int,
        class_id: int,
        subject_id: int,
        since: datetime,
    ) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_sessions
                WHERE teacher_id=%s AND class_id=%s AND subject_id=%s AND created_at>=%s
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (int(owner_id), int(class_id), int(subject_id), since),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def list_for_subject_on(self, *, subject_id: int, on_date: date) -> Sequence[Session]:
        start = datetime.combine(on_date, datetime.min.time())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_sessions
                WHERE subject_id=%s AND created_at>=%s AND created_at<%s
                ORDER BY created_at ASC
                """,
                (int(subject_id), start, start + timedelta(days=1)),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_active_for_owner(self, *, owner_id: int, now: datetime) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_sessions
                WHERE teacher_id=%s AND status=%s AND expires_at>%s
                ORDER BY created_at DESC
                """,
                (int(owner_id), SessionState.ACTIVE.value, now),
            )
            return [_to_session(r) for r in fetchall(cur)]
