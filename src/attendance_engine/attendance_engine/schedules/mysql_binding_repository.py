from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, normalize_mysql_time
from .model import RecurringBinding
from .repository import BindingRepository


class MySQLBindingRepository(BindingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_auto_enabled_for_day(self, *, day_of_week: str, owner_id: Optional[int] = None) -> Sequence[RecurringBinding]:
        clauses = ["day_of_week=%s", "auto_session_enabled=1", "start_time IS NOT NULL"]
        params: list[object] = [day_of_week]
        if owner_id is not None:
            clauses.append("teacher_id=%s")
            params.append(int(owner_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT binding_id, teacher_id, class_id, subject_id, day_of_week,
                       start_time, end_time, auto_session_enabled
                FROM teacher_subjects
                WHERE {' AND '.join(clauses)}
                ORDER BY start_time ASC, binding_id ASC
                """,
                tuple(params),
            )
            out: list[RecurringBinding] = []
            for r in fetchall(cur):
                out.append(
                    RecurringBinding(
                        binding_id=int(r["binding_id"]),
                        owner_id=int(r["teacher_id"]),
                        class_id=int(r["class_id"]),
                        subject_id=int(r["subject_id"]),
                        day_of_week=r["day_of_week"],
                        start_time=normalize_mysql_time(r["start_time"]),
                        end_time=normalize_mysql_time(r.get("end_time")),
                        auto_enabled=bool(r["auto_session_enabled"]),
                    )
                )
            return out
