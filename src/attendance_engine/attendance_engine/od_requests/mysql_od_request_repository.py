from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import ApproverRole, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ODRequest
from .repository import ODRequestRepository

_COLUMNS = """
    request_id, student_id, class_id, subject_id, teacher_id, admin_id, od_date, reason,
    teacher_approved, admin_approved, rejected_by, created_at,
    teacher_decided_at, admin_decided_at, teacher_note, admin_note, reconciled_at, version
"""


def _to_request(r: dict) -> ODRequest:
    od_date = r["od_date"]
    if isinstance(od_date, datetime):
        od_date = od_date.date()
    return ODRequest(
        request_id=int(r["request_id"]),
        claimant_id=int(r["student_id"]),
        class_id=int(r["class_id"]),
        subject_id=int(r["subject_id"]),
        teacher_id=int(r["teacher_id"]),
        admin_id=int(r["admin_id"]),
        od_date=od_date,
        reason=r["reason"],
        created_at=r["created_at"],
        teacher_approved=bool(r["teacher_approved"]),
        admin_approved=bool(r["admin_approved"]),
        rejected_by=ApproverRole(r["rejected_by"]) if r.get("rejected_by") else None,
        teacher_decided_at=r.get("teacher_decided_at"),
        admin_decided_at=r.get("admin_decided_at"),
        teacher_note=r.get("teacher_note"),
        admin_note=r.get("admin_note"),
        reconciled_at=r.get("reconciled_at"),
        version=int(r.get("version") or 0),
    )


class MySQLODRequestRepository(ODRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        claimant_id: int,
        class_id: int,
        subject_id: int,
        teacher_id: int,
        admin_id: int,
        od_date: date,
        reason: str,
        created_at: datetime,
    ) -> ODRequest:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO od_requests(
                    student_id, class_id, subject_id, teacher_id, admin_id,
                    od_date, reason, status, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(claimant_id),
                    int(class_id),
                    int(subject_id),
                    int(teacher_id),
                    int(admin_id),
                    od_date,
                    reason,
                    RequestStatus.PENDING.value,
                    created_at,
                ),
            )
            request_id = int(cur.lastrowid)

        return ODRequest(
            request_id=request_id,
            claimant_id=int(claimant_id),
            class_id=int(class_id),
            subject_id=int(subject_id),
            teacher_id=int(teacher_id),
            admin_id=int(admin_id),
            od_date=od_date,
            reason=reason,
            created_at=created_at,
        )

    def get(self, request_id: int) -> Optional[ODRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM od_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def find_pending_for_claimant_on(self, *, claimant_id: int, od_date: date) -> Optional[ODRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM od_requests
                WHERE student_id=%s AND od_date=%s AND status=%s
                ORDER BY request_id DESC
                LIMIT 1
                """,
                (int(claimant_id), od_date, RequestStatus.PENDING.value),
            )
            r = fetchone(cur)
            return _to_request(r) if r else None

    def save_decision(self, request: ODRequest, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE od_requests
                SET teacher_approved=%s,
                    admin_approved=%s,
                    rejected_by=%s,
                    status=%s,
                    teacher_decided_at=%s,
                    admin_decided_at=%s,
                    teacher_note=%s,
                    admin_note=%s,
                    version=version+1
                WHERE request_id=%s AND version=%s
                """,
                (
                    1 if request.teacher_approved else 0,
                    1 if request.admin_approved else 0,
                    request.rejected_by.value if request.rejected_by else None,
                    request.status.value,
                    request.teacher_decided_at,
                    request.admin_decided_at,
                    request.teacher_note,
                    request.admin_note,
                    int(request.request_id),
                    int(expected_version),
                ),
            )
            return cur.rowcount == 1

    def mark_reconciled(self, *, request_id: int, reconciled_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE od_requests
                SET reconciled_at=%s
                WHERE request_id=%s AND status=%s AND reconciled_at IS NULL
                """,
                (reconciled_at, int(request_id), RequestStatus.APPROVED.value),
            )
            return cur.rowcount == 1

    def list_unreconciled_approved(self, *, limit: int = 50) -> Sequence[ODRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM od_requests
                WHERE status=%s AND reconciled_at IS NULL
                ORDER BY request_id ASC
                LIMIT %s
                """,
                (RequestStatus.APPROVED.value, int(limit)),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def list_for_approver(
        self,
        *,
        role: ApproverRole,
        approver_id: int,
        status: Optional[RequestStatus] = None,
        limit: int = 200,
    ) -> Sequence[ODRequest]:
        column = "teacher_id" if role is ApproverRole.TEACHER else "admin_id"
        where = [f"{column}=%s"]
        params: list = [int(approver_id)]
        if status is not None:
            where.append("status=%s")
            params.append(status.value)
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM od_requests
                WHERE {' AND '.join(where)}
                ORDER BY created_at DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def list_for_claimant(self, *, claimant_id: int, limit: int = 200) -> Sequence[ODRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM od_requests
                WHERE student_id=%s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (int(claimant_id), int(limit)),
            )
            return [_to_request(r) for r in fetchall(cur)]
