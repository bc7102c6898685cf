from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: at most one per (session, claimant)."""

    session_id: int
    claimant_id: int
    status: AttendanceStatus
    marked_at: datetime
    marked_by: str
    record_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "record_id": self.record_id,
            "session_id": self.session_id,
            "student_id": self.claimant_id,
            "status": self.status.value,
            "marked_at": self.marked_at.strftime("%Y-%m-%d %H:%M:%S"),
            "marked_by": self.marked_by,
        }
