from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

from ..core.enums import ApproverRole, Decision, RequestStatus
from . import workflow


@dataclass(frozen=True)
class ODRequest:
    """An on-duty request decided independently by a teacher and an admin.

    ``status`` is derived from the flags; it is stored only for querying.
    """

    request_id: int
    claimant_id: int
    class_id: int
    subject_id: int
    teacher_id: int
    admin_id: int
    od_date: date
    reason: str
    created_at: datetime
    teacher_approved: bool = False
    admin_approved: bool = False
    rejected_by: Optional[ApproverRole] = None
    teacher_decided_at: Optional[datetime] = None
    admin_decided_at: Optional[datetime] = None
    teacher_note: Optional[str] = None
    admin_note: Optional[str] = None
    reconciled_at: Optional[datetime] = None
    version: int = 0

    @property
    def state(self) -> workflow.ApprovalState:
        return workflow.derive_state(
            teacher_approved=self.teacher_approved,
            admin_approved=self.admin_approved,
            rejected_by=self.rejected_by,
        )

    @property
    def status(self) -> RequestStatus:
        return workflow.status_of(self.state)

    @property
    def is_terminal(self) -> bool:
        return workflow.is_terminal(self.state)

    def designated_approver(self, role: ApproverRole) -> int:
        return self.teacher_id if role is ApproverRole.TEACHER else self.admin_id

    def apply(self, role: ApproverRole, decision: Decision, *, note: Optional[str], now: datetime) -> "ODRequest":
        """Return the request after ``role`` decides; unchanged when terminal."""

        current = self.state
        new_state = workflow.transition(current, role, decision)
        if new_state == current:
            return self

        rejected_by = new_state.by if isinstance(new_state, workflow.Rejected) else None
        approved = decision is Decision.APPROVE
        if role is ApproverRole.TEACHER:
            return replace(
                self,
                teacher_approved=approved,
                teacher_decided_at=now,
                teacher_note=note,
                rejected_by=rejected_by,
            )
        return replace(
            self,
            admin_approved=approved,
            admin_decided_at=now,
            admin_note=note,
            rejected_by=rejected_by,
        )

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "student_id": self.claimant_id,
            "class_id": self.class_id,
            "subject_id": self.subject_id,
            "teacher_id": self.teacher_id,
            "admin_id": self.admin_id,
            "od_date": self.od_date.strftime("%Y-%m-%d"),
            "reason": self.reason,
            "teacher_approved": self.teacher_approved,
            "admin_approved": self.admin_approved,
            "rejected_by": self.rejected_by.value if self.rejected_by else None,
            "status": self.status.value,
            "state": workflow.describe(self.state),
            "created_at": self.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            "reconciled": self.reconciled_at is not None,
        }
