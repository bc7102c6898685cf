from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles used for authorization checks."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class SessionState(str, Enum):
    """Lifecycle state of an attendance session."""

    ACTIVE = "active"
    EXPIRED = "expired"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionState.ACTIVE


class AttendanceStatus(str, Enum):
    """Attendance status stored per (session, claimant)."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    ON_DUTY = "on_duty"


class RequestStatus(str, Enum):
    """Status of an on-duty request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApproverRole(str, Enum):
    """The two designated approvers of an on-duty request."""

    TEACHER = "teacher"
    ADMIN = "admin"

    @property
    def other(self) -> "ApproverRole":
        return ApproverRole.ADMIN if self is ApproverRole.TEACHER else ApproverRole.TEACHER


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class VerifyResult(str, Enum):
    """Outcome of redeeming a one-time passcode."""

    OK = "ok"
    EXPIRED = "expired"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"


class DeliveryStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
