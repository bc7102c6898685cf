from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional, Sequence

from ..app_logger import get_logger
from ..attendance.service import AttendanceRecorder
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, require_positive_id
from ..core.constants import APPROVAL_MAX_ATTEMPTS, RECONCILE_BATCH_LIMIT
from ..core.enums import ApproverRole, Decision, RequestStatus, Role
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, RequestNotFound, ValidationError
from ..notifications import messages
from ..notifications.dispatcher import NotificationDispatcher
from ..users.repository import UserRepository
from . import workflow
from .model import ODRequest
from .repository import ODRequestRepository

log = get_logger(__name__)


@dataclass(frozen=True)
class ApprovalOutcome:
    """What a ``record_approval`` call did.

    ``changed`` is False when the request was already terminal (or the approver repeated
    an approval), in which case ``request`` carries the existing state.
    ``reconciled_sessions`` is set only on the call that moved the request to approved;
    None there means reconciliation failed and is left for ``retry_reconciliation``.
    """

    request: ODRequest
    changed: bool
    reconciled_sessions: Optional[int] = None

    @property
    def status(self) -> RequestStatus:
        return self.request.status

    def to_dict(self) -> dict:
        return {
            "request": self.request.to_dict(),
            "status": self.status.value,
            "changed": self.changed,
            "reconciled_sessions": self.reconciled_sessions,
        }


class ODRequestService:
    def __init__(
        self,
        requests: ODRequestRepository,
        recorder: AttendanceRecorder,
        users: UserRepository,
        dispatcher: NotificationDispatcher,
        *,
        max_attempts: int = APPROVAL_MAX_ATTEMPTS,
    ):
        self._requests = requests
        self._recorder = recorder
        self._users = users
        self._dispatcher = dispatcher
        self._max_attempts = int(max_attempts)

    def file_request(
        self,
        *,
        claimant_id: int,
        class_id: int,
        subject_id: int,
        teacher_id: int,
        admin_id: int,
        od_date: date,
        reason: str,
        now: datetime | None = None,
    ) -> ODRequest:
        now = now or now_local()
        claimant_id = require_positive_id(claimant_id, "student_id")
        class_id = require_positive_id(class_id, "class_id")
        subject_id = require_positive_id(subject_id, "subject_id")
        teacher_id = require_positive_id(teacher_id, "teacher_id")
        admin_id = require_positive_id(admin_id, "admin_id")
        reason = require_non_empty(reason, "reason")
        if not isinstance(od_date, date):
            raise ValidationError("od_date is required")

        claimant = self._users.get_by_id(claimant_id)
        if not claimant or not claimant.is_active or claimant.role != Role.STUDENT:
            raise NotFoundError("Student not found")
        teacher = self._users.get_by_id(teacher_id)
        if not teacher or teacher.role != Role.TEACHER:
            raise ValidationError("teacher_id does not refer to a teacher")
        admin = self._users.get_by_id(admin_id)
        if not admin or admin.role != Role.ADMIN:
            raise ValidationError("admin_id does not refer to an admin")

        if self._requests.find_pending_for_claimant_on(claimant_id=claimant_id, od_date=od_date):
            raise ConflictError("A pending on-duty request already exists for this date")

        request = self._requests.create(
            claimant_id=claimant_id,
            class_id=class_id,
            subject_id=subject_id,
            teacher_id=teacher_id,
            admin_id=admin_id,
            od_date=od_date,
            reason=reason,
            created_at=now,
        )
        log.info("od request filed id=%s student=%s date=%s", request.request_id, claimant_id, od_date)

        for approver, role in ((teacher, ApproverRole.TEACHER), (admin, ApproverRole.ADMIN)):
            self._dispatcher.send(
                approver.email,
                messages.od_request_filed(
                    request_id=request.request_id,
                    claimant_name=claimant.name,
                    od_date=od_date,
                    reason=reason,
                    recipient_role=role.value,
                ),
            )
        return request

    def get(self, request_id: int) -> ODRequest:
        request = self._requests.get(require_positive_id(request_id, "request_id"))
        if not request:
            raise RequestNotFound("On-duty request not found")
        return request

    def record_approval(
        self,
        *,
        request_id: int,
        role: ApproverRole,
        approver_id: int,
        decision: Decision,
        note: str = "",
        now: datetime | None = None,
    ) -> ApprovalOutcome:
        now = now or now_local()
        role = ApproverRole(role)
        decision = Decision(decision)
        approver_id = require_positive_id(approver_id, "approver_id")
        note = (note or "").strip() or None

        for attempt in range(1, self._max_attempts + 1):
            current = self.get(request_id)
            if current.designated_approver(role) != approver_id:
                raise AuthorizationError(f"User {approver_id} is not the designated {role.value} approver")

            if current.is_terminal:
                log.info("od request %s already %s; %s %s ignored", current.request_id, current.status.value, role.value, decision.value)
                return ApprovalOutcome(request=current, changed=False)

            updated = current.apply(role, decision, note=note, now=now)
            if updated is current:
                return ApprovalOutcome(request=current, changed=False)

            if self._requests.save_decision(updated, expected_version=current.version):
                updated = replace(updated, version=current.version + 1)
                break
            log.info("od request %s changed concurrently, retrying (attempt %d)", current.request_id, attempt)
        else:
            raise ConflictError("On-duty request is being updated concurrently, try again")

        log.info(
            "od request %s %s by %s -> %s",
            updated.request_id,
            decision.value,
            role.value,
            workflow.describe(updated.state),
        )

        reconciled = None
        if updated.status == RequestStatus.APPROVED:
            reconciled, updated = self._reconcile(updated, now=now)

        if updated.is_terminal:
            self._notify_claimant(updated)
        return ApprovalOutcome(request=updated, changed=True, reconciled_sessions=reconciled)

    def _reconcile(self, request: ODRequest, *, now: datetime) -> tuple[Optional[int], ODRequest]:
        try:
            count = self._recorder.reconcile_on_duty(
                claimant_id=request.claimant_id,
                subject_id=request.subject_id,
                on_date=request.od_date,
                now=now,
            )
        except Exception:
            log.exception("on-duty reconciliation failed for request %s; left for retry", request.request_id)
            return None, request

        self._requests.mark_reconciled(request_id=request.request_id, reconciled_at=now)
        return count, replace(request, reconciled_at=now)

    def retry_reconciliation(self, *, now: datetime | None = None, limit: int = RECONCILE_BATCH_LIMIT) -> int:
        """Re-run reconciliation for approved requests whose batch never completed."""

        now = now or now_local()
        done = 0
        for request in self._requests.list_unreconciled_approved(limit=limit):
            count, _ = self._reconcile(request, now=now)
            if count is not None:
                done += 1
        if done:
            log.info("retried on-duty reconciliation for %d request(s)", done)
        return done

    def _notify_claimant(self, request: ODRequest) -> None:
        claimant = self._users.get_by_id(request.claimant_id)
        if not claimant:
            log.warning("od request %s: claimant %s not found, no notification", request.request_id, request.claimant_id)
            return
        note = request.admin_note if request.rejected_by is ApproverRole.ADMIN else request.teacher_note
        self._dispatcher.send(
            claimant.email,
            messages.od_request_decided(
                request_id=request.request_id,
                od_date=request.od_date,
                status=request.status.value,
                rejected_by=request.rejected_by.value if request.rejected_by else None,
                note=note,
            ),
        )

    def list_for_approver(
        self,
        *,
        role: ApproverRole,
        approver_id: int,
        status: Optional[RequestStatus] = None,
    ) -> Sequence[ODRequest]:
        return self._requests.list_for_approver(
            role=ApproverRole(role),
            approver_id=require_positive_id(approver_id, "approver_id"),
            status=RequestStatus(status) if status else None,
        )

    def list_for_claimant(self, claimant_id: int) -> Sequence[ODRequest]:
        return self._requests.list_for_claimant(claimant_id=require_positive_id(claimant_id, "student_id"))
