from __future__ import annotations

import threading
from datetime import date

import pytest

from src.attendance_engine.attendance_engine.core.enums import ApproverRole, AttendanceStatus, Decision, RequestStatus
from src.attendance_engine.attendance_engine.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RequestNotFound,
    ValidationError,
)
from tests.fakes import T0, RecordingNotifier, build_test_container, drain, minutes

OD_DATE = T0.date()


def _setup(notifier=None):
    c = build_test_container(notifier=notifier)
    s1 = c.session_service.open_session(owner_id=1, class_id=7, subject_id=3, duration=minutes(5), now=T0)
    s2 = c.session_service.open_session(owner_id=1, class_id=7, subject_id=3, duration=minutes(5), now=T0 + minutes(120))
    c.attendance_recorder.mark(session_id=s1.session_id, claimant_id=10, status="absent", marked_by="teacher:1", now=T0)
    c.attendance_recorder.mark(session_id=s2.session_id, claimant_id=10, status="present", marked_by="self", now=T0 + minutes(121))
    return c, (s1, s2)


def _file(c, **overrides):
    kwargs = dict(
        claimant_id=10,
        class_id=7,
        subject_id=3,
        teacher_id=1,
        admin_id=2,
        od_date=OD_DATE,
        reason="Inter-college robotics contest",
        now=T0 + minutes(300),
    )
    kwargs.update(overrides)
    return c.od_request_service.file_request(**kwargs)


def _decide(c, request_id, role, approver_id, decision, now=T0 + minutes(400)):
    return c.od_request_service.record_approval(
        request_id=request_id, role=role, approver_id=approver_id, decision=decision, now=now
    )


def test_filing_notifies_both_approvers():
    notifier = RecordingNotifier()
    c, _ = _setup(notifier)
    od = _file(c)
    drain(c)

    assert od.status is RequestStatus.PENDING
    assert notifier.kinds_for("teacher@school.edu") == ["od_request_filed"]
    assert notifier.kinds_for("admin@school.edu") == ["od_request_filed"]


def test_second_pending_request_for_same_date_is_rejected():
    c, _ = _setup()
    _file(c)
    with pytest.raises(ConflictError):
        _file(c, reason="again")


def test_filing_validates_parties():
    c, _ = _setup()
    with pytest.raises(ValidationError):
        _file(c, reason="  ")
    with pytest.raises(ValidationError):
        _file(c, teacher_id=2)
    with pytest.raises(ValidationError):
        _file(c, admin_id=1)
    with pytest.raises(NotFoundError):
        _file(c, claimant_id=999)


def test_both_approvals_reconcile_on_duty_for_every_session_that_day():
    notifier = RecordingNotifier()
    c, sessions = _setup(notifier)
    od = _file(c)

    first = _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.APPROVE)
    assert first.changed and first.status is RequestStatus.PENDING
    assert first.reconciled_sessions is None

    second = _decide(c, od.request_id, ApproverRole.ADMIN, 2, Decision.APPROVE)
    assert second.status is RequestStatus.APPROVED
    assert second.reconciled_sessions == 2
    assert second.request.reconciled_at is not None

    for s in sessions:
        (record,) = c.attendance_recorder.list_for_session(s.session_id)
        assert record.status is AttendanceStatus.ON_DUTY

    drain(c)
    decided = notifier.last_for("sam@school.edu")
    assert decided.kind == "od_request_decided"
    assert "approved" in decided.subject


def test_admin_first_then_teacher_also_approves():
    c, _ = _setup()
    od = _file(c)
    _decide(c, od.request_id, ApproverRole.ADMIN, 2, Decision.APPROVE)
    outcome = _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.APPROVE)
    assert outcome.status is RequestStatus.APPROVED


def test_rejection_is_terminal_and_later_approval_is_a_no_op():
    c, sessions = _setup()
    od = _file(c)

    rejected = _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.REJECT)
    assert rejected.status is RequestStatus.REJECTED
    assert rejected.request.rejected_by is ApproverRole.TEACHER

    later = _decide(c, od.request_id, ApproverRole.ADMIN, 2, Decision.APPROVE)
    assert later.changed is False
    assert later.status is RequestStatus.REJECTED
    stored = c.od_request_service.get(od.request_id)
    assert stored.admin_approved is False
    assert stored.version == rejected.request.version

    (record,) = c.attendance_recorder.list_for_session(sessions[0].session_id)
    assert record.status is AttendanceStatus.ABSENT


def test_approved_request_ignores_further_decisions():
    c, _ = _setup()
    od = _file(c)
    _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.APPROVE)
    _decide(c, od.request_id, ApproverRole.ADMIN, 2, Decision.APPROVE)

    outcome = _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.REJECT)
    assert outcome.changed is False
    assert outcome.status is RequestStatus.APPROVED


def test_only_designated_approver_may_decide():
    c, _ = _setup()
    od = _file(c)
    with pytest.raises(AuthorizationError):
        _decide(c, od.request_id, ApproverRole.TEACHER, 2, Decision.APPROVE)
    with pytest.raises(AuthorizationError):
        _decide(c, od.request_id, ApproverRole.ADMIN, 1, Decision.REJECT)
    assert c.od_request_service.get(od.request_id).status is RequestStatus.PENDING


def test_unknown_request():
    c, _ = _setup()
    with pytest.raises(RequestNotFound):
        _decide(c, 404, ApproverRole.TEACHER, 1, Decision.APPROVE)


def test_concurrent_write_is_retried_against_fresh_state():
    c, _ = _setup()
    od = _file(c)
    c.od_requests_repo.conflicts_to_inject = 2

    outcome = _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.APPROVE)
    assert outcome.changed
    assert c.od_request_service.get(od.request_id).teacher_approved is True


def test_persistent_contention_surfaces_conflict():
    c, _ = _setup()
    od = _file(c)
    c.od_requests_repo.conflicts_to_inject = 100
    with pytest.raises(ConflictError):
        _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.APPROVE)


def test_simultaneous_final_approvals_reconcile_once():
    c, _ = _setup()
    od = _file(c)
    _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.APPROVE)

    barrier = threading.Barrier(4)
    outcomes = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        o = _decide(c, od.request_id, ApproverRole.ADMIN, 2, Decision.APPROVE)
        with lock:
            outcomes.append(o)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(1 for o in outcomes if o.changed) == 1
    assert all(o.status is RequestStatus.APPROVED for o in outcomes)


def test_failed_notification_does_not_roll_back_approval():
    notifier = RecordingNotifier(raise_for=("sam@school.edu",))
    c, _ = _setup(notifier)
    od = _file(c)
    _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.APPROVE)
    outcome = _decide(c, od.request_id, ApproverRole.ADMIN, 2, Decision.APPROVE)
    drain(c)

    assert outcome.status is RequestStatus.APPROVED
    assert c.od_request_service.get(od.request_id).status is RequestStatus.APPROVED


def test_failed_reconciliation_is_left_for_retry():
    c, sessions = _setup()
    od = _file(c)
    c.attendance_repo.fail_batches = True

    _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.APPROVE)
    outcome = _decide(c, od.request_id, ApproverRole.ADMIN, 2, Decision.APPROVE)
    assert outcome.status is RequestStatus.APPROVED
    assert outcome.reconciled_sessions is None
    assert c.od_request_service.get(od.request_id).reconciled_at is None

    c.attendance_repo.fail_batches = False
    assert c.od_request_service.retry_reconciliation(now=T0 + minutes(500)) == 1
    assert c.od_request_service.get(od.request_id).reconciled_at is not None
    for s in sessions:
        (record,) = c.attendance_recorder.list_for_session(s.session_id)
        assert record.status is AttendanceStatus.ON_DUTY
    assert c.od_request_service.retry_reconciliation(now=T0 + minutes(501)) == 0


def test_listing_for_parties():
    c, _ = _setup()
    od = _file(c)
    _file(c, od_date=date(2026, 3, 3))

    assert len(c.od_request_service.list_for_claimant(10)) == 2
    assert len(c.od_request_service.list_for_approver(role=ApproverRole.ADMIN, approver_id=2, status="pending")) == 2
    _decide(c, od.request_id, ApproverRole.TEACHER, 1, Decision.REJECT)
    assert len(c.od_request_service.list_for_approver(role=ApproverRole.TEACHER, approver_id=1, status="rejected")) == 1
