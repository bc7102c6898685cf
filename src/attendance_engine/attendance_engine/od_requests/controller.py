from __future__ import annotations

from flask import Flask, g, request

from ..common.http import body_date, json_body, ok, role_required
from ..core.enums import ApproverRole, Decision, RequestStatus, Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.od_request_service

    @app.route("/api/od-requests", methods=["POST"], endpoint="file_od_request")
    @role_required(Role.STUDENT)
    def file_od_request():
        data = json_body()
        od = service.file_request(
            claimant_id=g.actor.user_id,
            class_id=data.get("class_id"),
            subject_id=data.get("subject_id"),
            teacher_id=data.get("teacher_id"),
            admin_id=data.get("admin_id"),
            od_date=body_date(data, "od_date"),
            reason=data.get("reason", ""),
        )
        return ok(od.to_dict(), 201)

    @app.route("/api/od-requests", methods=["GET"], endpoint="list_od_requests")
    @role_required(Role.STUDENT, Role.TEACHER, Role.ADMIN)
    def list_od_requests():
        actor = g.actor
        if actor.role == Role.STUDENT:
            items = service.list_for_claimant(actor.user_id)
        else:
            status = (request.args.get("status") or "").strip().lower() or None
            try:
                status = RequestStatus(status) if status else None
            except ValueError:
                raise ValidationError("status must be pending, approved or rejected")
            items = service.list_for_approver(
                role=ApproverRole(actor.role.value),
                approver_id=actor.user_id,
                status=status,
            )
        return ok([r.to_dict() for r in items])

    @app.route("/api/od-requests/<int:request_id>", methods=["GET"], endpoint="get_od_request")
    @role_required(Role.STUDENT, Role.TEACHER, Role.ADMIN)
    def get_od_request(request_id: int):
        od = service.get(request_id)
        actor = g.actor
        if actor.user_id not in (od.claimant_id, od.teacher_id, od.admin_id):
            raise AuthorizationError("You are not a party to this request")
        return ok(od.to_dict())

    def _decide(request_id: int, role: ApproverRole):
        data = json_body()
        raw = (data.get("decision") or "").strip().lower()
        try:
            decision = Decision(raw)
        except ValueError:
            raise ValidationError("decision must be 'approve' or 'reject'")
        outcome = service.record_approval(
            request_id=request_id,
            role=role,
            approver_id=g.actor.user_id,
            decision=decision,
            note=data.get("note", ""),
        )
        return ok(outcome.to_dict())

    @app.route("/api/od-requests/<int:request_id>/teacher-decision", methods=["POST"], endpoint="od_teacher_decision")
    @role_required(Role.TEACHER)
    def od_teacher_decision(request_id: int):
        return _decide(request_id, ApproverRole.TEACHER)

    @app.route("/api/od-requests/<int:request_id>/admin-decision", methods=["POST"], endpoint="od_admin_decision")
    @role_required(Role.ADMIN)
    def od_admin_decision(request_id: int):
        return _decide(request_id, ApproverRole.ADMIN)
