from __future__ import annotations

import io
import math
from datetime import timedelta

import qrcode
from flask import Flask, current_app, g, send_file

from ..common.datetime_utils import now_local
from ..common.http import json_body, ok, role_required
from ..core.enums import AttendanceStatus, Role, SessionState
from ..core.exceptions import AuthorizationError, InvalidDuration, ValidationError
from ..container import Container
from .codes import join_url


def register(app: Flask, container: Container) -> None:
    sessions = container.session_service
    recorder = container.attendance_recorder

    def _owned_session(session_id: int, now):
        session = sessions.get(session_id, now=now)
        actor = g.actor
        if actor.role == Role.TEACHER and session.owner_id != actor.user_id:
            raise AuthorizationError("You do not own this session")
        return session

    @app.route("/api/sessions", methods=["POST"], endpoint="open_session")
    @role_required(Role.TEACHER, Role.ADMIN)
    def open_session():
        data = json_body()
        raw_minutes = data.get("duration_minutes", current_app.config.get("SESSION_DEFAULT_MINUTES", 5))
        try:
            minutes = float(raw_minutes)
            if not math.isfinite(minutes):
                raise ValueError(raw_minutes)
            duration = timedelta(minutes=minutes)
        except (TypeError, ValueError, OverflowError):
            raise InvalidDuration("duration_minutes must be a finite number")

        now = now_local()
        session = sessions.open_session(
            owner_id=g.actor.user_id,
            class_id=data.get("class_id"),
            subject_id=data.get("subject_id"),
            duration=duration,
            now=now,
        )
        payload = session.to_dict(now)
        payload["join_url"] = join_url(current_app.config.get("APP_URL", ""), session.code)
        return ok(payload, 201)

    @app.route("/api/sessions/code/<code>", methods=["GET"], endpoint="lookup_session_by_code")
    def lookup_session_by_code(code: str):
        now = now_local()
        session = sessions.lookup_by_code(code, now=now)
        return ok(session.to_dict(now))

    @app.route("/api/sessions/<int:session_id>", methods=["GET"], endpoint="session_detail")
    @role_required(Role.TEACHER, Role.ADMIN)
    def session_detail(session_id: int):
        now = now_local()
        session = _owned_session(session_id, now)
        payload = session.to_dict(now)
        payload["summary"] = recorder.summarize(session.session_id)
        payload["records"] = [r.to_dict() for r in recorder.list_for_session(session.session_id)]
        return ok(payload)

    @app.route("/api/sessions/<int:session_id>/close", methods=["POST"], endpoint="close_session")
    @role_required(Role.TEACHER, Role.ADMIN)
    def close_session(session_id: int):
        now = now_local()
        _owned_session(session_id, now)
        raw = (json_body().get("reason") or SessionState.COMPLETED.value).strip().lower()
        try:
            reason = SessionState(raw)
        except ValueError:
            raise ValidationError("reason must be 'completed' or 'expired'")
        session = sessions.close(session_id, reason=reason, now=now)
        return ok(session.to_dict(now))

    @app.route("/api/sessions/<int:session_id>/qr.png", methods=["GET"], endpoint="session_qr_image")
    @role_required(Role.TEACHER, Role.ADMIN)
    def session_qr_image(session_id: int):
        session = _owned_session(session_id, now_local())

        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=2,
        )
        qr.add_data(join_url(current_app.config.get("APP_URL", ""), session.code))
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        buf.seek(0)
        return send_file(buf, mimetype="image/png")

    @app.route("/api/sessions/<int:session_id>/records", methods=["POST"], endpoint="mark_attendance_manually")
    @role_required(Role.TEACHER, Role.ADMIN)
    def mark_attendance_manually(session_id: int):
        now = now_local()
        _owned_session(session_id, now)
        data = json_body()
        try:
            status = AttendanceStatus((data.get("status") or "").strip().lower())
        except ValueError:
            raise ValidationError("status must be present, absent, late or on_duty")
        record = recorder.mark(
            session_id=session_id,
            claimant_id=data.get("student_id"),
            status=status,
            marked_by=f"{g.actor.role.value}:{g.actor.user_id}",
            now=now,
        )
        return ok(record.to_dict(), 201)
