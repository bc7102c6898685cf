from __future__ import annotations

import hmac

from flask import Flask, current_app, g, request

from ..common.datetime_utils import now_local
from ..common.http import ok, role_required
from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from ..container import Container
from .maintenance import run_maintenance


def register(app: Flask, container: Container) -> None:
    def _check_cron_secret() -> None:
        if not current_app.config.get("CRON_REQUIRE_AUTH", True):
            return
        secret = current_app.config.get("CRON_SECRET") or ""
        header = request.headers.get("Authorization") or ""
        supplied = header[len("Bearer "):] if header.startswith("Bearer ") else ""
        if not secret or not supplied or not hmac.compare_digest(supplied.encode("utf-8"), secret.encode("utf-8")):
            raise AuthenticationError("Invalid or missing cron secret")

    @app.route("/api/cron/create-scheduled-sessions", methods=["GET", "POST"], endpoint="cron_create_scheduled_sessions")
    def cron_create_scheduled_sessions():
        _check_cron_secret()
        report = container.trigger.run()
        maintenance = run_maintenance(
            sessions=container.session_service,
            challenges=container.challenge_service,
            od_requests=container.od_request_service,
            now=report.ran_at,
        )
        return ok({**report.to_dict(), "maintenance": maintenance})

    @app.route("/api/teacher/scheduled-sessions", methods=["GET"], endpoint="teacher_scheduled_sessions")
    @role_required(Role.TEACHER)
    def teacher_scheduled_sessions():
        now = now_local()
        bindings = container.trigger.scheduled_for_owner(g.actor.user_id, now=now)
        active = container.session_service.list_active_for_owner(g.actor.user_id, now=now)
        return ok(
            {
                "scheduled": [b.to_dict() for b in bindings],
                "active_sessions": [s.to_dict(now) for s in active],
            }
        )
