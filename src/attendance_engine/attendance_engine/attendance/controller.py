from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import now_local
from ..common.http import json_body, ok
from ..common.validators import require_non_empty, require_positive_id
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/challenge", methods=["POST"], endpoint="attendance_challenge")
    def attendance_challenge():
        data = json_body()
        now = now_local()
        challenge = container.challenge_service.request_for_session(
            require_non_empty(data.get("email"), "email"),
            require_non_empty(data.get("session_code"), "session_code"),
            now=now,
        )
        # The code itself only travels out-of-band.
        return ok(
            {
                "email": challenge.claimant_key,
                "session_id": challenge.session_id,
                "expires_at": challenge.expires_at.strftime("%Y-%m-%d %H:%M:%S"),
            },
            201,
        )

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    def attendance_check_in():
        data = json_body()
        record = container.attendance_recorder.check_in(
            claimant_key=require_non_empty(data.get("email"), "email"),
            session_id=require_positive_id(data.get("session_id"), "session_id"),
            code=require_non_empty(data.get("otp"), "otp"),
            now=now_local(),
        )
        return ok(record.to_dict(), 201)
