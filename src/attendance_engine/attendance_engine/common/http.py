from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import Flask, g, jsonify, request

from ..app_logger import get_logger
from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ChallengeFailed,
    ConflictError,
    DomainError,
    NoLongerActiveError,
    NotFoundError,
    ValidationError,
)
from .datetime_utils import parse_iso_date

log = get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """Caller identity as asserted by the upstream auth gateway."""

    user_id: int
    role: Role


def current_actor() -> Optional[Actor]:
    raw_id = (request.headers.get("X-User-Id") or "").strip()
    raw_role = (request.headers.get("X-User-Role") or "").strip().lower()
    if not raw_id or not raw_role:
        return None
    try:
        return Actor(user_id=int(raw_id), role=Role(raw_role))
    except ValueError:
        return None


def role_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = current_actor()
            if actor is None:
                raise AuthenticationError("Missing or invalid X-User-Id / X-User-Role headers")
            if roles and actor.role not in roles:
                raise AuthorizationError("You do not have permission to perform this action")
            g.actor = actor
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def body_date(data: dict, field: str) -> date:
    value = (data.get(field) or "").strip() if isinstance(data.get(field), str) else ""
    if not value:
        raise ValidationError(f"{field} is required (YYYY-MM-DD)")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)")


def ok(payload: Any = None, status: int = 200):
    return jsonify({"success": True, "data": payload}), status


_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (ChallengeFailed, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (NoLongerActiveError, 410),
)


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        status = status_for(e)
        body = {"success": False, "error": e.__class__.__name__, "message": str(e)}
        if isinstance(e, ChallengeFailed):
            body["result"] = e.result.value
        log.info("%s %s -> %d %s", request.method, request.path, status, e.__class__.__name__)
        return jsonify(body), status

    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"success": False, "error": "NotFound", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return jsonify({"success": False, "error": "MethodNotAllowed", "message": "Method not allowed"}), 405

    @app.errorhandler(500)
    def internal_error(e):
        log.error("unhandled error on %s %s: %s", request.method, request.path, e)
        return jsonify({"success": False, "error": "InternalError", "message": "Internal server error"}), 500
