"""Notification payloads produced by the engine."""

from __future__ import annotations

from datetime import date, datetime

from .model import Notification


def otp_code(*, code: str, expires_at: datetime, session_code: str | None = None) -> Notification:
    where = f" for session {session_code}" if session_code else ""
    return Notification(
        kind="otp",
        subject="Your attendance verification code",
        body=(
            f"Your one-time code{where} is {code}.\n"
            f"It expires at {expires_at:%H:%M}. Do not share it."
        ),
        data={"session_code": session_code, "expires_at": expires_at.isoformat()},
    )


def session_started(*, session_id: int, session_code: str, expires_at: datetime, join_url: str) -> Notification:
    return Notification(
        kind="session_started",
        subject=f"Attendance session {session_code} is open",
        body=(
            f"An attendance session was opened automatically.\n"
            f"Code: {session_code}\nLink: {join_url}\nExpires at: {expires_at:%H:%M}"
        ),
        data={"session_id": session_id, "session_code": session_code, "join_url": join_url},
    )


def od_request_filed(*, request_id: int, claimant_name: str, od_date: date, reason: str, recipient_role: str) -> Notification:
    return Notification(
        kind="od_request_filed",
        subject=f"On-duty request #{request_id} awaits your approval",
        body=(
            f"{claimant_name} requested on-duty for {od_date:%Y-%m-%d}.\n"
            f"Reason: {reason}\nYou are the {recipient_role} approver."
        ),
        data={"request_id": request_id, "recipient_role": recipient_role},
    )


def od_request_decided(*, request_id: int, od_date: date, status: str, rejected_by: str | None = None, note: str | None = None) -> Notification:
    lines = [f"Your on-duty request for {od_date:%Y-%m-%d} was {status}."]
    if rejected_by:
        lines.append(f"Rejected by: {rejected_by}")
    if note:
        lines.append(f"Note: {note}")
    return Notification(
        kind="od_request_decided",
        subject=f"On-duty request #{request_id} {status}",
        body="\n".join(lines),
        data={"request_id": request_id, "status": status, "rejected_by": rejected_by},
    )
