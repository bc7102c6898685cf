from __future__ import annotations

import secrets

from ..core.constants import DEFAULT_SESSION_CODE_LENGTH, SESSION_CODE_ALPHABET


def generate_session_code(length: int = DEFAULT_SESSION_CODE_LENGTH) -> str:
    return "".join(secrets.choice(SESSION_CODE_ALPHABET) for _ in range(int(length)))


def normalize_session_code(value: str) -> str:
    """Case-normalize a code typed or scanned by a claimant."""
    return "".join((value or "").split()).upper()


def join_url(app_url: str, code: str) -> str:
    """Link a claimant opens (or scans as a QR code) to join the session."""
    return f"{(app_url or '').rstrip('/')}/student/attendance?code={code}"
