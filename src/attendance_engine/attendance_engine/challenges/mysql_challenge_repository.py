from __future__ import annotations

import hmac
from datetime import datetime
from typing import Optional

from ..core.constants import DEFAULT_OTP_MAX_ATTEMPTS
from ..core.enums import VerifyResult
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import IdentityChallenge, Verification, hash_code
from .repository import DurableChallengeRepository


class MySQLChallengeRepository(DurableChallengeRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, max_attempts: int = DEFAULT_OTP_MAX_ATTEMPTS):
        self._conn_factory = conn_factory
        self._max_attempts = int(max_attempts)


    def save(self, challenge: IdentityChallenge) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            # A new challenge supersedes every unused one for the same claimant.
            cur.execute(
                "UPDATE otp_challenges SET is_used=1, used_at=%s WHERE email=%s AND is_used=0",
                (challenge.issued_at, challenge.claimant_key),
            )
            cur.execute(
                """
                INSERT INTO otp_challenges(email, otp_hash, session_id, created_at, expires_at, is_used)
                VALUES(%s,%s,%s,%s,%s,0)
                """,
                (
                    challenge.claimant_key,
                    hash_code(challenge.code),
                    challenge.session_id,
                    challenge.issued_at,
                    challenge.expires_at,
                ),
            )

    def consume(
        self,
        claimant_key: str,
        supplied_code: str,
        *,
        now: datetime,
        session_id: Optional[int] = None,
    ) -> Verification:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT otp_id, email, otp_hash, session_id, created_at, expires_at, attempts
                FROM otp_challenges
                WHERE email=%s AND is_used=0
                ORDER BY created_at DESC, otp_id DESC
                LIMIT 1
                FOR UPDATE
                """,
                (claimant_key,),
            )
            r = fetchone(cur)
            if not r:
                return Verification(VerifyResult.NOT_FOUND)

            stored_session = int(r["session_id"]) if r.get("session_id") is not None else None
            challenge = IdentityChallenge(
                claimant_key=r["email"],
                code="",
                issued_at=r["created_at"],
                expires_at=r["expires_at"],
                session_id=stored_session,
                attempts=int(r.get("attempts") or 0),
            )

            same_session = session_id is None or stored_session is None or int(session_id) == stored_session
            if not same_session or not hmac.compare_digest(r["otp_hash"], hash_code(str(supplied_code or "").strip())):
                failed = challenge.with_failed_attempt()
                discarded = failed.attempts >= self._max_attempts
                # is_used/used_at read the pre-increment attempts: MySQL assigns left to right.
                cur.execute(
                    """
                    UPDATE otp_challenges
                    SET is_used=IF(attempts + 1 >= %s, 1, is_used),
                        used_at=IF(attempts + 1 >= %s, %s, used_at),
                        attempts=attempts + 1
                    WHERE otp_id=%s AND is_used=0
                    """,
                    (self._max_attempts, self._max_attempts, now, int(r["otp_id"])),
                )
                return Verification(VerifyResult.MISMATCH, failed, discarded=discarded)

            cur.execute(
                "UPDATE otp_challenges SET is_used=1, used_at=%s WHERE otp_id=%s AND is_used=0",
                (now, int(r["otp_id"])),
            )
            if cur.rowcount <= 0:
                return Verification(VerifyResult.NOT_FOUND)
            if challenge.is_expired(now):
                return Verification(VerifyResult.EXPIRED, challenge)
            return Verification(VerifyResult.OK, challenge)

    def invalidate(self, claimant_key: str, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE otp_challenges SET is_used=1, used_at=%s WHERE email=%s AND is_used=0",
                (now, claimant_key),
            )
            return int(cur.rowcount or 0)
