from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceRecorder
from .challenges.mysql_challenge_repository import MySQLChallengeRepository
from .challenges.repository import DurableChallengeRepository
from .challenges.service import ChallengeService
from .challenges.store import ChallengeStore, InMemoryChallengeStore
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .notifications.dispatcher import NotificationDispatcher
from .notifications.notifier import Notifier, SmtpSettings, build_notifier
from .od_requests.mysql_od_request_repository import MySQLODRequestRepository
from .od_requests.repository import ODRequestRepository
from .od_requests.service import ODRequestService
from .schedules.mysql_binding_repository import MySQLBindingRepository
from .schedules.repository import BindingRepository
from .schedules.trigger import ScheduledSessionTrigger
from .sessions.codes import generate_session_code
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .sessions.service import SessionService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    sessions_repo: SessionRepository
    attendance_repo: AttendanceRepository
    od_requests_repo: ODRequestRepository
    bindings_repo: BindingRepository

    dispatcher: NotificationDispatcher
    session_service: SessionService
    challenge_service: ChallengeService
    attendance_recorder: AttendanceRecorder
    od_request_service: ODRequestService
    trigger: ScheduledSessionTrigger

    conn: Optional[DatabaseConnection] = None

    def shutdown(self) -> None:
        self.dispatcher.shutdown(wait=False)


def _opt(options: Mapping[str, Any], key: str, default):
    value = options.get(key)
    return default if value is None else value


def assemble(
    *,
    users_repo: UserRepository,
    sessions_repo: SessionRepository,
    attendance_repo: AttendanceRepository,
    od_requests_repo: ODRequestRepository,
    bindings_repo: BindingRepository,
    notifier: Notifier,
    challenge_store: Optional[ChallengeStore] = None,
    durable_challenges: Optional[DurableChallengeRepository] = None,
    options: Optional[Mapping[str, Any]] = None,
    code_generator: Callable[[int], str] = generate_session_code,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over the given repositories.

    ``options`` uses the settings keys (``SESSION_CODE_LENGTH``, ``OTP_TTL_MINUTES`` ...);
    missing keys fall back to ``core.constants``.
    """

    o = options or {}

    dispatcher = NotificationDispatcher(
        notifier,
        max_workers=_opt(o, "NOTIFY_WORKERS", constants.DEFAULT_NOTIFY_WORKERS),
        timeout=_opt(o, "NOTIFY_TIMEOUT_SECONDS", constants.DEFAULT_NOTIFY_TIMEOUT_SECONDS),
    )
    session_service = SessionService(
        sessions_repo,
        code_length=_opt(o, "SESSION_CODE_LENGTH", constants.DEFAULT_SESSION_CODE_LENGTH),
        max_duration=timedelta(minutes=_opt(o, "SESSION_MAX_MINUTES", constants.DEFAULT_SESSION_MAX_MINUTES)),
        code_generator=code_generator,
    )
    store = challenge_store
    if store is None:
        store = InMemoryChallengeStore(max_attempts=_opt(o, "OTP_MAX_ATTEMPTS", constants.DEFAULT_OTP_MAX_ATTEMPTS))
    challenge_service = ChallengeService(
        store,
        session_service,
        users_repo,
        dispatcher,
        durable=durable_challenges,
        ttl=timedelta(minutes=_opt(o, "OTP_TTL_MINUTES", constants.DEFAULT_OTP_TTL_MINUTES)),
        code_length=_opt(o, "OTP_LENGTH", constants.DEFAULT_OTP_LENGTH),
        allowed_domains=_opt(o, "ALLOWED_EMAIL_DOMAINS", ()),
    )
    attendance_recorder = AttendanceRecorder(attendance_repo, sessions_repo, users_repo, challenge_service)
    od_request_service = ODRequestService(od_requests_repo, attendance_recorder, users_repo, dispatcher)
    trigger = ScheduledSessionTrigger(
        bindings_repo,
        session_service,
        users_repo,
        dispatcher,
        app_url=_opt(o, "APP_URL", ""),
        window=timedelta(minutes=_opt(o, "TRIGGER_WINDOW_MINUTES", constants.DEFAULT_TRIGGER_WINDOW_MINUTES)),
        dedup_window=timedelta(minutes=_opt(o, "DEDUP_WINDOW_MINUTES", constants.DEFAULT_DEDUP_WINDOW_MINUTES)),
        session_length=timedelta(
            minutes=_opt(o, "SCHEDULED_SESSION_MINUTES", constants.DEFAULT_SCHEDULED_SESSION_MINUTES)
        ),
        lock_timeout=_opt(o, "TRIGGER_LOCK_TIMEOUT_SECONDS", constants.TRIGGER_LOCK_TIMEOUT_SECONDS),
    )

    return Container(
        users_repo=users_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        od_requests_repo=od_requests_repo,
        bindings_repo=bindings_repo,
        dispatcher=dispatcher,
        session_service=session_service,
        challenge_service=challenge_service,
        attendance_recorder=attendance_recorder,
        od_request_service=od_request_service,
        trigger=trigger,
        conn=conn,
    )


def build_container(*, db_config: dict, options: Optional[Mapping[str, Any]] = None) -> Container:
    o = options or {}
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    notifier = build_notifier(
        SmtpSettings(
            host=str(o.get("SMTP_HOST") or ""),
            port=int(_opt(o, "SMTP_PORT", 587)),
            user=str(o.get("SMTP_USER") or ""),
            password=str(o.get("SMTP_PASSWORD") or ""),
            use_tls=bool(_opt(o, "SMTP_USE_TLS", True)),
            mail_from=str(o.get("MAIL_FROM") or ""),
            timeout=float(_opt(o, "NOTIFY_TIMEOUT_SECONDS", constants.DEFAULT_NOTIFY_TIMEOUT_SECONDS)),
        )
    )

    return assemble(
        users_repo=MySQLUserRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        od_requests_repo=MySQLODRequestRepository(conn),
        bindings_repo=MySQLBindingRepository(conn),
        notifier=notifier,
        durable_challenges=MySQLChallengeRepository(
            conn, max_attempts=_opt(o, "OTP_MAX_ATTEMPTS", constants.DEFAULT_OTP_MAX_ATTEMPTS)
        ),
        options=o,
        conn=conn,
    )
