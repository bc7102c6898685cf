"""Periodic creation of attendance sessions from teachers' weekly bindings."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Sequence

from ..app_logger import get_logger
from ..common.datetime_utils import now_local, weekday_name
from ..core.constants import (
    DEFAULT_DEDUP_WINDOW_MINUTES,
    DEFAULT_SCHEDULED_SESSION_MINUTES,
    DEFAULT_TRIGGER_WINDOW_MINUTES,
    TRIGGER_LOCK_TIMEOUT_SECONDS,
)
from ..core.exceptions import ConflictError
from ..notifications import messages
from ..notifications.dispatcher import NotificationDispatcher
from ..sessions.codes import join_url
from ..sessions.service import SessionService
from ..users.repository import UserRepository
from .model import RecurringBinding
from .repository import BindingRepository

log = get_logger(__name__)


@dataclass(frozen=True)
class CandidateFailure:
    binding_id: int
    stage: str
    error: str

    def to_dict(self) -> dict:
        return {"binding_id": self.binding_id, "stage": self.stage, "error": self.error}


@dataclass
class TriggerReport:
    ran_at: datetime
    day_of_week: str
    candidates: int = 0
    created: List[dict] = field(default_factory=list)
    skipped: List[dict] = field(default_factory=list)
    failures: List[CandidateFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "ran_at": self.ran_at.isoformat(),
            "day_of_week": self.day_of_week,
            "candidates": self.candidates,
            "created": self.created,
            "skipped": self.skipped,
            "failures": [f.to_dict() for f in self.failures],
        }


class ScheduledSessionTrigger:
    """Opens a session for every auto-enabled binding starting soon.

    The trigger window is wider than the polling interval so a missed tick still fires
    (early rather than late); the dedup window is what prevents a second session when
    consecutive scans overlap. One failing binding never stops the others.
    """

    def __init__(
        self,
        bindings: BindingRepository,
        sessions: SessionService,
        users: UserRepository,
        dispatcher: NotificationDispatcher,
        *,
        app_url: str = "",
        window: timedelta = timedelta(minutes=DEFAULT_TRIGGER_WINDOW_MINUTES),
        dedup_window: timedelta = timedelta(minutes=DEFAULT_DEDUP_WINDOW_MINUTES),
        session_length: timedelta = timedelta(minutes=DEFAULT_SCHEDULED_SESSION_MINUTES),
        lock_timeout: float = TRIGGER_LOCK_TIMEOUT_SECONDS,
    ):
        self._bindings = bindings
        self._sessions = sessions
        self._users = users
        self._dispatcher = dispatcher
        self._app_url = app_url
        self._window = window
        self._dedup_window = dedup_window
        self._session_length = session_length
        self._lock_timeout = float(lock_timeout)
        self._lock = threading.Lock()

    def due_bindings(self, *, now: datetime) -> Sequence[RecurringBinding]:
        out = []
        for b in self._bindings.list_auto_enabled_for_day(day_of_week=weekday_name(now.date())):
            until_start = b.starts_on(now.date()) - now
            if timedelta(0) <= until_start <= self._window:
                out.append(b)
        return out

    def run(self, *, now: datetime | None = None) -> TriggerReport:
        now = now or now_local()
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise ConflictError("A scheduled-session run is already in progress")
        try:
            return self._run(now)
        finally:
            self._lock.release()

    def _run(self, now: datetime) -> TriggerReport:
        report = TriggerReport(ran_at=now, day_of_week=weekday_name(now.date()))
        try:
            due = self.due_bindings(now=now)
        except Exception as e:
            log.exception("could not load recurring bindings")
            report.failures.append(CandidateFailure(binding_id=0, stage="load", error=str(e)))
            return report

        report.candidates = len(due)
        for binding in due:
            self._process(binding, now=now, report=report)

        log.info(
            "scheduled trigger day=%s candidates=%d created=%d skipped=%d failures=%d",
            report.day_of_week,
            report.candidates,
            len(report.created),
            len(report.skipped),
            len(report.failures),
        )
        return report

    def _process(self, binding: RecurringBinding, *, now: datetime, report: TriggerReport) -> None:
        try:
            recent = self._sessions.find_recent_for_binding(
                owner_id=binding.owner_id,
                class_id=binding.class_id,
                subject_id=binding.subject_id,
                since=now - self._dedup_window,
            )
            if recent:
                report.skipped.append({"binding_id": binding.binding_id, "session_id": recent.session_id})
                return

            expires_at = binding.starts_on(now.date()) + self._session_length
            session = self._sessions.open_session(
                owner_id=binding.owner_id,
                class_id=binding.class_id,
                subject_id=binding.subject_id,
                duration=expires_at - now,
                now=now,
            )
        except Exception as e:
            log.error("scheduled session failed binding=%s: %s", binding.binding_id, e)
            report.failures.append(CandidateFailure(binding_id=binding.binding_id, stage="open", error=str(e)))
            return

        report.created.append(
            {
                "binding_id": binding.binding_id,
                "session_id": session.session_id,
                "session_code": session.code,
                "expires_at": session.expires_at.isoformat(),
            }
        )

        try:
            owner = self._users.get_by_id(binding.owner_id)
            result = self._dispatcher.send_and_wait(
                owner.email if owner else None,
                messages.session_started(
                    session_id=session.session_id,
                    session_code=session.code,
                    expires_at=session.expires_at,
                    join_url=join_url(self._app_url, session.code),
                ),
            )
        except Exception as e:
            log.error("owner notification failed binding=%s: %s", binding.binding_id, e)
            report.failures.append(CandidateFailure(binding_id=binding.binding_id, stage="notify", error=str(e)))
            return
        if not result.ok:
            report.failures.append(CandidateFailure(binding_id=binding.binding_id, stage="notify", error=result.error or "failed"))

    def scheduled_for_owner(self, owner_id: int, *, now: datetime | None = None) -> Sequence[RecurringBinding]:
        now = now or now_local()
        return self._bindings.list_auto_enabled_for_day(day_of_week=weekday_name(now.date()), owner_id=int(owner_id))
