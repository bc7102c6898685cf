from __future__ import annotations

from datetime import datetime

from ..app_logger import get_logger
from ..challenges.service import ChallengeService
from ..common.datetime_utils import now_local
from ..od_requests.service import ODRequestService
from ..sessions.service import SessionService

log = get_logger(__name__)


def run_maintenance(
    *,
    sessions: SessionService,
    challenges: ChallengeService,
    od_requests: ODRequestService,
    now: datetime | None = None,
) -> dict:
    """Housekeeping that rides along with each cron tick.

    None of these are needed for correctness (expiry is evaluated on read), so a failing
    step is logged and reported, not raised.
    """

    now = now or now_local()
    steps = (
        ("sessions_expired", lambda: sessions.sweep_expired(now=now)),
        ("challenges_purged", lambda: challenges.purge_expired(now=now)),
        ("od_requests_reconciled", lambda: od_requests.retry_reconciliation(now=now)),
    )
    out: dict = {"errors": []}
    for name, step in steps:
        try:
            out[name] = step()
        except Exception as e:
            log.exception("maintenance step %s failed", name)
            out[name] = None
            out["errors"].append({"step": name, "error": str(e)})
    return out
