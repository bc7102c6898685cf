"""One scheduled-session pass plus maintenance, for a system cron entry such as::

    */2 * * * * cd /srv/attendance-engine && python scripts/run_trigger.py
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.attendance_engine.attendance_engine.app_logger import setup_logging
from src.attendance_engine.attendance_engine.container import build_container
from src.attendance_engine.attendance_engine.main import load_settings
from src.attendance_engine.attendance_engine.schedules.maintenance import run_maintenance


def main() -> int:
    settings = load_settings()
    setup_logging(settings.get("LOG_LEVEL"), configure_root=True)
    container = build_container(db_config=settings["DB_CONFIG"], options=settings)
    try:
        report = container.trigger.run()
        maintenance = run_maintenance(
            sessions=container.session_service,
            challenges=container.challenge_service,
            od_requests=container.od_request_service,
            now=report.ran_at,
        )
    finally:
        # Let queued owner notifications finish before the process exits.
        container.dispatcher.shutdown(wait=True)

    print(json.dumps({**report.to_dict(), "maintenance": maintenance}, indent=2, default=str))
    return 1 if report.failures or maintenance["errors"] else 0


if __name__ == "__main__":
    sys.exit(main())
