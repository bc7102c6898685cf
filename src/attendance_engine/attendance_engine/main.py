from __future__ import annotations

import atexit
import importlib
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .app_logger import get_logger, setup_logging
from .common.http import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .attendance.controller import register as register_attendance
from .od_requests.controller import register as register_od_requests
from .schedules.controller import register as register_schedules
from .sessions.controller import register as register_sessions

log = get_logger(__name__)


def load_settings() -> dict:
    """Uppercase names of the active settings module (``APP_ENV``) as a dict."""

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    return {k: getattr(settings, k) for k in dir(settings) if k.isupper()}


def create_app(container: Optional[Container] = None, *, settings: Optional[dict] = None) -> Flask:
    settings = dict(settings if settings is not None else load_settings())

    app = Flask(__name__)
    app.config.update(settings)
    app.secret_key = settings.get("SECRET_KEY")
    app.config["DEBUG"] = bool(settings.get("DEBUG", False))

    setup_logging(settings.get("LOG_LEVEL"), configure_root=True)

    if container is None:
        db_config = settings["DB_CONFIG"]
        if settings.get("AUTO_INIT_DB"):
            apply_schema(db_config)
            log.info("schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container(db_config=db_config, options=settings)
        atexit.register(container.shutdown)

    app.extensions["attendance_engine"] = container

    register_error_handlers(app)
    register_sessions(app, container)
    register_attendance(app, container)
    register_od_requests(app, container)
    register_schedules(app, container)

    log.info("attendance engine app created (debug=%s)", app.config["DEBUG"])
    return app
