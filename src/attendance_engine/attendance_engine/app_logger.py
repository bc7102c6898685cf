from __future__ import annotations

import logging
import os

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
_ROOT_NAME = "attendance_engine"


def setup_logging(level: str | None = None, *, configure_root: bool = False) -> logging.Logger:
    """Prepare the package logger.

    Library-friendly by default: only the ``attendance_engine`` logger is touched and a
    NullHandler avoids "no handler" warnings. The app factory passes
    ``configure_root=True`` so a plain stream handler is installed when nothing else
    (gunicorn, dictConfig) configured logging first.
    """

    name = (level or _DEFAULT_LEVEL).upper()
    logger = logging.getLogger(_ROOT_NAME)
    logger.setLevel(getattr(logging, name, logging.INFO))
    if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
        logger.addHandler(logging.NullHandler())
    logger.propagate = True

    if configure_root and not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, name, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger(_ROOT_NAME)
    if not name:
        return base
    if name.startswith(_ROOT_NAME + ".") or name == _ROOT_NAME:
        return logging.getLogger(name)
    # Module __name__ under the src/ layout is "src.attendance_engine.attendance_engine.x".
    tail = name.rsplit(_ROOT_NAME + ".", 1)[-1] if _ROOT_NAME + "." in name else name
    return base.getChild(tail)


logger = setup_logging()
