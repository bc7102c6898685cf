"""Settings shared by every environment; read from the process environment (.env)."""

import os


def env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "1" if default else "0").strip().lower() in {"1", "true", "yes", "on"}


def env_list(name: str) -> tuple:
    return tuple(p.strip().lower() for p in os.getenv(name, "").split(",") if p.strip())


DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": env_int("DB_PORT", 3306),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_engine"),
    "pool_size": env_int("DB_POOL_SIZE", 5),
}

APP_URL = os.getenv("APP_URL", "http://localhost:5000")

# Shared secret the external scheduler sends as "Authorization: Bearer <secret>"
CRON_SECRET = os.getenv("CRON_SECRET", "")
CRON_REQUIRE_AUTH = env_bool("CRON_REQUIRE_AUTH", True)

SESSION_CODE_LENGTH = env_int("SESSION_CODE_LENGTH", 8)
SESSION_DEFAULT_MINUTES = env_int("SESSION_DEFAULT_MINUTES", 5)
SESSION_MAX_MINUTES = env_int("SESSION_MAX_MINUTES", 15)

OTP_LENGTH = env_int("OTP_LENGTH", 6)
OTP_TTL_MINUTES = env_int("OTP_TTL_MINUTES", 10)
OTP_MAX_ATTEMPTS = env_int("OTP_MAX_ATTEMPTS", 5)
ALLOWED_EMAIL_DOMAINS = env_list("ALLOWED_EMAIL_DOMAINS")

TRIGGER_WINDOW_MINUTES = env_int("TRIGGER_WINDOW_MINUTES", 7)
DEDUP_WINDOW_MINUTES = env_int("DEDUP_WINDOW_MINUTES", 10)
SCHEDULED_SESSION_MINUTES = env_int("SCHEDULED_SESSION_MINUTES", 5)
TRIGGER_LOCK_TIMEOUT_SECONDS = env_int("TRIGGER_LOCK_TIMEOUT_SECONDS", 30)

NOTIFY_TIMEOUT_SECONDS = env_int("NOTIFY_TIMEOUT_SECONDS", 10)
NOTIFY_WORKERS = env_int("NOTIFY_WORKERS", 4)

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = env_int("SMTP_PORT", 587)
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = env_bool("SMTP_USE_TLS", True)
MAIL_FROM = os.getenv("MAIL_FROM", SMTP_USER or "no-reply@localhost")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
