from .base import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

AUTO_INIT_DB = False

CRON_SECRET = "test-cron-secret"
CRON_REQUIRE_AUTH = True
ALLOWED_EMAIL_DOMAINS = ()
