import os

from .base import *  # noqa: F401,F403
from .base import env_bool

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DEBUG = True

# Apply database/schema.sql on startup (idempotent: CREATE TABLE IF NOT EXISTS)
AUTO_INIT_DB = env_bool("AUTO_INIT_DB", True)

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
