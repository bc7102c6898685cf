import os

from .base import *  # noqa: F401,F403
from .base import env_bool

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DEBUG = False

AUTO_INIT_DB = env_bool("AUTO_INIT_DB", False)
