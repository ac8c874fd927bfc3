import os

from .config import *  # noqa: F401,F403

# No default: wiring refuses to start without a real secret.
SECRET_KEY = os.getenv("SECRET_KEY", "")

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
