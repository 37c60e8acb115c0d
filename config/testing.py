from config.config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

AUTO_INIT_DB = False

RECONCILIATION_MAX_WORKERS = 2
RECORD_TIMEOUT_SECONDS = 5.0
