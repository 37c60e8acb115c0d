"""Settings shared by every environment.

Each value reads an environment variable (loaded from `.env` by python-dotenv
before the settings module is imported) and falls back to a default.
"""

import os


def _flag(name: str, default: str = "0") -> bool:
    return bool(int(os.getenv(name, default)))


SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "workforce_db"),
}

DEBUG = _flag("DEBUG")

# If enabled, the app applies schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = _flag("AUTO_INIT_DB")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = _flag("LOG_JSON")

# Company-wide payroll defaults; request bodies may override them per call.
PAYROLL = {
    "standardHours": os.getenv("PAYROLL_STANDARD_HOURS", "160"),
    "hourlyRate": os.getenv("PAYROLL_HOURLY_RATE", "12.5"),
    "overtimeRate": os.getenv("PAYROLL_OVERTIME_RATE", "20"),
    "undertimeDeduction": os.getenv("PAYROLL_UNDERTIME_RATE", "15"),
    "absenceDeduction": os.getenv("PAYROLL_ABSENCE_RATE", "50"),
    "bonusPercent": os.getenv("PAYROLL_BONUS_PERCENT", "5"),
    "salesBasis": os.getenv("PAYROLL_SALES_BASIS", "value"),
}

# Reconciliation batch
RECONCILIATION_MAX_WORKERS = int(os.getenv("RECONCILIATION_MAX_WORKERS", "4"))
RECORD_TIMEOUT_SECONDS = float(os.getenv("RECORD_TIMEOUT_SECONDS", "30"))
RUN_LOCK_TTL_SECONDS = int(os.getenv("RUN_LOCK_TTL_SECONDS", "900"))

# Administrative triggers (manual reconciliation / repair over HTTP)
TRIGGER_RATE_LIMIT = int(os.getenv("TRIGGER_RATE_LIMIT", "10"))
TRIGGER_RATE_WINDOW_SECONDS = int(os.getenv("TRIGGER_RATE_WINDOW_SECONDS", "900"))
