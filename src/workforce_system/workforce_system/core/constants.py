"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

# Payroll defaults (monthly period).
DEFAULT_STANDARD_HOURS = Decimal("160")
DEFAULT_HOURLY_RATE = Decimal("12.5")
DEFAULT_OVERTIME_RATE = Decimal("20")
DEFAULT_UNDERTIME_RATE = Decimal("15")
DEFAULT_ABSENCE_RATE = Decimal("50")
DEFAULT_BONUS_PERCENT = Decimal("5")
DEFAULT_WORKING_WEEKDAYS = (0, 1, 2, 3, 4)  # Mon..Fri

MONEY_QUANT = Decimal("0.01")
HOURS_QUANT = Decimal("0.01")
# Largest value a DECIMAL(12, 2) column holds.
MAX_MONEY = Decimal("9999999999.99")

# Reconciliation batch.
DEFAULT_MAX_WORKERS = 4
DEFAULT_RECORD_TIMEOUT_SECONDS = 30.0
DEFAULT_RUN_LOCK_TTL_SECONDS = 15 * 60

# Administrative triggers.
DEFAULT_TRIGGER_RATE_LIMIT = 10
DEFAULT_TRIGGER_RATE_WINDOW_SECONDS = 15 * 60

RECONCILE_JOB = "reconcile_day"
REPAIR_JOB = "repair_breakdowns"
