"""Daily reconciliation for cron.

Example crontab entry (23:55 every day):
    55 23 * * * cd /srv/workforce && APP_ENV=production python scripts/reconcile_day.py
"""

from __future__ import annotations

import argparse
import importlib
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.workforce_system.workforce_system.common.datetime_utils import parse_iso_date
from src.workforce_system.workforce_system.common.logging_config import configure_logging
from src.workforce_system.workforce_system.container import build_container
from src.workforce_system.workforce_system.core.exceptions import JobAlreadyRunningError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile one day's product assignments against sales.")
    parser.add_argument("--date", help="Cohort day YYYY-MM-DD (default: today)")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)
    cohort_date = parse_iso_date(args.date) if args.date else None
    container.counter_store.evict_expired()
    try:
        summary = container.reconciliation_engine.reconcile_day(cohort_date)
    except JobAlreadyRunningError as e:
        print(f"SKIP: {e}")
        return 0

    print(json.dumps(summary.to_dict(include_outcomes=False), indent=2))
    return 1 if summary.failed or summary.timed_out else 0


if __name__ == "__main__":
    raise SystemExit(main())
