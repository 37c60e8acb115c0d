"""One-shot repair of legacy salary rows (safe to run repeatedly)."""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.workforce_system.workforce_system.common.logging_config import configure_logging
from src.workforce_system.workforce_system.container import build_container


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fill in missing salary breakdowns.")
    parser.add_argument("--periods", action="store_true", help="also backfill missing pay periods")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)

    if args.periods:
        periods = container.legacy_repair.backfill_periods()
        print(f"OK: backfilled periods for {periods.updated} salary record(s)")

    summary = container.legacy_repair.run()
    print(f"OK: updated {summary.updated} salary record(s) (scanned={summary.scanned}, failed={summary.failed})")
    return 1 if summary.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
