from __future__ import annotations

import json
from pathlib import Path

import click
from flask import Flask

from .common.datetime_utils import parse_iso_date
from .container import Container
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def _echo_summary(data: dict) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


def register(app: Flask, container: Container, db_config: dict) -> None:
    """Flask CLI commands; cron calls `flask reconcile-day` once a day."""

    @app.cli.command("init-db")
    def init_db():
        """Apply database/schema.sql (idempotent)."""
        apply_schema(db_config, schema_path=SCHEMA_PATH)
        tables = list_tables(db_config)
        click.echo(
            "OK: Applied schema.sql -> "
            f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
            f"(tables={len(tables)})"
        )

    @app.cli.command("reconcile-day")
    @click.option("--date", "day", default=None, help="Cohort day YYYY-MM-DD (default: today).")
    def reconcile_day(day):
        """Settle the open assignments of one day against its sales."""
        cohort_date = None
        if day:
            try:
                cohort_date = parse_iso_date(day)
            except ValueError:
                raise click.BadParameter("expected YYYY-MM-DD", param_hint="--date")
        evicted = container.counter_store.evict_expired()
        if evicted:
            click.echo(f"Evicted {evicted} expired counter(s)")
        try:
            summary = container.reconciliation_engine.reconcile_day(cohort_date)
        except DomainError as e:
            raise click.ClickException(str(e))
        _echo_summary(summary.to_dict(include_outcomes=False))
        if summary.failed or summary.timed_out:
            raise SystemExit(1)

    @app.cli.command("repair-breakdowns")
    def repair_breakdowns():
        """Give legacy salary rows a breakdown of {baseSalary: amount}."""
        try:
            summary = container.legacy_repair.run()
        except DomainError as e:
            raise click.ClickException(str(e))
        click.echo(f"Updated {summary.updated} salary record(s)")
        _echo_summary(summary.to_dict())

    @app.cli.command("backfill-salary-periods")
    def backfill_salary_periods():
        """Set missing salary periods to the calendar month of the pay date."""
        try:
            summary = container.legacy_repair.backfill_periods()
        except DomainError as e:
            raise click.ClickException(str(e))
        click.echo(f"Updated {summary.updated} salary record(s)")
        _echo_summary(summary.to_dict())
