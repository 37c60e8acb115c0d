from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import date_field, error_response, json_body
from ..container import Container
from ..core.constants import RECONCILE_JOB


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/reconciliation/run", methods=["POST"], endpoint="reconciliation_run")
    def reconciliation_run():
        """Manual trigger for one cohort day (defaults to today)."""
        try:
            container.trigger_limiter.check("reconciliation_run")
            cohort_date = date_field(json_body(), "date", required=False)
            summary = container.reconciliation_engine.reconcile_day(cohort_date)
            return jsonify({"success": True, "data": summary.to_dict()}), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/admin/reconciliation/runs", methods=["GET"], endpoint="reconciliation_runs")
    def reconciliation_runs():
        try:
            run_key = None
            if request.args.get("date"):
                run_key = date_field(request.args, "date").isoformat()
            limit = min(max(request.args.get("limit", 20, type=int), 1), 100)
            runs = container.run_ledger.list_runs(job_name=RECONCILE_JOB, run_key=run_key, limit=limit)
            return jsonify({"success": True, "data": [r.to_dict() for r in runs]}), 200
        except Exception as e:
            return error_response(e)
