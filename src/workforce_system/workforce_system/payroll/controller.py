from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import date_field, error_response, int_field, json_body
from ..container import Container
from .model import PayrollOverrides
from .service import DEFAULT_CHANGED_BY


def register(app: Flask, container: Container) -> None:
    service = container.payroll_service

    def _config_from(data: dict):
        """Per-request rates from `config`.

        Here `undertimeDeduction` and `absenceDeduction` are per-hour and
        per-day rates (also accepted as `undertimeRate` and `absenceRate`). In a
        stored or returned breakdown the same keys hold the deducted money
        amounts, so a breakdown cannot be sent back as `config`.
        """
        return service.default_config.merged(data.get("config"))

    def _changed_by(data: dict) -> str:
        return str(data.get("changedBy") or DEFAULT_CHANGED_BY)

    @app.route("/api/salaries/<int:salary_id>", methods=["GET"], endpoint="salary_detail")
    def salary_detail(salary_id: int):
        """Salary record with its breakdown fields flattened alongside."""
        try:
            return jsonify({"success": True, "data": service.get_salary_view(salary_id)}), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/salaries/<int:salary_id>/breakdown", methods=["GET"], endpoint="salary_breakdown")
    def salary_breakdown(salary_id: int):
        """Breakdown plus the correction chain and its audit trail."""
        try:
            chain = service.correction_chain(salary_id)
            record = chain[0]
            breakdown = record.breakdown.to_dict() if record.breakdown else None
            return (
                jsonify(
                    {
                        "success": True,
                        "salaryId": record.salary_id,
                        "breakdown": breakdown,
                        "correctionChain": [r.salary_id for r in chain],
                        "auditLogs": [e.to_dict() for e in service.audit_trail(chain)],
                    }
                ),
                200,
            )
        except Exception as e:
            return error_response(e)

    @app.route("/api/salaries/preview", methods=["POST"], endpoint="salary_preview")
    def salary_preview():
        try:
            data = json_body()
            result = service.compute_breakdown(
                employee_id=int_field(data, "employeeId"),
                period_start=date_field(data, "startDate"),
                period_end=date_field(data, "endDate"),
                config=_config_from(data),
                overrides=PayrollOverrides.from_request(data),
            )
            return jsonify({"success": True, "data": result.to_dict()}), 200
        except Exception as e:
            return error_response(e)

    @app.route("/api/salaries/process", methods=["POST"], endpoint="salary_process")
    def salary_process():
        try:
            data = json_body()
            record = service.process_salary(
                employee_id=int_field(data, "employeeId"),
                period_start=date_field(data, "startDate"),
                period_end=date_field(data, "endDate"),
                pay_date=date_field(data, "payDate", required=False),
                config=_config_from(data),
                overrides=PayrollOverrides.from_request(data),
                changed_by=_changed_by(data),
            )
            return jsonify({"success": True, "message": "Salary processed", "data": record.flattened()}), 201
        except Exception as e:
            return error_response(e)

    @app.route("/api/salaries/correct", methods=["POST"], endpoint="salary_correct")
    def salary_correct():
        try:
            data = json_body()
            record = service.correct_salary(
                salary_id=int_field(data, "salaryId"),
                config=_config_from(data),
                overrides=PayrollOverrides.from_request(data),
                changed_by=_changed_by(data),
            )
            return jsonify({"success": True, "message": "Salary corrected", "data": record.flattened()}), 201
        except Exception as e:
            return error_response(e)

    @app.route("/api/salaries/backfill", methods=["POST"], endpoint="salary_backfill")
    def salary_backfill():
        """Give legacy salary rows a breakdown; reports how many were updated."""
        try:
            container.trigger_limiter.check("salary_backfill")
            summary = container.legacy_repair.run()
            return jsonify({"success": True, "updatedCount": summary.updated, "data": summary.to_dict()}), 200
        except Exception as e:
            return error_response(e)
