from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional

from flask import jsonify, request

from ..core.exceptions import (
    ComputationError,
    ConflictError,
    DomainError,
    NotFoundError,
    PersistenceError,
    RateLimitExceededError,
    ValidationError,
)
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (RateLimitExceededError, 429),
    (ValidationError, 400),
    (ComputationError, 400),
    (PersistenceError, 500),
)


def status_for(error: DomainError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def error_response(error: Exception):
    """JSON error body in the shape every endpoint returns: {success, message}."""
    if isinstance(error, DomainError):
        status = status_for(error)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, error)
        return jsonify({"success": False, "message": str(error)}), status

    logger.exception("%s %s failed", request.method, request.path)
    return jsonify({"success": False, "message": "Internal server error"}), 500


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_field(data: Mapping[str, Any], name: str) -> Any:
    value = data.get(name)
    if value is None or value == "":
        raise ValidationError(f"Missing required field: {name}")
    return value


def date_field(data: Mapping[str, Any], name: str, *, required: bool = True) -> Optional[date]:
    value = require_field(data, name) if required else data.get(name)
    if value is None or value == "":
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format")


def int_field(data: Mapping[str, Any], name: str) -> int:
    value = require_field(data, name)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a whole number")
