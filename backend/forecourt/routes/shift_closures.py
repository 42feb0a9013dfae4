# Overview: Flask API routes for shift closures; parses input and returns JSON responses.

# backend/forecourt/routes/shift_closures.py
"""
Shift Closure API Routes

DESIGN:
- POST submits one closure. The body of every response produced by the
  engine is the closure result object, including failures.
- Status mapping: 201 committed (SUCCESS / SUCCESS_WITH_ERRORS),
  400 malformed request, 404 unknown location, 409 duplicate shift,
  500 unexpected failure.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services.closure_schemas import STATUS_FAILED, parse_closure_request
from ..services.shift_closure_service import (
    ERROR_DUPLICATE_SHIFT,
    ERROR_LOCATION_NOT_FOUND,
    ShiftClosureError,
    close_shift,
    logger_observer,
    require_shift_record,
)
from ..validation import ValidationError, coerce_int


shift_closures_bp = Blueprint("shift_closures", __name__, url_prefix="/api/shift-closures")

_FAILURE_STATUS = {
    ERROR_LOCATION_NOT_FOUND: 404,
    ERROR_DUPLICATE_SHIFT: 409,
}


@shift_closures_bp.post("/")
@shift_closures_bp.post("")
def create_shift_closure_route():
    """
    Close a shift.

    Request body: see closure_schemas.parse_closure_request. An optional
    "operator_id" identifies who closed the shift.
    """
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({"error": "JSON body required"}), 400

    try:
        closure = parse_closure_request(data)
        operator_id = coerce_int(data.get("operator_id"), "operator_id", allow_none=True)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    result = close_shift(closure, operator_id=operator_id, observer=logger_observer(current_app.logger))

    if result.status == STATUS_FAILED:
        http_status = _FAILURE_STATUS.get(result.error_code, 500)
        return jsonify(result.to_dict()), http_status

    return jsonify(result.to_dict()), 201


@shift_closures_bp.get("/<int:shift_id>")
def get_shift_closure_route(shift_id: int):
    include_payload = request.args.get("include_payload", "").lower() in {"1", "true", "yes"}
    try:
        shift = require_shift_record(shift_id)
        data = shift.to_dict(include_payload=include_payload)
        data["payment_breakdown"] = [b.to_dict() for b in shift.payment_breakdowns]
        return jsonify({"shift": data}), 200
    except ShiftClosureError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load shift closure")
        return jsonify({"error": "Internal server error"}), 500
