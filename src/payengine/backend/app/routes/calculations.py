"""REST endpoints for deduction and payslip calculations."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, request

from payengine.backend.app.services.calculation_service import (
    build_deduction_payload,
    build_payslip_payload,
    calculate_deductions_payload,
    calculate_payslip,
)
from payengine.backend.services import (
    build_calculation_response,
    parse_calculation_payload,
)

blueprint = Blueprint("calculations", __name__, url_prefix="/api/v1/calculations")


def _engine_settings() -> dict[str, Any]:
    return current_app.extensions.get("payengine", {})


@blueprint.post("/deductions")
def create_deduction_calculation() -> tuple[Any, int]:
    """Calculate statutory deductions for one pay period."""

    payload = parse_calculation_payload(request)
    summary = calculate_deductions_payload(
        payload, provider=_engine_settings().get("provider")
    )

    return build_calculation_response(build_deduction_payload(summary))


@blueprint.post("/payslips")
def create_payslip_calculation() -> tuple[Any, int]:
    """Calculate an itemised payslip using the submitted JSON payload."""

    settings = _engine_settings()
    payload = parse_calculation_payload(request)
    result = calculate_payslip(
        payload,
        provider=settings.get("provider"),
        formula_evaluator=settings.get("formula_evaluator"),
    )

    return build_calculation_response(build_payslip_payload(result))
