"""HTTP helper utilities shared across Flask blueprints."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping

from flask import jsonify

from payengine.backend.errors import (
    ConfigNotFound,
    InvalidRuleConfiguration,
    NegativeInputRejected,
    PayrollEngineError,
    UnknownAllowanceCode,
)


@dataclass(frozen=True)
class ProblemResponse:
    """Lightweight representation of an RFC 7807-style error payload."""

    error: str
    status: int
    message: str | None = None
    extra: Mapping[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return the serialisable payload for this problem response."""

        payload: dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        if self.extra:
            payload.update(self.extra)
        return payload

    def to_response(self) -> tuple[Any, int]:
        """Convert the problem payload into a Flask response tuple."""

        return jsonify(self.as_dict()), self.status


def problem_response(
    error: str,
    *,
    status: int,
    message: str | None = None,
    **extra: Any,
) -> ProblemResponse:
    """Convenience factory mirroring Flask's ``jsonify`` interface."""

    additional: Mapping[str, Any] | None = extra or None
    return ProblemResponse(error=error, status=status, message=message, extra=additional)


def problem_for_engine_error(error: PayrollEngineError) -> ProblemResponse:
    """Map a calculation failure onto its problem payload."""

    if isinstance(error, ConfigNotFound):
        return problem_response(
            "config_not_found", status=HTTPStatus.NOT_FOUND, message=str(error), year=error.year
        )
    if isinstance(error, InvalidRuleConfiguration):
        return problem_response(
            "invalid_rule",
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            message=str(error),
            rule=error.rule_name,
        )
    if isinstance(error, NegativeInputRejected):
        return problem_response(
            "negative_input",
            status=HTTPStatus.BAD_REQUEST,
            message=str(error),
            field=error.field_name,
        )
    if isinstance(error, UnknownAllowanceCode):
        return problem_response(
            "unknown_allowance_code",
            status=HTTPStatus.BAD_REQUEST,
            message=str(error),
            code=error.code,
        )
    return problem_response("calculation_error", status=HTTPStatus.BAD_REQUEST, message=str(error))


__all__ = ["ProblemResponse", "problem_for_engine_error", "problem_response"]
