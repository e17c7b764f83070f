"""Application factory for PayEngine backend services."""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify
from pydantic import ValidationError
from werkzeug.exceptions import BadRequest

from payengine.backend.app.models import format_validation_error
from payengine.backend.app.services.calculators import FormulaEvaluator
from payengine.backend.config.year_config import TaxYearConfigProvider
from payengine.backend.errors import PayrollEngineError

from .http import problem_for_engine_error, problem_response
from .routes import register_routes
from .routes.config import get_configuration_metadata

_LOGGER = logging.getLogger(__name__)


def create_app(
    provider: TaxYearConfigProvider | None = None,
    formula_evaluator: FormulaEvaluator | None = None,
) -> Flask:
    """Create and configure the Flask application instance.

    ``provider`` replaces the YAML-backed tax year configuration and
    ``formula_evaluator`` resolves formula allowances; both are optional.
    """

    app = Flask(__name__)
    app.extensions["payengine"] = {
        "provider": provider,
        "formula_evaluator": formula_evaluator,
    }

    register_routes(app)

    @app.route("/health", methods=["GET"])
    def health_check() -> Any:
        """Simple health check endpoint for infrastructure monitoring."""

        payload = {"status": "ok", **get_configuration_metadata(provider)}
        return jsonify(payload)

    @app.errorhandler(BadRequest)
    def handle_bad_request(error: BadRequest):
        """Return consistent JSON responses for malformed payloads."""

        message = error.description or "Invalid request"
        return problem_response("bad_request", status=400, message=message).to_response()

    @app.errorhandler(PayrollEngineError)
    def handle_engine_error(error: PayrollEngineError):
        """Surface typed calculation failures with their own error codes."""

        problem = problem_for_engine_error(error)
        _LOGGER.info("Calculation rejected (%s): %s", problem.error, error)
        return problem.to_response()

    @app.errorhandler(ValidationError)
    def handle_model_validation_error(error: ValidationError):
        """Report request model failures raised outside the service layer."""

        return problem_response(
            "validation_error", status=400, message=format_validation_error(error)
        ).to_response()

    @app.errorhandler(ValueError)
    def handle_value_error(error: ValueError):
        """Gracefully surface domain validation errors to clients."""

        return problem_response(
            "validation_error", status=400, message=str(error)
        ).to_response()

    return app
