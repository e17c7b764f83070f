"""Expose tax year configuration to payroll collaborators.

Payslip management and reporting read the thresholds, bands, and allowance
codes from here so that forms and audit views show the figures the engine
actually used, without duplicating them.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from flask import Blueprint, current_app, jsonify

from payengine.backend.app.services.calculators import PayFrequency, format_percentage
from payengine.backend.app.services.calculators.bands import band_label
from payengine.backend.config.year_config import (
    DEFAULT_PROVIDER,
    TaxBand,
    TaxYearConfig,
    TaxYearConfigProvider,
)
from payengine.backend.version import get_project_version

blueprint = Blueprint("config", __name__, url_prefix="/api/v1/config")


def _provider() -> TaxYearConfigProvider:
    settings = current_app.extensions.get("payengine", {})
    return settings.get("provider") or DEFAULT_PROVIDER


def get_configuration_metadata(provider: TaxYearConfigProvider | None = None) -> dict[str, Any]:
    """Expose runtime metadata derived from the configured tax years."""

    supported_years = list((provider or DEFAULT_PROVIDER).years())
    default_year = supported_years[-1] if supported_years else None
    return {
        "version": get_project_version(),
        "supported_years": supported_years,
        "default_year": default_year,
    }


def _serialise_bands(bands: Sequence[TaxBand]) -> list[dict[str, Any]]:
    serialised: list[dict[str, Any]] = []
    for index, band in enumerate(bands):
        upper = bands[index + 1].lower_bound if index + 1 < len(bands) else None
        serialised.append(
            {
                "label": band_label(band, index),
                "lower": float(band.lower_bound),
                "upper": float(upper) if upper is not None else None,
                "rate": float(band.rate),
                "rate_display": format_percentage(band.rate),
            }
        )
    return serialised


def _serialise_year(config: TaxYearConfig) -> dict[str, Any]:
    return {
        "year": config.year,
        "label": config.label,
        "personal_allowance": {
            "base": float(config.personal_allowance_base),
            "taper_threshold": float(config.taper_threshold),
            "taper_rate": float(config.taper_rate),
        },
        "allowance_codes": {
            code: {
                "mode": entry.mode,
                "amount": float(entry.amount) if entry.amount is not None else None,
                "description": entry.description,
            }
            for code, entry in sorted(config.allowance_codes.items())
        },
        "default_allowance_code": config.default_allowance_code,
        "income_tax": {"bands": _serialise_bands(config.income_tax_bands)},
        "national_insurance": {"bands": _serialise_bands(config.insurance_bands)},
        "pay_frequencies": {
            frequency.value: frequency.periods_per_year for frequency in PayFrequency
        },
    }


@blueprint.get("/meta")
def get_application_metadata() -> tuple[Any, int]:
    """Expose lightweight application metadata such as the version identifier."""

    payload = get_configuration_metadata(_provider())
    return jsonify(payload), 200


@blueprint.get("/years")
def list_years() -> tuple[Any, int]:
    """Return all configured years with their bands and allowance codes."""

    provider = _provider()
    metadata = get_configuration_metadata(provider)
    payload = {
        "years": [_serialise_year(provider.get(year)) for year in metadata["supported_years"]],
        "default_year": metadata["default_year"],
        "supported_years": metadata["supported_years"],
    }
    return jsonify(payload), 200


@blueprint.get("/<int:year>")
def get_year(year: int) -> tuple[Any, int]:
    """Return the configuration registered for ``year``."""

    return jsonify(_serialise_year(_provider().get(year))), 200
