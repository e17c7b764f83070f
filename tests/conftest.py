"""Test configuration utilities and shared fixtures."""

import sys
from pathlib import Path

# Ensure the ``src`` directory is importable when tests are executed without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402
from flask import Flask  # noqa: E402
from flask.testing import FlaskClient  # noqa: E402

from payengine.backend.app import create_app  # noqa: E402
from payengine.backend.config.year_config import (  # noqa: E402
    StaticConfigProvider,
    TaxYearConfig,
)

FLAT_RATE_YEAR = 2090


def build_flat_rate_config(year: int = FLAT_RATE_YEAR) -> TaxYearConfig:
    """A single 20% band above the allowance and 12% insurance above £12,570."""

    return TaxYearConfig.model_validate(
        {
            "year": year,
            "label": "flat-rate",
            "personal_allowance": {
                "base": "12570",
                "taper_threshold": "100000",
                "taper_rate": "0.5",
            },
            "allowance_codes": {
                "1257L": {"mode": "tapered"},
                "standard": {"mode": "tapered"},
                "0T": {"mode": "override", "amount": "0"},
            },
            "default_allowance_code": "1257L",
            "income_tax": {
                "bands": [
                    {"lower": "0", "rate": "0", "label": "personal_allowance"},
                    {"lower": "12570", "rate": "0.20", "label": "basic_rate"},
                ]
            },
            "national_insurance": {
                "bands": [
                    {"lower": "0", "rate": "0", "label": "below_primary_threshold"},
                    {"lower": "12570", "rate": "0.12", "label": "main_rate"},
                ]
            },
        }
    )


@pytest.fixture()
def flat_config() -> TaxYearConfig:
    """Return the flat-rate configuration used by the worked examples."""

    return build_flat_rate_config()


@pytest.fixture()
def flat_provider(flat_config: TaxYearConfig) -> StaticConfigProvider:
    """Provider serving only the flat-rate configuration."""

    return StaticConfigProvider([flat_config])


@pytest.fixture()
def app() -> Flask:
    """Return a configured Flask application for integration tests."""

    application = create_app()
    application.config.update(TESTING=True)
    return application


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Provide a test client bound to the configured Flask app."""

    return app.test_client()
