"""Regression coverage ensuring calculator outputs stay stable."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from payengine.backend.app.services.calculation_service import (
    build_payslip_payload,
    calculate_payslip,
)

_DATA_PATH = Path(__file__).resolve().parents[1] / "data" / "regression_scenarios.json"


@pytest.mark.parametrize(
    "scenario",
    json.loads(_DATA_PATH.read_text("utf-8")),
    ids=lambda item: f"{item['name']}_{item['payload']['tax_year']}",
)
def test_calculate_payslip_matches_regression_scenario(
    scenario: dict[str, object],
) -> None:
    """The shipped tax years keep producing the recorded payslips."""

    expectations = dict(scenario["expectations"])
    breakdown_expectations = expectations.pop("breakdown", {})

    result = build_payslip_payload(calculate_payslip(scenario["payload"]))

    for key, value in expectations.items():
        assert result[key] == pytest.approx(value), key

    for label, value in breakdown_expectations.items():
        assert label in result["breakdown"], f"Missing breakdown for {label}"
        assert result["breakdown"][label] == pytest.approx(value)
