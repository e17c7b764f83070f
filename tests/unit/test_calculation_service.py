"""Unit tests for the payslip and deduction orchestration."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from payengine.backend.app.services import calculation_service
from payengine.backend.app.services.calculation_service import (
    build_deduction_payload,
    build_payslip_payload,
    calculate_deductions,
    calculate_deductions_payload,
    calculate_payslip,
)
from payengine.backend.app.services.calculators import PayFrequency
from payengine.backend.config.year_config import StaticConfigProvider, TaxYearConfig
from payengine.backend.errors import (
    ConfigNotFound,
    InvalidRuleConfiguration,
    NegativeInputRejected,
    UnknownAllowanceCode,
)

FLAT_RATE_YEAR = 2090


def _payslip(provider: StaticConfigProvider, **overrides: Any):
    payload: dict[str, Any] = {
        "employee_id": "EMP-1",
        "tax_year": FLAT_RATE_YEAR,
        "annual_basic_salary": "30000",
        "pay_frequency": "Monthly",
        "allowance_code": "standard",
    }
    payload.update(overrides)
    return calculate_payslip(payload, provider=provider)


def test_thirty_thousand_monthly(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(flat_provider)

    assert result.gross_pay == Decimal("2500.00")
    assert result.basic_pay == Decimal("2500.00")
    assert result.income_tax == Decimal("290.50")
    assert result.national_insurance == Decimal("174.30")
    assert result.total_tax == Decimal("464.80")
    assert result.net_pay == Decimal("2035.20")
    assert result.personal_allowance == Decimal("12570.00")
    assert result.taxable_income == Decimal("17430.00")
    assert result.allowance_code == "STANDARD"


def test_fifty_thousand_monthly(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(flat_provider, annual_basic_salary="50000")

    assert result.income_tax == Decimal("623.83")
    assert abs(result.income_tax - Decimal("624.00")) < 1
    assert result.national_insurance == Decimal("374.30")


def test_taper_reduces_allowance_above_threshold(
    flat_provider: StaticConfigProvider,
) -> None:
    result = _payslip(flat_provider, annual_basic_salary="120000")

    assert result.personal_allowance == Decimal("2570.00")
    assert result.taxable_income == Decimal("117430.00")
    assert result.income_tax == Decimal("1957.17")
    # Insurance bands are unaffected by the taper.
    assert result.national_insurance == Decimal("1074.30")


def test_income_at_taper_threshold_keeps_full_allowance(
    flat_provider: StaticConfigProvider,
) -> None:
    result = _payslip(flat_provider, annual_basic_salary="100000")

    assert result.personal_allowance == Decimal("12570.00")


def test_zero_salary_only_counts_fixed_lines(
    flat_provider: StaticConfigProvider,
) -> None:
    result = _payslip(
        flat_provider,
        annual_basic_salary="0",
        allowances=[
            {"kind": "fixed", "name": "Travel", "amount": "100"},
            {"kind": "percentage", "name": "Housing", "ratio": "0.1"},
        ],
        deductions=[
            {"kind": "fixed", "name": "Union", "amount": "30.5"},
            {"kind": "tax", "name": "PAYE"},
        ],
    )

    assert result.income_tax == 0
    assert result.national_insurance == 0
    assert result.total_allowances == Decimal("100.00")
    assert result.total_deductions == Decimal("30.50")
    assert result.net_pay == Decimal("69.50")


def test_negative_net_pay_is_not_clamped(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(
        flat_provider,
        annual_basic_salary="0",
        deductions=[{"kind": "fixed", "name": "Recovery", "amount": "200"}],
    )

    assert result.net_pay == Decimal("-200.00")


def test_rule_lines_and_totals(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(
        flat_provider,
        allowances=[
            {"kind": "percentage", "name": "Housing", "ratio": "0.10"},
            {"kind": "fixed", "name": "Meal", "amount": "40", "taxable": False},
        ],
        deductions=[
            {"kind": "percentage", "name": "Pension", "ratio": "0.05", "pre_tax": True},
            {"kind": "tax", "name": "PAYE"},
            {"kind": "insurance", "name": "NI"},
        ],
    )

    assert [line.name for line in result.allowances] == ["Housing", "Meal"]
    assert result.allowances[0].amount == Decimal("250.00")
    assert result.total_allowances == Decimal("290.00")
    assert result.taxable_allowances == Decimal("250.00")

    amounts = {line.name: line.amount for line in result.deductions}
    assert amounts == {
        "Pension": Decimal("125.00"),
        "PAYE": Decimal("290.50"),
        "NI": Decimal("174.30"),
    }
    # Statutory mirror lines are itemised but not counted twice.
    assert result.total_deductions == Decimal("125.00")
    assert result.pre_tax_deductions == Decimal("125.00")
    assert result.net_pay == Decimal("2500.00") + Decimal("290.00") - Decimal(
        "125.00"
    ) - Decimal("464.80")


def test_invalid_rule_fails_whole_payslip(flat_provider: StaticConfigProvider) -> None:
    with pytest.raises(InvalidRuleConfiguration):
        _payslip(
            flat_provider,
            deductions=[
                {"kind": "fixed", "name": "Union", "amount": "10"},
                {"kind": "fixed", "name": "Broken", "amount": "-10"},
            ],
        )


def test_formula_allowance_receives_period_context(
    flat_provider: StaticConfigProvider,
) -> None:
    seen: list[Any] = []

    def evaluator(name: str, context: Any) -> Decimal:
        seen.append((name, context))
        return context.base_salary * Decimal("0.01")

    result = calculate_payslip(
        {
            "employee_id": 17,
            "tax_year": FLAT_RATE_YEAR,
            "annual_basic_salary": "30000",
            "allowances": [{"kind": "formula", "name": "Bonus", "formula": "one_percent"}],
            "period_start": "2090-05-01",
            "period_end": "2090-05-31",
        },
        provider=flat_provider,
        formula_evaluator=evaluator,
    )

    assert result.allowances[0].amount == Decimal("25.00")
    name, context = seen[0]
    assert name == "one_percent"
    assert context.employee_id == 17
    assert context.base_salary == Decimal("2500.00")
    assert context.period_start == date(2090, 5, 1)


def test_hourly_and_overtime_pay_per_period(
    flat_provider: StaticConfigProvider,
) -> None:
    result = _payslip(
        flat_provider,
        annual_basic_salary="0",
        hourly_rate="15",
        hours="160",
        overtime_rate="22.5",
        overtime_hours="10",
    )

    assert result.annual_gross_pay == Decimal("31500.00")
    assert result.basic_pay == Decimal("0.00")
    assert result.gross_pay == Decimal("2625.00")
    assert result.income_tax == Decimal("315.50")
    assert result.national_insurance == Decimal("189.30")


def test_hourly_pay_in_annual_units(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(
        flat_provider,
        annual_basic_salary="0",
        hourly_rate="15",
        hours="2000",
        hours_unit="annual",
    )

    assert result.annual_gross_pay == Decimal("30000.00")
    assert result.gross_pay == Decimal("2500.00")


@pytest.mark.parametrize(
    "field",
    ["annual_basic_salary", "hourly_rate", "hours", "overtime_rate", "overtime_hours"],
)
def test_negative_inputs_are_rejected(
    flat_provider: StaticConfigProvider, field: str
) -> None:
    with pytest.raises(NegativeInputRejected) as excinfo:
        _payslip(flat_provider, **{field: "-1"})

    assert excinfo.value.field_name == field


def test_negative_input_rejected_before_config_lookup() -> None:
    empty = StaticConfigProvider([])

    with pytest.raises(NegativeInputRejected):
        calculate_payslip(
            {"tax_year": 1999, "annual_basic_salary": "-5"}, provider=empty
        )


def test_unknown_year_raises_config_not_found(
    flat_provider: StaticConfigProvider,
) -> None:
    with pytest.raises(ConfigNotFound) as excinfo:
        _payslip(flat_provider, tax_year=1999)

    assert excinfo.value.year == 1999


def test_unknown_allowance_code(flat_provider: StaticConfigProvider) -> None:
    with pytest.raises(UnknownAllowanceCode):
        _payslip(flat_provider, allowance_code="K475")


def test_override_code_removes_allowance(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(flat_provider, allowance_code="0t")

    assert result.personal_allowance == Decimal("0.00")
    assert result.income_tax == Decimal("500.00")
    assert result.national_insurance == Decimal("174.30")


def test_default_code_used_when_omitted(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(flat_provider, allowance_code=None)

    assert result.allowance_code == "1257L"
    assert result.income_tax == Decimal("290.50")


def test_breakdown_lists_touched_bands(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(flat_provider)

    assert dict(result.breakdown) == {
        "income_tax.personal_allowance": Decimal("0.00"),
        "income_tax.basic_rate": Decimal("290.50"),
        "national_insurance.below_primary_threshold": Decimal("0.00"),
        "national_insurance.main_rate": Decimal("174.30"),
    }


def test_breakdown_skips_untouched_bands(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(flat_provider, annual_basic_salary="10000")

    assert set(result.breakdown) == {
        "income_tax.personal_allowance",
        "national_insurance.below_primary_threshold",
    }


def test_breakdown_keys_are_stable_across_allowance_codes(
    flat_config: TaxYearConfig,
) -> None:
    payload = flat_config.model_dump(by_alias=True)
    for field in ("income_tax_bands", "insurance_bands"):
        for band in payload[field]:
            band.pop("label")
    provider = StaticConfigProvider([TaxYearConfig.model_validate(payload)])

    standard = _payslip(provider, allowance_code="1257L")
    no_allowance = _payslip(provider, allowance_code="0T")

    assert dict(standard.breakdown) == {
        "income_tax.band_1": Decimal("0.00"),
        "income_tax.band_2": Decimal("290.50"),
        "national_insurance.band_1": Decimal("0.00"),
        "national_insurance.band_2": Decimal("174.30"),
    }
    assert dict(no_allowance.breakdown) == {
        "income_tax.band_2": Decimal("500.00"),
        "national_insurance.band_1": Decimal("0.00"),
        "national_insurance.band_2": Decimal("174.30"),
    }


def test_working_days_counted_for_period(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(
        flat_provider, period_start="2024-05-01", period_end="2024-05-31"
    )

    assert result.working_days == 23


def test_working_days_absent_without_dates(flat_provider: StaticConfigProvider) -> None:
    assert _payslip(flat_provider).working_days is None


def test_period_end_before_start_is_invalid(
    flat_provider: StaticConfigProvider,
) -> None:
    with pytest.raises(ValueError, match="period_end"):
        _payslip(flat_provider, period_start="2024-05-31", period_end="2024-05-01")


def test_weekly_frequency(flat_provider: StaticConfigProvider) -> None:
    result = _payslip(flat_provider, pay_frequency="weekly")

    assert result.pay_frequency is PayFrequency.WEEKLY
    assert result.gross_pay == Decimal("576.92")
    assert result.income_tax == Decimal("67.04")
    assert result.national_insurance == Decimal("40.22")


def test_unrecognised_frequency(flat_provider: StaticConfigProvider) -> None:
    with pytest.raises(ValueError, match="pay frequency"):
        _payslip(flat_provider, pay_frequency="fortnightly-ish")


def test_malformed_payload_is_reported(flat_provider: StaticConfigProvider) -> None:
    with pytest.raises(ValueError, match="Invalid calculation payload"):
        calculate_payslip({"tax_year": FLAT_RATE_YEAR}, provider=flat_provider)

    with pytest.raises(ValueError, match="mapping"):
        calculate_payslip(["not", "a", "mapping"], provider=flat_provider)  # type: ignore[arg-type]


def test_shipped_configuration_is_default_provider() -> None:
    result = calculate_payslip(
        {"tax_year": 2024, "annual_basic_salary": "60000", "pay_frequency": "monthly"}
    )

    assert result.income_tax == Decimal("952.67")
    assert result.national_insurance == Decimal("267.55")
    assert result.breakdown["income_tax.higher_rate"] == Decimal("324.33")
    assert result.breakdown["national_insurance.upper_rate"] == Decimal("16.22")


def test_calculate_deductions_summary(flat_provider: StaticConfigProvider) -> None:
    summary = calculate_deductions(
        Decimal("30000"), "standard", "Monthly", FLAT_RATE_YEAR, provider=flat_provider
    )

    assert summary.income_tax == Decimal("290.50")
    assert summary.national_insurance == Decimal("174.30")
    assert summary.gross_salary_for_period == Decimal("2500.00")
    assert summary.total_deductions == Decimal("464.80")
    assert summary.net_salary == Decimal("2035.20")


def test_calculate_deductions_rejects_negative_income(
    flat_provider: StaticConfigProvider,
) -> None:
    with pytest.raises(NegativeInputRejected):
        calculate_deductions(-1, None, "monthly", FLAT_RATE_YEAR, provider=flat_provider)


def test_calculate_deductions_payload(flat_provider: StaticConfigProvider) -> None:
    summary = calculate_deductions_payload(
        {"annual_income": 50000, "tax_year": FLAT_RATE_YEAR, "pay_frequency": "annual"},
        provider=flat_provider,
    )

    assert summary.income_tax == Decimal("7486.00")
    assert summary.national_insurance == Decimal("4491.60")


def test_payloads_serialise_to_floats(flat_provider: StaticConfigProvider) -> None:
    payslip = build_payslip_payload(
        _payslip(flat_provider, deductions=[{"kind": "tax", "name": "PAYE"}])
    )
    deductions = build_deduction_payload(
        calculate_deductions(30000, None, "monthly", FLAT_RATE_YEAR, provider=flat_provider)
    )

    assert payslip["net_pay"] == pytest.approx(2035.20)
    assert payslip["pay_frequency"] == "monthly"
    assert payslip["deductions"][0]["statutory"] is True
    assert "working_days" not in payslip
    assert deductions["net_salary"] == pytest.approx(2035.20)
    assert deductions["breakdown"]["income_tax.basic_rate"] == pytest.approx(290.50)


def test_profiling_logs_timings(
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
    flat_provider: StaticConfigProvider,
) -> None:
    monkeypatch.setenv("PAYENGINE_PROFILE_CALCULATIONS", "true")
    caplog.set_level(logging.DEBUG, logger=calculation_service.__name__)

    _payslip(flat_provider)

    assert any("calculate_payslip timings" in record.message for record in caplog.records)
