"""Orchestrate request validation, statutory deductions, and payslip lines.

The calculation service composes the year configuration with the band,
taper, apportionment, and rule calculators so that each of them stays a small
pure function. Everything here is synchronous and side-effect free apart from
optional debug timings, so any number of payslips can be calculated in
parallel against the shared, read-only configuration.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, replace
from decimal import Decimal
from time import perf_counter
from types import MappingProxyType
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from payengine.backend.app.models import (
    AllowanceLineEntry,
    DeductionLineEntry,
    DeductionRequest,
    DeductionSummary,
    DeductionSummaryResponse,
    PayslipCalculationResult,
    PayslipRequest,
    PayslipResponse,
    format_validation_error,
)
from payengine.backend.config.year_config import (
    DEFAULT_PROVIDER,
    TaxYearConfig,
    TaxYearConfigProvider,
)
from payengine.backend.errors import NegativeInputRejected

from .calculators import (
    AllowanceContext,
    BandPortion,
    DeductionContext,
    FormulaContext,
    FormulaEvaluator,
    PayFrequency,
    allocate_bands,
    annual_to_period,
    apply_personal_allowance,
    count_working_days,
    period_to_annual,
    resolve_allowances,
    resolve_deductions,
    resolve_personal_allowance,
    round_currency,
    to_decimal,
)
from .calculators.utils import ZERO

_LOGGER = logging.getLogger(__name__)

_RequestT = TypeVar("_RequestT", bound=BaseModel)


def _profiling_enabled() -> bool:
    """Return ``True`` when calculation profiling should be captured."""

    flag = os.getenv("PAYENGINE_PROFILE_CALCULATIONS", "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


@contextmanager
def _profile_section(name: str, store: dict[str, float] | None):
    """Capture the duration of a named section when profiling is enabled."""

    if store is None:
        yield
        return

    start = perf_counter()
    try:
        yield
    finally:
        store[name] = perf_counter() - start


def _coerce_request(payload: Any, model: type[_RequestT]) -> _RequestT:
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping):
        raise ValueError("Payload must be a mapping")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(format_validation_error(exc)) from exc


def _require_non_negative(field_name: str, value: Decimal) -> Decimal:
    if value < 0:
        raise NegativeInputRejected(field_name, value)
    return value


@dataclass(frozen=True)
class _StatutoryFigures:
    """Annual, unrounded income tax and insurance for one gross figure."""

    annual_gross: Decimal
    personal_allowance: Decimal
    tax_portions: tuple[BandPortion, ...]
    insurance_portions: tuple[BandPortion, ...]

    @property
    def taxable_income(self) -> Decimal:
        return max(ZERO, self.annual_gross - self.personal_allowance)

    @property
    def income_tax(self) -> Decimal:
        return sum((portion.contribution for portion in self.tax_portions), ZERO)

    @property
    def national_insurance(self) -> Decimal:
        return sum((portion.contribution for portion in self.insurance_portions), ZERO)


def _compute_statutory(
    annual_gross: Decimal, config: TaxYearConfig, allowance_code: str | None
) -> _StatutoryFigures:
    allowance = resolve_personal_allowance(annual_gross, config, allowance_code)
    tax_bands = apply_personal_allowance(config.income_tax_bands, allowance)
    return _StatutoryFigures(
        annual_gross=annual_gross,
        personal_allowance=allowance,
        tax_portions=allocate_bands(annual_gross, tax_bands),
        insurance_portions=allocate_bands(annual_gross, config.insurance_bands),
    )


def _build_breakdown(
    figures: _StatutoryFigures, frequency: PayFrequency
) -> Mapping[str, Decimal]:
    entries: dict[str, Decimal] = {}
    for prefix, portions in (
        ("income_tax", figures.tax_portions),
        ("national_insurance", figures.insurance_portions),
    ):
        for portion in portions:
            entries[f"{prefix}.{portion.label}"] = round_currency(
                annual_to_period(portion.contribution, frequency)
            )
    return MappingProxyType(entries)


def _effective_code(config: TaxYearConfig, allowance_code: str | None) -> str | None:
    if allowance_code:
        return allowance_code.strip().upper()
    return config.default_allowance_code


def calculate_deductions(
    annual_income: Decimal | int | float | str,
    allowance_code: str | None,
    pay_frequency: PayFrequency | str,
    tax_year: int,
    *,
    provider: TaxYearConfigProvider | None = None,
) -> DeductionSummary:
    """Return income tax and national insurance for one pay period."""

    income = _require_non_negative("annual_income", to_decimal(annual_income, "annual_income"))
    frequency = PayFrequency.parse(pay_frequency)
    config = (provider or DEFAULT_PROVIDER).get(tax_year)

    figures = _compute_statutory(income, config, allowance_code)

    return DeductionSummary(
        tax_year=config.year,
        pay_frequency=frequency,
        allowance_code=_effective_code(config, allowance_code),
        annual_gross_salary=round_currency(income),
        gross_salary_for_period=round_currency(annual_to_period(income, frequency)),
        personal_allowance=round_currency(figures.personal_allowance),
        taxable_income=round_currency(figures.taxable_income),
        income_tax=round_currency(annual_to_period(figures.income_tax, frequency)),
        national_insurance=round_currency(
            annual_to_period(figures.national_insurance, frequency)
        ),
        breakdown=_build_breakdown(figures, frequency),
    )


def calculate_deductions_payload(
    payload: Mapping[str, Any] | DeductionRequest,
    *,
    provider: TaxYearConfigProvider | None = None,
) -> DeductionSummary:
    """Validate a deduction request mapping and calculate it."""

    request = _coerce_request(payload, DeductionRequest)
    return calculate_deductions(
        request.annual_income,
        request.allowance_code,
        request.pay_frequency,
        request.tax_year,
        provider=provider,
    )


def calculate_payslip(
    payload: Mapping[str, Any] | PayslipRequest,
    *,
    provider: TaxYearConfigProvider | None = None,
    formula_evaluator: FormulaEvaluator | None = None,
) -> PayslipCalculationResult:
    """Compute a fully itemised payslip for the provided request."""

    request = _coerce_request(payload, PayslipRequest)

    timings: dict[str, float] | None = {} if _profiling_enabled() else None
    overall_start = perf_counter() if timings is not None else None

    annual_basic = _require_non_negative("annual_basic_salary", request.annual_basic_salary)
    hourly_rate = _require_non_negative("hourly_rate", request.hourly_rate)
    hours = _require_non_negative("hours", request.hours)
    overtime_rate = _require_non_negative("overtime_rate", request.overtime_rate)
    overtime_hours = _require_non_negative("overtime_hours", request.overtime_hours)

    config = (provider or DEFAULT_PROVIDER).get(request.tax_year)
    frequency = request.pay_frequency

    hourly_pay = hourly_rate * hours + overtime_rate * overtime_hours
    if request.hours_unit == "period":
        hourly_pay = period_to_annual(hourly_pay, frequency)
    annual_gross = annual_basic + hourly_pay

    with _profile_section("statutory", timings):
        figures = _compute_statutory(annual_gross, config, request.allowance_code)

    basic_pay = round_currency(annual_to_period(annual_basic, frequency))
    gross_pay = round_currency(annual_to_period(annual_gross, frequency))
    income_tax = round_currency(annual_to_period(figures.income_tax, frequency))
    national_insurance = round_currency(
        annual_to_period(figures.national_insurance, frequency)
    )

    with _profile_section("allowances", timings):
        allowance_context = AllowanceContext(
            base=annual_to_period(annual_basic, frequency),
            formula_context=FormulaContext(
                employee_id=request.employee_id,
                base_salary=basic_pay,
                period_start=request.period_start,
                period_end=request.period_end,
            ),
            formula_evaluator=formula_evaluator,
        )
        allowances = tuple(
            replace(line, amount=round_currency(line.amount))
            for line in resolve_allowances(
                request.allowances,
                allowance_context,
                period_start=request.period_start,
                period_end=request.period_end,
            )
        )

    with _profile_section("deductions", timings):
        deduction_context = DeductionContext(
            base=annual_to_period(annual_gross, frequency),
            income_tax=income_tax,
            national_insurance=national_insurance,
        )
        deductions = tuple(
            replace(line, amount=round_currency(line.amount))
            for line in resolve_deductions(
                request.deductions,
                deduction_context,
                period_start=request.period_start,
                period_end=request.period_end,
            )
        )

    # Statutory mirror lines are already counted in total_tax.
    configured_deductions = [line for line in deductions if not line.statutory]

    working_days: int | None = None
    if request.period_start is not None and request.period_end is not None:
        working_days = count_working_days(request.period_start, request.period_end)

    result = PayslipCalculationResult(
        employee_id=request.employee_id,
        tax_year=config.year,
        pay_frequency=frequency,
        allowance_code=_effective_code(config, request.allowance_code),
        annual_gross_pay=round_currency(annual_gross),
        basic_pay=basic_pay,
        gross_pay=gross_pay,
        personal_allowance=round_currency(figures.personal_allowance),
        taxable_income=round_currency(figures.taxable_income),
        income_tax=income_tax,
        national_insurance=national_insurance,
        total_allowances=sum((line.amount for line in allowances), ZERO),
        taxable_allowances=sum(
            (line.amount for line in allowances if line.taxable), ZERO
        ),
        total_deductions=sum((line.amount for line in configured_deductions), ZERO),
        pre_tax_deductions=sum(
            (line.amount for line in configured_deductions if line.pre_tax), ZERO
        ),
        allowances=allowances,
        deductions=deductions,
        breakdown=_build_breakdown(figures, frequency),
        working_days=working_days,
    )

    if timings is not None and overall_start is not None:
        timings["total"] = perf_counter() - overall_start
        _LOGGER.debug(
            "calculate_payslip timings (ms): %s",
            {name: round(duration * 1000, 3) for name, duration in timings.items()},
        )

    return result


def build_deduction_payload(summary: DeductionSummary) -> dict[str, Any]:
    """Serialise a :class:`DeductionSummary` into a JSON-ready mapping."""

    response = DeductionSummaryResponse(
        tax_year=summary.tax_year,
        pay_frequency=summary.pay_frequency.value,
        allowance_code=summary.allowance_code,
        annual_gross_salary=float(summary.annual_gross_salary),
        gross_salary_for_period=float(summary.gross_salary_for_period),
        personal_allowance=float(summary.personal_allowance),
        taxable_income=float(summary.taxable_income),
        income_tax=float(summary.income_tax),
        national_insurance=float(summary.national_insurance),
        total_deductions=float(summary.total_deductions),
        net_salary=float(summary.net_salary),
        breakdown={label: float(amount) for label, amount in summary.breakdown.items()},
    )
    return response.model_dump(mode="json", exclude_none=True)


def build_payslip_payload(result: PayslipCalculationResult) -> dict[str, Any]:
    """Serialise a :class:`PayslipCalculationResult` into a JSON-ready mapping."""

    response = PayslipResponse(
        employee_id=result.employee_id,
        tax_year=result.tax_year,
        pay_frequency=result.pay_frequency.value,
        allowance_code=result.allowance_code,
        annual_gross_pay=float(result.annual_gross_pay),
        basic_pay=float(result.basic_pay),
        gross_pay=float(result.gross_pay),
        personal_allowance=float(result.personal_allowance),
        taxable_income=float(result.taxable_income),
        income_tax=float(result.income_tax),
        national_insurance=float(result.national_insurance),
        total_tax=float(result.total_tax),
        total_allowances=float(result.total_allowances),
        taxable_allowances=float(result.taxable_allowances),
        total_deductions=float(result.total_deductions),
        pre_tax_deductions=float(result.pre_tax_deductions),
        net_pay=float(result.net_pay),
        allowances=[
            AllowanceLineEntry(
                name=line.name,
                kind=line.kind,
                amount=float(line.amount),
                taxable=line.taxable,
            )
            for line in result.allowances
        ],
        deductions=[
            DeductionLineEntry(
                name=line.name,
                kind=line.kind,
                amount=float(line.amount),
                pre_tax=line.pre_tax,
                statutory=line.statutory,
            )
            for line in result.deductions
        ],
        breakdown={label: float(amount) for label, amount in result.breakdown.items()},
        working_days=result.working_days,
    )
    return response.model_dump(mode="json", exclude_none=True)


__all__ = [
    "build_deduction_payload",
    "build_payslip_payload",
    "calculate_deductions",
    "calculate_deductions_payload",
    "calculate_payslip",
]
