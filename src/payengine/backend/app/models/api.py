"""Pydantic models describing the public API surface."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from payengine.backend.app.services.calculators import (
    AllowanceRule,
    DeductionRule,
    PayFrequency,
)

__all__ = [
    "AllowanceLineEntry",
    "DeductionLineEntry",
    "DeductionRequest",
    "DeductionSummaryResponse",
    "PayslipRequest",
    "PayslipResponse",
    "format_validation_error",
]


class _FrequencyMixin(BaseModel):
    @field_validator("pay_frequency", mode="before", check_fields=False)
    @classmethod
    def _parse_frequency(cls, value: Any) -> PayFrequency:
        if value is None:
            return PayFrequency.MONTHLY
        return PayFrequency.parse(value)

    @field_validator("allowance_code", mode="before", check_fields=False)
    @classmethod
    def _normalise_code(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped.upper() or None
        return value


class DeductionRequest(_FrequencyMixin):
    """Statutory deductions for an annual income in a single pay period."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    annual_income: Decimal
    tax_year: int
    pay_frequency: PayFrequency = PayFrequency.MONTHLY
    allowance_code: str | None = None


class PayslipRequest(_FrequencyMixin):
    """Everything needed to produce one itemised payslip."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    employee_id: str | int | None = None
    tax_year: int
    annual_basic_salary: Decimal
    pay_frequency: PayFrequency = PayFrequency.MONTHLY
    allowance_code: str | None = None
    hourly_rate: Decimal = Decimal(0)
    hours: Decimal = Decimal(0)
    overtime_rate: Decimal = Decimal(0)
    overtime_hours: Decimal = Decimal(0)
    hours_unit: Literal["period", "annual"] = "period"
    allowances: tuple[AllowanceRule, ...] = ()
    deductions: tuple[DeductionRule, ...] = ()
    period_start: date | None = None
    period_end: date | None = None

    @model_validator(mode="after")
    def _validate_period(self) -> "PayslipRequest":
        if (
            self.period_start is not None
            and self.period_end is not None
            and self.period_end < self.period_start
        ):
            raise ValueError("period_end must not be earlier than period_start")
        return self


class AllowanceLineEntry(BaseModel):
    """Resolved allowance line in the response."""

    model_config = ConfigDict(extra="forbid")

    name: str
    kind: str
    amount: float
    taxable: bool


class DeductionLineEntry(BaseModel):
    """Resolved deduction line in the response."""

    model_config = ConfigDict(extra="forbid")

    name: str
    kind: str
    amount: float
    pre_tax: bool
    statutory: bool


class DeductionSummaryResponse(BaseModel):
    """Statutory deductions for one pay period."""

    model_config = ConfigDict(extra="forbid")

    tax_year: int
    pay_frequency: str
    allowance_code: str | None = None
    annual_gross_salary: float
    gross_salary_for_period: float
    personal_allowance: float
    taxable_income: float
    income_tax: float
    national_insurance: float
    total_deductions: float
    net_salary: float
    breakdown: dict[str, float] = Field(default_factory=dict)


class PayslipResponse(BaseModel):
    """Full itemised payslip produced by the calculation service."""

    model_config = ConfigDict(extra="forbid")

    employee_id: str | int | None = None
    tax_year: int
    pay_frequency: str
    allowance_code: str | None = None
    annual_gross_pay: float
    basic_pay: float
    gross_pay: float
    personal_allowance: float
    taxable_income: float
    income_tax: float
    national_insurance: float
    total_tax: float
    total_allowances: float
    taxable_allowances: float
    total_deductions: float
    pre_tax_deductions: float
    net_pay: float
    allowances: list[AllowanceLineEntry]
    deductions: list[DeductionLineEntry]
    breakdown: dict[str, float]
    working_days: int | None = None


def format_validation_error(error: ValidationError) -> str:
    """Return a concise human-readable description of validation issues."""

    messages: list[str] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)

    details = "; ".join(messages) if messages else str(error)
    return f"Invalid calculation payload: {details}"
