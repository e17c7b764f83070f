"""Typed request/response models shared across the calculation services.

Requests arrive as Pydantic models so validation happens once at the edge;
calculation results are frozen dataclasses holding exact ``Decimal`` figures
that callers persist, audit, or serialise through the response models.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from payengine.backend.app.services.calculators import (
    AllowanceLine,
    DeductionLine,
    PayFrequency,
)

from .api import (
    AllowanceLineEntry,
    DeductionLineEntry,
    DeductionRequest,
    DeductionSummaryResponse,
    PayslipRequest,
    PayslipResponse,
    format_validation_error,
)

__all__ = [
    "AllowanceLineEntry",
    "DeductionLineEntry",
    "DeductionRequest",
    "DeductionSummary",
    "DeductionSummaryResponse",
    "PayslipCalculationResult",
    "PayslipRequest",
    "PayslipResponse",
    "format_validation_error",
]


def _frozen_mapping() -> Mapping[str, Decimal]:
    return MappingProxyType({})


@dataclass(frozen=True)
class DeductionSummary:
    """Statutory deductions for one pay period, rounded to pence."""

    tax_year: int
    pay_frequency: PayFrequency
    allowance_code: str | None
    annual_gross_salary: Decimal
    gross_salary_for_period: Decimal
    personal_allowance: Decimal
    taxable_income: Decimal
    income_tax: Decimal
    national_insurance: Decimal
    breakdown: Mapping[str, Decimal] = field(default_factory=_frozen_mapping)

    @property
    def total_deductions(self) -> Decimal:
        return self.income_tax + self.national_insurance

    @property
    def net_salary(self) -> Decimal:
        return self.gross_salary_for_period - self.total_deductions


@dataclass(frozen=True)
class PayslipCalculationResult:
    """Itemised payslip for a single pay period.

    Period figures are rounded half-up to pence; totals and net pay derive
    from those rounded figures so the payslip adds up exactly. ``net_pay`` is
    never clamped: a negative value signals misconfigured deductions.
    """

    employee_id: Any
    tax_year: int
    pay_frequency: PayFrequency
    allowance_code: str | None
    annual_gross_pay: Decimal
    basic_pay: Decimal
    gross_pay: Decimal
    personal_allowance: Decimal
    taxable_income: Decimal
    income_tax: Decimal
    national_insurance: Decimal
    total_allowances: Decimal
    taxable_allowances: Decimal
    total_deductions: Decimal
    pre_tax_deductions: Decimal
    allowances: tuple[AllowanceLine, ...] = ()
    deductions: tuple[DeductionLine, ...] = ()
    breakdown: Mapping[str, Decimal] = field(default_factory=_frozen_mapping)
    working_days: int | None = None

    @property
    def total_tax(self) -> Decimal:
        return self.income_tax + self.national_insurance

    @property
    def net_pay(self) -> Decimal:
        return self.gross_pay + self.total_allowances - self.total_deductions - self.total_tax
