"""Domain-specific calculation helpers."""

from .apportionment import PayFrequency, annual_to_period, period_to_annual, periods_per_year
from .bands import BandPortion, allocate_bands, calculate_progressive_amount
from .rules import (
    AllowanceContext,
    AllowanceLine,
    AllowanceRule,
    DeductionContext,
    DeductionLine,
    DeductionRule,
    FormulaContext,
    FormulaEvaluator,
    resolve_allowances,
    resolve_deductions,
)
from .taper import apply_personal_allowance, resolve_personal_allowance, tapered_allowance
from .utils import count_working_days, format_percentage, round_currency, to_decimal

__all__ = [
    "AllowanceContext",
    "AllowanceLine",
    "AllowanceRule",
    "BandPortion",
    "DeductionContext",
    "DeductionLine",
    "DeductionRule",
    "FormulaContext",
    "FormulaEvaluator",
    "PayFrequency",
    "allocate_bands",
    "annual_to_period",
    "apply_personal_allowance",
    "calculate_progressive_amount",
    "count_working_days",
    "format_percentage",
    "period_to_annual",
    "periods_per_year",
    "resolve_allowances",
    "resolve_deductions",
    "resolve_personal_allowance",
    "round_currency",
    "tapered_allowance",
    "to_decimal",
]
