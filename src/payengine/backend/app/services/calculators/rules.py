"""Allowance and deduction rules and their resolution into payslip lines.

Rules are immutable configuration supplied with each request. Every rule kind
has its own resolver registered through :func:`functools.singledispatch`, so
adding a kind means adding a model and a resolver rather than another branch
in a shared conditional.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import singledispatch
from typing import Annotated, Any, Callable, Iterable, Literal, Union

from pydantic import Field

from payengine.backend.config.schema import ImmutableModel
from payengine.backend.errors import InvalidRuleConfiguration

from .utils import ZERO, to_decimal


@dataclass(frozen=True)
class FormulaContext:
    """Inputs handed to an externally supplied formula."""

    employee_id: Any
    base_salary: Decimal
    period_start: date | None
    period_end: date | None


FormulaEvaluator = Callable[[str, FormulaContext], Union[Decimal, int, float, str]]


class _Rule(ImmutableModel):
    name: str
    active: bool = True
    effective_from: date | None = None
    effective_to: date | None = None

    def applies_to(self, period_start: date | None, period_end: date | None) -> bool:
        """Return ``True`` when the rule is active during the pay period."""

        if not self.active:
            return False
        if self.effective_from is not None and period_end is not None:
            if self.effective_from > period_end:
                return False
        if self.effective_to is not None and period_start is not None:
            if self.effective_to < period_start:
                return False
        return True


class FixedAllowance(_Rule):
    kind: Literal["fixed"] = "fixed"
    amount: Decimal
    taxable: bool = True


class PercentageAllowance(_Rule):
    kind: Literal["percentage"] = "percentage"
    ratio: Decimal
    taxable: bool = True


class FormulaAllowance(_Rule):
    kind: Literal["formula"] = "formula"
    formula: str
    taxable: bool = True


class FixedDeduction(_Rule):
    kind: Literal["fixed"] = "fixed"
    amount: Decimal
    pre_tax: bool = False


class PercentageDeduction(_Rule):
    kind: Literal["percentage"] = "percentage"
    ratio: Decimal
    pre_tax: bool = False


class TaxDeduction(_Rule):
    """Mirrors the period's income tax withholding as a payslip line."""

    kind: Literal["tax"] = "tax"
    pre_tax: bool = False


class InsuranceDeduction(_Rule):
    """Mirrors the period's national insurance contribution as a payslip line."""

    kind: Literal["insurance"] = "insurance"
    pre_tax: bool = False


AllowanceRule = Annotated[
    Union[FixedAllowance, PercentageAllowance, FormulaAllowance],
    Field(discriminator="kind"),
]
DeductionRule = Annotated[
    Union[FixedDeduction, PercentageDeduction, TaxDeduction, InsuranceDeduction],
    Field(discriminator="kind"),
]


@dataclass(frozen=True)
class AllowanceLine:
    name: str
    kind: str
    amount: Decimal
    taxable: bool


@dataclass(frozen=True)
class DeductionLine:
    name: str
    kind: str
    amount: Decimal
    pre_tax: bool
    statutory: bool = False


@dataclass(frozen=True)
class AllowanceContext:
    """Values an allowance rule resolves against."""

    base: Decimal
    formula_context: FormulaContext | None = None
    formula_evaluator: FormulaEvaluator | None = None


@dataclass(frozen=True)
class DeductionContext:
    """Values a deduction rule resolves against.

    ``income_tax`` and ``national_insurance`` are the period figures already
    computed for the same request.
    """

    base: Decimal
    income_tax: Decimal = ZERO
    national_insurance: Decimal = ZERO


def _non_negative_amount(rule: _Rule, amount: Decimal) -> Decimal:
    if amount < 0:
        raise InvalidRuleConfiguration(rule.name, f"fixed amount {amount} is negative")
    return amount


def _non_negative_ratio(rule: _Rule, ratio: Decimal) -> Decimal:
    if ratio < 0:
        raise InvalidRuleConfiguration(rule.name, f"percentage ratio {ratio} is negative")
    return ratio


@singledispatch
def allowance_amount(rule: Any, context: AllowanceContext) -> Decimal:
    """Return the unrounded amount for an allowance ``rule``."""

    raise InvalidRuleConfiguration(
        getattr(rule, "name", "<unnamed>"), f"unsupported allowance rule {type(rule).__name__}"
    )


@allowance_amount.register
def _(rule: FixedAllowance, context: AllowanceContext) -> Decimal:
    return _non_negative_amount(rule, rule.amount)


@allowance_amount.register
def _(rule: PercentageAllowance, context: AllowanceContext) -> Decimal:
    return context.base * _non_negative_ratio(rule, rule.ratio)


@allowance_amount.register
def _(rule: FormulaAllowance, context: AllowanceContext) -> Decimal:
    if context.formula_evaluator is None or context.formula_context is None:
        raise InvalidRuleConfiguration(
            rule.name, f"no evaluator available for formula '{rule.formula}'"
        )
    raw = context.formula_evaluator(rule.formula, context.formula_context)
    try:
        amount = to_decimal(raw, rule.name)
    except ValueError as exc:
        raise InvalidRuleConfiguration(
            rule.name, f"formula '{rule.formula}' returned a non-numeric value"
        ) from exc
    if amount < 0:
        raise InvalidRuleConfiguration(
            rule.name, f"formula '{rule.formula}' returned a negative amount"
        )
    return amount


@singledispatch
def deduction_amount(rule: Any, context: DeductionContext) -> Decimal:
    """Return the unrounded amount for a deduction ``rule``."""

    raise InvalidRuleConfiguration(
        getattr(rule, "name", "<unnamed>"), f"unsupported deduction rule {type(rule).__name__}"
    )


@deduction_amount.register
def _(rule: FixedDeduction, context: DeductionContext) -> Decimal:
    return _non_negative_amount(rule, rule.amount)


@deduction_amount.register
def _(rule: PercentageDeduction, context: DeductionContext) -> Decimal:
    return context.base * _non_negative_ratio(rule, rule.ratio)


@deduction_amount.register
def _(rule: TaxDeduction, context: DeductionContext) -> Decimal:
    return context.income_tax


@deduction_amount.register
def _(rule: InsuranceDeduction, context: DeductionContext) -> Decimal:
    return context.national_insurance


def resolve_allowance(rule: Any, context: AllowanceContext) -> AllowanceLine:
    return AllowanceLine(
        name=rule.name,
        kind=rule.kind,
        amount=allowance_amount(rule, context),
        taxable=rule.taxable,
    )


def resolve_deduction(rule: Any, context: DeductionContext) -> DeductionLine:
    return DeductionLine(
        name=rule.name,
        kind=rule.kind,
        amount=deduction_amount(rule, context),
        pre_tax=rule.pre_tax,
        statutory=isinstance(rule, (TaxDeduction, InsuranceDeduction)),
    )


def resolve_allowances(
    rules: Iterable[Any],
    context: AllowanceContext,
    *,
    period_start: date | None = None,
    period_end: date | None = None,
) -> tuple[AllowanceLine, ...]:
    """Resolve every allowance in effect for the pay period.

    A rule that cannot be resolved fails the whole call.
    """

    return tuple(
        resolve_allowance(rule, context)
        for rule in rules
        if rule.applies_to(period_start, period_end)
    )


def resolve_deductions(
    rules: Iterable[Any],
    context: DeductionContext,
    *,
    period_start: date | None = None,
    period_end: date | None = None,
) -> tuple[DeductionLine, ...]:
    """Resolve every deduction in effect for the pay period."""

    return tuple(
        resolve_deduction(rule, context)
        for rule in rules
        if rule.applies_to(period_start, period_end)
    )


__all__ = [
    "AllowanceContext",
    "AllowanceLine",
    "AllowanceRule",
    "DeductionContext",
    "DeductionLine",
    "DeductionRule",
    "FixedAllowance",
    "FixedDeduction",
    "FormulaAllowance",
    "FormulaContext",
    "FormulaEvaluator",
    "InsuranceDeduction",
    "PercentageAllowance",
    "PercentageDeduction",
    "TaxDeduction",
    "allowance_amount",
    "deduction_amount",
    "resolve_allowance",
    "resolve_allowances",
    "resolve_deduction",
    "resolve_deductions",
]
