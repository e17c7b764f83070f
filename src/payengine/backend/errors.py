"""Typed errors raised by the payroll calculation engine."""

from __future__ import annotations


class PayrollEngineError(ValueError):
    """Base class for calculation failures surfaced to callers."""


class ConfigNotFound(PayrollEngineError, LookupError):
    """Raised when no configuration is registered for a tax year."""

    def __init__(self, year: int, message: str | None = None) -> None:
        self.year = year
        super().__init__(message or f"No tax year configuration registered for {year}")


class InvalidRuleConfiguration(PayrollEngineError):
    """Raised when an allowance or deduction rule cannot be resolved."""

    def __init__(self, rule_name: str, message: str) -> None:
        self.rule_name = rule_name
        super().__init__(f"Rule '{rule_name}': {message}")


class NegativeInputRejected(PayrollEngineError):
    """Raised when a salary, hour count, or amount is negative."""

    def __init__(self, field_name: str, value: object) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(f"Field '{field_name}' cannot be negative (got {value})")


class UnknownAllowanceCode(PayrollEngineError):
    """Raised when a personal-allowance code is not configured for the year."""

    def __init__(self, code: str, year: int) -> None:
        self.code = code
        self.year = year
        super().__init__(f"Personal allowance code '{code}' is not configured for {year}")


__all__ = [
    "ConfigNotFound",
    "InvalidRuleConfiguration",
    "NegativeInputRejected",
    "PayrollEngineError",
    "UnknownAllowanceCode",
]
