"""Conversion between annual figures and per-period amounts."""

from __future__ import annotations

from decimal import Context, Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

# Wide enough that salary-sized figures divide without rounding.
_CONTEXT = Context(prec=34)


class PayFrequency(str, Enum):
    """How often an employee is paid."""

    MONTHLY = "monthly"
    BIWEEKLY = "biweekly"
    WEEKLY = "weekly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"

    @classmethod
    def parse(cls, value: Any) -> PayFrequency:
        """Return the frequency matching ``value`` ignoring case and separators."""

        if isinstance(value, PayFrequency):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unrecognised pay frequency: {value!r}")
        key = value.strip().lower().replace("-", "").replace("_", "").replace(" ", "")
        try:
            return cls(key)
        except ValueError as exc:
            raise ValueError(f"Unrecognised pay frequency: {value!r}") from exc

    @property
    def periods_per_year(self) -> int:
        return periods_per_year(self)


_PERIODS_PER_YEAR: Mapping[PayFrequency, int] = MappingProxyType(
    {
        PayFrequency.MONTHLY: 12,
        PayFrequency.BIWEEKLY: 26,
        PayFrequency.WEEKLY: 52,
        PayFrequency.QUARTERLY: 4,
        PayFrequency.ANNUAL: 1,
    }
)


def periods_per_year(frequency: PayFrequency) -> int:
    """Return the number of pay periods in a year for ``frequency``."""

    try:
        return _PERIODS_PER_YEAR[frequency]
    except KeyError as exc:
        raise ValueError(f"Unrecognised pay frequency: {frequency!r}") from exc


def annual_to_period(amount: Decimal, frequency: PayFrequency) -> Decimal:
    """Apportion an annual ``amount`` to a single pay period, unrounded."""

    return _CONTEXT.divide(amount, Decimal(periods_per_year(frequency)))


def period_to_annual(amount: Decimal, frequency: PayFrequency) -> Decimal:
    """Scale a per-period ``amount`` up to its annual equivalent."""

    return _CONTEXT.multiply(amount, Decimal(periods_per_year(frequency)))


__all__ = [
    "PayFrequency",
    "annual_to_period",
    "period_to_annual",
    "periods_per_year",
]
