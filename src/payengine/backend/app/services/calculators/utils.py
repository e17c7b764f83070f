"""Utility helpers for calculator modules."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal(0)
PENCE = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str, field_name: str = "amount") -> Decimal:
    """Coerce ``value`` into a :class:`Decimal` without binary float artefacts."""

    if isinstance(value, bool):
        raise ValueError(f"Field '{field_name}' must be numeric")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError) as exc:
            raise ValueError(f"Field '{field_name}' must be numeric") from exc
    if not result.is_finite():
        raise ValueError(f"Field '{field_name}' must be a finite number")
    return result


def round_currency(value: Decimal) -> Decimal:
    """Round monetary amounts half-up to pence."""

    return value.quantize(PENCE, rounding=ROUND_HALF_UP)


def format_percentage(value: Decimal) -> str:
    """Return a human-readable percentage label for ``value``."""

    percentage = value * 100
    if percentage == percentage.to_integral_value():
        return f"{int(percentage)}%"
    return f"{percentage:.2f}%"


def count_working_days(start: date, end: date) -> int:
    """Count Monday to Friday days in the inclusive range ``start``..``end``."""

    if start > end:
        return 0

    total_days = (end - start).days + 1
    full_weeks, remainder = divmod(total_days, 7)
    working_days = full_weeks * 5
    current = start + timedelta(days=full_weeks * 7)
    for _ in range(remainder):
        if current.weekday() < 5:
            working_days += 1
        current += timedelta(days=1)
    return working_days


__all__ = [
    "PENCE",
    "ZERO",
    "count_working_days",
    "format_percentage",
    "round_currency",
    "to_decimal",
]
