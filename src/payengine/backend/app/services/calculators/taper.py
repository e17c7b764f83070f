"""Personal allowance resolution and tapering."""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from payengine.backend.config.year_config import TaxBand, TaxYearConfig
from payengine.backend.errors import NegativeInputRejected, UnknownAllowanceCode

from .utils import ZERO


def tapered_allowance(
    income: Decimal,
    *,
    base: Decimal,
    taper_threshold: Decimal,
    taper_rate: Decimal,
) -> Decimal:
    """Reduce ``base`` linearly for income above ``taper_threshold``.

    The allowance never drops below zero; income at or below the threshold
    keeps the full base allowance.
    """

    if income < 0:
        raise NegativeInputRejected("income", income)

    excess = max(ZERO, income - taper_threshold)
    return max(ZERO, base - taper_rate * excess)


def resolve_personal_allowance(
    income: Decimal, config: TaxYearConfig, code: str | None = None
) -> Decimal:
    """Return the effective annual allowance for ``income`` under ``code``."""

    selected = code or config.default_allowance_code
    code_config = config.allowance_code(selected) if selected else None
    if selected and code_config is None:
        raise UnknownAllowanceCode(selected, config.year)

    if code_config is not None and code_config.mode == "override":
        return code_config.amount if code_config.amount is not None else ZERO

    return tapered_allowance(
        income,
        base=config.personal_allowance_base,
        taper_threshold=config.taper_threshold,
        taper_rate=config.taper_rate,
    )


def apply_personal_allowance(
    bands: Sequence[TaxBand], allowance: Decimal
) -> tuple[TaxBand, ...]:
    """Rebuild an income-tax table so the zero-rate band ends at ``allowance``.

    Bands pushed to zero width by a large allowance are dropped so the lower
    bounds remain strictly increasing.
    """

    if not bands:
        return ()

    zero_band, *taxable = bands
    adjusted: list[TaxBand] = [zero_band] if allowance > 0 or not taxable else []

    for index, band in enumerate(taxable):
        lower = allowance if index == 0 else max(band.lower_bound, allowance)
        if adjusted and adjusted[-1].lower_bound == lower:
            adjusted.pop()
        adjusted.append(band.model_copy(update={"lower_bound": lower}))

    return tuple(adjusted)


__all__ = [
    "apply_personal_allowance",
    "resolve_personal_allowance",
    "tapered_allowance",
]
