"""Marginal-rate calculator shared by income tax and national insurance."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from payengine.backend.config.year_config import TaxBand
from payengine.backend.errors import NegativeInputRejected

from .utils import ZERO


@dataclass(frozen=True)
class BandPortion:
    """The slice of an amount falling inside one band."""

    label: str
    lower_bound: Decimal
    upper_bound: Decimal | None
    rate: Decimal
    portion: Decimal

    @property
    def contribution(self) -> Decimal:
        return self.portion * self.rate


def band_label(band: TaxBand, index: int) -> str:
    """Return the identity used for ``band`` in breakdowns."""

    return band.label or f"band_{index + 1}"


def allocate_bands(amount: Decimal, bands: Sequence[TaxBand]) -> tuple[BandPortion, ...]:
    """Split ``amount`` across ``bands`` and return the bands it touches.

    Each band covers the half-open interval ``[lower, next_lower)``; the last
    band is open-ended. A pound exactly on a boundary therefore belongs to the
    lower band. Bands receiving no part of ``amount`` are omitted.
    """

    if amount < 0:
        raise NegativeInputRejected("amount", amount)

    portions: list[BandPortion] = []
    for index, band in enumerate(bands):
        upper = bands[index + 1].lower_bound if index + 1 < len(bands) else None
        if amount <= band.lower_bound:
            break
        ceiling = amount if upper is None else min(amount, upper)
        portion = ceiling - band.lower_bound
        if portion <= 0:
            continue
        portions.append(
            BandPortion(
                label=band_label(band, index),
                lower_bound=band.lower_bound,
                upper_bound=upper,
                rate=band.rate,
                portion=portion,
            )
        )
    return tuple(portions)


def calculate_progressive_amount(amount: Decimal, bands: Sequence[TaxBand]) -> Decimal:
    """Return the total owed on ``amount`` under the marginal ``bands``."""

    return sum(
        (portion.contribution for portion in allocate_bands(amount, bands)), ZERO
    )


__all__ = [
    "BandPortion",
    "allocate_bands",
    "band_label",
    "calculate_progressive_amount",
]
