"""Pydantic models describing the tax year configuration schema."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Mapping, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class TaxBand(ImmutableModel):
    """A marginal rate applying from ``lower_bound`` up to the next band."""

    lower_bound: Decimal = Field(alias="lower")
    rate: Decimal
    label: str | None = None

    @model_validator(mode="after")
    def _validate_values(self) -> TaxBand:
        if self.rate < 0:
            raise ConfigurationError("Band rates must be non-negative")
        if self.lower_bound < 0:
            raise ConfigurationError("Band lower bounds must be non-negative")
        return self


class AllowanceCodeConfig(ImmutableModel):
    """How a personal-allowance code resolves the tax-free amount."""

    mode: Literal["tapered", "override"] = "tapered"
    amount: Decimal | None = None
    description: str | None = None

    @model_validator(mode="after")
    def _validate_override(self) -> AllowanceCodeConfig:
        if self.mode == "override" and self.amount is None:
            raise ConfigurationError("Override allowance codes require an 'amount'")
        return self


def _validate_band_sequence(name: str, bands: Sequence[TaxBand]) -> None:
    if not bands:
        raise ConfigurationError(f"At least one {name} band must be defined")
    if bands[0].lower_bound != 0:
        raise ConfigurationError(f"The first {name} band must start at 0")
    previous: Decimal | None = None
    for band in bands:
        if previous is not None and band.lower_bound <= previous:
            raise ConfigurationError(f"{name} bands must be in strictly ascending order")
        previous = band.lower_bound
    labels = [band.label for band in bands]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate {name} band labels: {duplicates}")


class TaxYearConfig(ImmutableModel):
    """Thresholds and rates for a single tax year."""

    year: int
    label: str | None = None
    personal_allowance_base: Decimal
    taper_threshold: Decimal
    taper_rate: Decimal
    income_tax_bands: tuple[TaxBand, ...]
    insurance_bands: tuple[TaxBand, ...]
    allowance_codes: Mapping[str, AllowanceCodeConfig] = Field(default_factory=dict)
    default_allowance_code: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_sections(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            raise ConfigurationError("Tax year configuration must be a mapping")

        prepared = dict(data)

        allowance = prepared.pop("personal_allowance", None)
        if allowance is not None:
            if not isinstance(allowance, Mapping):
                raise ConfigurationError("'personal_allowance' must be a mapping")
            prepared.setdefault("personal_allowance_base", allowance.get("base"))
            prepared.setdefault("taper_threshold", allowance.get("taper_threshold"))
            prepared.setdefault("taper_rate", allowance.get("taper_rate"))

        for section, target in (
            ("income_tax", "income_tax_bands"),
            ("national_insurance", "insurance_bands"),
        ):
            payload = prepared.pop(section, None)
            if payload is None:
                continue
            if not isinstance(payload, Mapping) or "bands" not in payload:
                raise ConfigurationError(f"'{section}' requires a 'bands' list")
            prepared.setdefault(target, payload["bands"])

        return prepared

    @field_validator("allowance_codes", mode="before")
    @classmethod
    def _coerce_codes(cls, value: Any) -> Mapping[str, Any]:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {str(key).upper(): entry for key, entry in value.items()}
        raise ConfigurationError("'allowance_codes' must be a mapping")

    @field_validator("income_tax_bands", "insurance_bands", mode="after")
    @classmethod
    def _assign_default_labels(cls, bands: tuple[TaxBand, ...]) -> tuple[TaxBand, ...]:
        # Default labels follow the configured table, not the allowance-adjusted one.
        return tuple(
            band if band.label else band.model_copy(update={"label": f"band_{index + 1}"})
            for index, band in enumerate(bands)
        )

    @field_validator("default_allowance_code", mode="before")
    @classmethod
    def _normalise_default_code(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _validate_year(self) -> TaxYearConfig:
        _validate_band_sequence("income tax", self.income_tax_bands)
        _validate_band_sequence("insurance", self.insurance_bands)
        if self.income_tax_bands[0].rate != 0:
            raise ConfigurationError(
                "The first income tax band is the personal allowance and must be zero-rated"
            )
        for label, value in (
            ("personal_allowance_base", self.personal_allowance_base),
            ("taper_threshold", self.taper_threshold),
            ("taper_rate", self.taper_rate),
        ):
            if value < 0:
                raise ConfigurationError(f"'{label}' must be non-negative")
        return self

    def allowance_code(self, code: str) -> AllowanceCodeConfig | None:
        return self.allowance_codes.get(code.strip().upper())


class TaxYearManifestEntry(ImmutableModel):
    """Entry describing a supported tax year in the manifest."""

    year: int
    filename: str | None = None
    status: str = "active"
    notes_url: str | None = None

    @computed_field
    @property
    def resolved_filename(self) -> str:
        return self.filename or f"{self.year}.yaml"


class TaxYearManifest(ImmutableModel):
    """Manifest describing the available tax year configuration files."""

    years: Sequence[TaxYearManifestEntry]

    @model_validator(mode="after")
    def _validate_years(self) -> TaxYearManifest:
        seen: set[int] = set()
        for entry in self.years:
            if entry.year in seen:
                raise ConfigurationError(
                    f"Duplicate year {entry.year} declared in the configuration manifest"
                )
            seen.add(entry.year)
        return self

    def get_entry(self, year: int) -> TaxYearManifestEntry:
        for entry in self.years:
            if entry.year == year:
                return entry
        raise KeyError(year)

    @computed_field
    @property
    def supported_years(self) -> tuple[int, ...]:
        return tuple(sorted(entry.year for entry in self.years))


__all__ = [
    "AllowanceCodeConfig",
    "ConfigurationError",
    "ImmutableModel",
    "TaxBand",
    "TaxYearConfig",
    "TaxYearManifest",
    "TaxYearManifestEntry",
    "ValidationError",
]
