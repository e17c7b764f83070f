"""Configuration loader wrapping the shared schema models."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Protocol, Sequence

import yaml
from pydantic import ValidationError

from payengine.backend.errors import ConfigNotFound

from .schema import (
    AllowanceCodeConfig,
    ConfigurationError,
    TaxBand,
    TaxYearConfig,
    TaxYearManifest,
    TaxYearManifestEntry,
)

CONFIG_DIRECTORY = Path(__file__).resolve().parent / "data"
MANIFEST_FILE = CONFIG_DIRECTORY / "manifest.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must define a mapping at the top level")
    return data


@lru_cache(maxsize=1)
def load_manifest() -> TaxYearManifest:
    """Load and cache the configuration manifest."""

    if not MANIFEST_FILE.exists():
        raise FileNotFoundError("Configuration manifest not found")

    raw_manifest = _load_yaml(MANIFEST_FILE)

    try:
        return TaxYearManifest.model_validate(raw_manifest)
    except ValidationError as error:
        raise ConfigurationError(f"Manifest validation failed: {error}") from error


@lru_cache(maxsize=8)
def load_year_configuration(year: int) -> TaxYearConfig:
    """Load configuration for the specified tax year from disk."""

    try:
        manifest_entry = load_manifest().get_entry(year)
    except KeyError as exc:
        raise ConfigNotFound(
            year, f"Configuration for year {year} not declared in manifest"
        ) from exc

    config_file = CONFIG_DIRECTORY / manifest_entry.resolved_filename
    if not config_file.exists():
        raise ConfigNotFound(
            year, f"Configuration file for year {year} missing: {config_file.name}"
        )

    raw_config = _load_yaml(config_file)
    raw_config.setdefault("year", year)

    try:
        configuration = TaxYearConfig.model_validate(raw_config)
    except ValidationError as error:
        raise ConfigurationError(f"Configuration validation failed for {year}: {error}") from error

    if configuration.year != year:
        raise ConfigurationError(
            f"Configuration year mismatch: expected {year}, found {configuration.year}"
        )

    return configuration


def available_years() -> Sequence[int]:
    """Return the tax years declared in the manifest."""

    return load_manifest().supported_years


class TaxYearConfigProvider(Protocol):
    """Lookup-only source of tax year configurations."""

    def get(self, year: int) -> TaxYearConfig:
        ...

    def years(self) -> Sequence[int]:
        ...


class ManifestConfigProvider:
    """Provider backed by the YAML files declared in the manifest."""

    def get(self, year: int) -> TaxYearConfig:
        return load_year_configuration(year)

    def years(self) -> Sequence[int]:
        return available_years()


class StaticConfigProvider:
    """Provider over a fixed set of already validated configurations."""

    def __init__(self, configurations: Iterable[TaxYearConfig]) -> None:
        self._configurations: Mapping[int, TaxYearConfig] = MappingProxyType(
            {config.year: config for config in configurations}
        )

    def get(self, year: int) -> TaxYearConfig:
        try:
            return self._configurations[year]
        except KeyError as exc:
            raise ConfigNotFound(year) from exc

    def years(self) -> Sequence[int]:
        return tuple(sorted(self._configurations))


DEFAULT_PROVIDER: TaxYearConfigProvider = ManifestConfigProvider()


__all__ = [
    "AllowanceCodeConfig",
    "CONFIG_DIRECTORY",
    "ConfigurationError",
    "DEFAULT_PROVIDER",
    "MANIFEST_FILE",
    "ManifestConfigProvider",
    "StaticConfigProvider",
    "TaxBand",
    "TaxYearConfig",
    "TaxYearConfigProvider",
    "TaxYearManifest",
    "TaxYearManifestEntry",
    "available_years",
    "load_manifest",
    "load_year_configuration",
]
