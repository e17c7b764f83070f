"""Utilities for validating year configuration data and surfacing issues.

The schema rejects structurally broken files at load time; the checks here
catch values that load fine but are almost certainly mistakes.
"""

from __future__ import annotations

import argparse
from decimal import Decimal
from typing import Sequence

from payengine.backend.errors import ConfigNotFound

from .year_config import (
    ConfigurationError,
    TaxBand,
    TaxYearConfig,
    available_years,
    load_year_configuration,
)

_ONE = Decimal(1)


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_bands(scope: str, bands: Sequence[TaxBand]) -> list[str]:
    errors: list[str] = []

    for index, band in enumerate(bands):
        if band.rate > _ONE:
            errors.append(
                _format_scope(scope, f"band {index + 1} rate {band.rate} must be between 0 and 1")
            )

    return errors


def _validate_personal_allowance(config: TaxYearConfig) -> list[str]:
    errors: list[str] = []
    scope = "personal_allowance"

    if config.taper_rate > _ONE:
        errors.append(
            _format_scope(scope, f"taper rate {config.taper_rate} must be between 0 and 1")
        )

    if len(config.income_tax_bands) > 1:
        first_taxable = config.income_tax_bands[1].lower_bound
        if first_taxable != config.personal_allowance_base:
            errors.append(
                _format_scope(
                    scope,
                    (
                        f"base allowance {config.personal_allowance_base} does not match "
                        f"the first taxable income tax band ({first_taxable})"
                    ),
                )
            )

    return errors


def _validate_allowance_codes(config: TaxYearConfig) -> list[str]:
    errors: list[str] = []

    default_code = config.default_allowance_code
    if default_code and default_code not in config.allowance_codes:
        errors.append(
            _format_scope(
                "default_allowance_code",
                f"default code {default_code} is not present in allowance_codes",
            )
        )

    for code, entry in config.allowance_codes.items():
        if entry.amount is not None and entry.amount < 0:
            errors.append(
                _format_scope(f"allowance_codes.{code}", "override amount must be non-negative")
            )
        if entry.mode == "tapered" and entry.amount is not None:
            errors.append(
                _format_scope(
                    f"allowance_codes.{code}",
                    "tapered codes ignore 'amount'; remove it or switch to override",
                )
            )

    return errors


def validate_year_configuration(config: TaxYearConfig) -> list[str]:
    """Return a list of validation issues for the provided configuration."""

    errors: list[str] = []

    errors.extend(_validate_bands("income_tax.bands", config.income_tax_bands))
    errors.extend(_validate_bands("national_insurance.bands", config.insurance_bands))
    errors.extend(_validate_personal_allowance(config))
    errors.extend(_validate_allowance_codes(config))

    return errors


def validate_all_years(years: Sequence[int] | None = None) -> dict[int, list[str]]:
    """Validate all configured years and return issues keyed by year."""

    targets = years or available_years()
    results: dict[int, list[str]] = {}

    for year in targets:
        config = load_year_configuration(year)
        results[int(year)] = validate_year_configuration(config)

    return results


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Validate configured tax years and report issues helpful to contributors."
        )
    )
    parser.add_argument(
        "years",
        nargs="*",
        type=int,
        help="Specific years to validate (defaults to all configured years)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    years = args.years or available_years()

    if not years:
        parser.print_help()
        return 1

    exit_code = 0

    for year in years:
        try:
            config = load_year_configuration(year)
        except (ConfigNotFound, ConfigurationError) as error:
            print(f"[{year}] failed to load configuration: {error}")
            exit_code = 1
            continue

        issues = validate_year_configuration(config)
        if issues:
            exit_code = 1
            print(f"[{year}] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print(f"[{year}] OK")

    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
