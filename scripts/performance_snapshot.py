#!/usr/bin/env python3
"""Collect baseline throughput figures for the payslip calculation engine."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from time import perf_counter

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from payengine.backend.app.services.calculation_service import (  # noqa: E402
    calculate_deductions,
    calculate_payslip,
)

SAMPLE_PAYLOAD = {
    "employee_id": "EMP-0001",
    "tax_year": 2024,
    "annual_basic_salary": "48000",
    "pay_frequency": "monthly",
    "hourly_rate": "0",
    "overtime_rate": "32.50",
    "overtime_hours": "6",
    "allowances": [
        {"kind": "fixed", "name": "Travel", "amount": "120"},
        {"kind": "percentage", "name": "Housing", "ratio": "0.05"},
    ],
    "deductions": [
        {"kind": "percentage", "name": "Pension", "ratio": "0.05", "pre_tax": True},
        {"kind": "fixed", "name": "Union dues", "amount": "15"},
        {"kind": "tax", "name": "PAYE"},
        {"kind": "insurance", "name": "National Insurance"},
    ],
}


def _time(iterations: int, call) -> dict[str, float]:
    call()  # Warm caches
    start = perf_counter()
    for _ in range(iterations):
        call()
    elapsed = perf_counter() - start
    return {
        "iterations": iterations,
        "total_ms": elapsed * 1000,
        "average_ms": (elapsed / iterations) * 1000,
    }


def main() -> None:
    iterations = int(os.getenv("PAYENGINE_PROFILE_ITERATIONS", "500"))
    report = {
        "payslip": _time(iterations, lambda: calculate_payslip(SAMPLE_PAYLOAD)),
        "deductions": _time(
            iterations, lambda: calculate_deductions("48000", None, "monthly", 2024)
        ),
    }
    print(json.dumps(report, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
