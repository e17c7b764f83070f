#!/usr/bin/env python3
"""Check the tax year YAML files from a plain checkout.

Run ``python scripts/validate_config.py 2024 2025`` to limit the check to
specific years; with no arguments every year in the manifest is validated.
"""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from payengine.backend.config.validator import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
