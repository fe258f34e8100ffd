"""Configuration management for the finance engine.

This module centralizes runtime settings and their environment variable
overrides. Tunable thresholds live in the JSON presets under
``finance_engine/presets``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

# Base package root - assumes this file is in finance_engine/
_PACKAGE_ROOT = Path(__file__).parent.resolve()

# JSON presets (thresholds, default budget buckets)
PRESETS_DIR = Path(
    os.getenv("FINENGINE_PRESETS_DIR", _PACKAGE_ROOT / "presets")
).resolve()

# Number of trailing periods used for historical statistics
HISTORY_PERIODS = int(os.getenv("FINENGINE_HISTORY_PERIODS", "12"))

# Log level picked up by logging_setup.configure_logging when none is given
LOG_LEVEL: Optional[str] = os.getenv("FINENGINE_LOG_LEVEL")


def get_presets_dir() -> Path:
    """Get the directory holding the JSON preset files."""
    return PRESETS_DIR


def get_history_periods() -> int:
    """Get the trailing history window, never less than one period."""
    return max(HISTORY_PERIODS, 1)
