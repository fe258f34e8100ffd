"""Configuration loader for preset files."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Dict

from ..config import get_presets_dir


@lru_cache(maxsize=None)
def _read_config(config_name: str) -> Dict[str, Any]:
    config_path = get_presets_dir() / f"{config_name}.json"

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_config(config_name: str) -> Dict[str, Any]:
    """Load a preset file by name.

    Args:
        config_name: Name of the preset file (without .json extension)

    Returns:
        Dictionary containing the configuration. Callers get their own copy,
        the cached original is never handed out.

    Raises:
        FileNotFoundError: If the preset file doesn't exist
        json.JSONDecodeError: If the preset file is invalid JSON

    Example:
        >>> config = load_config('analytics')
        >>> config['anomalies']['zscore_threshold']
        2.0
    """
    return json.loads(json.dumps(_read_config(config_name)))


def get_analytics_config() -> Dict[str, Any]:
    """Get the analytics thresholds (anomalies, forecast, settlement)."""
    return load_config('analytics')


def get_budget_config() -> Dict[str, Any]:
    """Get the budget presets.

    Returns:
        Budget configuration dictionary with the 50/30/20 ratios, default
        bucket categories and alert settings

    Example:
        >>> get_budget_config()['fifty_thirty_twenty']['ratios']['needs']
        0.5
    """
    return load_config('budgets')


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Get a nested configuration value by key path.

    Args:
        config_name: Name of the preset file
        *keys: Path to the nested value (e.g., 'forecast', 'confidence')
        default: Default value if key path doesn't exist

    Returns:
        The configuration value at the specified path, or default if not found

    Example:
        >>> get_config_value('analytics', 'settlement', 'tolerance')
        0.01
    """
    try:
        value: Any = load_config(config_name)
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError, FileNotFoundError):
        return default
