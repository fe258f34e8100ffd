"""Preset files and loaders.

Thresholds for the analytics engine and the default budget buckets are
stored in JSON files so they can be tuned without code changes.
"""

from .defaults import (
    get_analytics_config,
    get_budget_config,
    get_config_value,
    load_config,
)

__all__ = ['load_config', 'get_analytics_config', 'get_budget_config', 'get_config_value']
