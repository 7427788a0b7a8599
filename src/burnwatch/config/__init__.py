"""
burnwatch configuration.

Provides:
- Pydantic-based settings (environment variables, .env files)
- YAML SLO definitions parsed into validated SLOSpec objects
"""

from burnwatch.config.loader import (
    ConfigLoadResult,
    get_config_path,
    load_slo_config,
    load_slo_dict,
    parse_slo_dict,
    parse_tier,
)
from burnwatch.config.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Loader
    "ConfigLoadResult",
    "get_config_path",
    "load_slo_config",
    "load_slo_dict",
    "parse_slo_dict",
    "parse_tier",
]
