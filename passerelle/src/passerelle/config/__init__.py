"""Configuration module for Passerelle."""

from passerelle.config.settings import (
    Settings,
    get_settings,
    load_config,
    override_settings,
    reset_settings,
    validate_configuration,
)

__all__ = [
    "Settings",
    "get_settings",
    "load_config",
    "override_settings",
    "reset_settings",
    "validate_configuration",
]
