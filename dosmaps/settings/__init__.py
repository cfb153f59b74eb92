"""
Settings package for dosmaps.

This package provides type-safe configuration management using Qt's
QSettings for cross-platform storage.

Usage:
    from dosmaps.settings import AppSettings, ValidationResult

    settings = AppSettings()
    result = settings.validate()
"""

from .core import AppSettings
from .types import ConfigVersion, ConfigError, ValidationResult
from .logging import LoggingSettings
from .formats import FormatSettings

__all__ = [
    "AppSettings",
    "ConfigVersion",
    "ConfigError",
    "ValidationResult",
    "LoggingSettings",
    "FormatSettings",
]
