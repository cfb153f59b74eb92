"""
Settings validation system for dosmaps.
"""

import logging
from typing import List, TYPE_CHECKING

from .logging import VALID_LEVELS
from .types import ValidationResult

if TYPE_CHECKING:
    from .core import AppSettings

logger = logging.getLogger(__name__)


class SettingsValidator:
    """Validates configuration settings."""

    def __init__(self, settings: "AppSettings"):
        self.settings = settings

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        # Imported here, the format modules pull in the whole package
        from ..formats.registry import DEFAULT_HANDLERS

        errors: List[str] = []
        warnings: List[str] = []

        level = self.settings.console_log_level
        if level not in VALID_LEVELS:
            errors.append(f"Unknown console log level: {level}")

        default_format = self.settings.formats.default_format
        if default_format:
            codes = {handler.code for handler in DEFAULT_HANDLERS}
            if default_format not in codes:
                errors.append(f"Default format is not registered: {default_format}")

        if self.settings.formats.force_open:
            warnings.append("Force open is enabled; mismatched files will be opened anyway")

        if self.settings.file_logging:
            log_dir = self.settings.logging.log_file_absolute_path.parent
            if log_dir.exists() and not log_dir.is_dir():
                errors.append(f"Log directory is not a directory: {log_dir}")

        return ValidationResult(
            is_valid=len(errors) == 0, errors=errors, warnings=warnings
        )
