"""
Console and file logging preferences.
"""

import logging
from pathlib import Path

from .group import SettingsGroup

logger = logging.getLogger(__name__)

LOG_FILE_PATH = "logs/dosmaps.csv"
VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(SettingsGroup):
    """Where log records go and how much of them is shown."""

    PREFIX = "logging"

    # === CONSOLE ===

    @property
    def console_logging(self) -> bool:
        return self._get_bool("console_enabled", True)

    @console_logging.setter
    def console_logging(self, value: bool) -> None:
        self._set("console_enabled", value)

    @property
    def console_log_level(self) -> str:
        """Level name for the console handler, one of VALID_LEVELS."""
        return self._get_str("console_level", "INFO")

    @console_log_level.setter
    def console_log_level(self, value: str) -> None:
        level = value.strip().upper()
        if level not in VALID_LEVELS:
            logger.warning(
                f"Invalid console log level: {value}, keeping current: {self.console_log_level}"
            )
            return
        self._set("console_level", level)

    @property
    def console_level_number(self) -> int:
        """Numeric form of `console_log_level`, INFO if the stored name is unusable."""
        level = logging.getLevelName(self.console_log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    @property
    def console_use_colors(self) -> bool:
        return self._get_bool("console_use_colors", True)

    @console_use_colors.setter
    def console_use_colors(self, value: bool) -> None:
        self._set("console_use_colors", value)

    # === FILE ===

    @property
    def file_logging(self) -> bool:
        return self._get_bool("file_enabled", False)

    @file_logging.setter
    def file_logging(self, value: bool) -> None:
        self._set("file_enabled", value)

    @property
    def log_file_path(self) -> str:
        """Log file as configured; relative paths are taken from the working directory."""
        return self._get_str("file_path", LOG_FILE_PATH)

    @log_file_path.setter
    def log_file_path(self, value: str) -> None:
        if not value.strip():
            logger.warning(f"Empty log file path, keeping current: {self.log_file_path}")
            return
        self._set("file_path", value.strip())

    @property
    def log_file_absolute_path(self) -> Path:
        return Path(self.log_file_path).expanduser().resolve()
