"""
Logging configuration for dosmaps.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..settings import AppSettings
    from ..settings.logging import LoggingSettings

CONSOLE_FORMAT = "%(asctime)s : %(levelname)-8s : %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_MAX_BYTES = 10 * 1024 * 1024
FILE_BACKUP_COUNT = 5

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("PIL", "PIL.PngImagePlugin", "PIL.Image")


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        color = self.COLORS.get(record.levelname)
        if color is None:
            return formatted
        # First occurrence only; the message may repeat the level name
        return formatted.replace(record.levelname, f"{color}{record.levelname}{self.RESET}", 1)


class CSVFormatter(logging.Formatter):
    """Semicolon-separated rows: time; level; ms since start; logger; line; message."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        fields = [
            f'"{self.formatTime(record, self.datefmt)}"',
            record.levelname.ljust(8),
            f'"{int(record.relativeCreated)} ms"',
            f'"{record.name}"',
            f'"{record.lineno}"',
            '"{}"'.format(message.replace('"', '""')),
        ]
        return ";".join(fields)


def _console_handler(log_settings: "LoggingSettings") -> logging.Handler:
    formatter_class = ColoredFormatter if log_settings.console_use_colors else logging.Formatter
    handler = logging.StreamHandler()
    handler.setLevel(log_settings.console_level_number)
    handler.setFormatter(formatter_class(fmt=CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT))
    return handler


def _file_handler(log_path: Path) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=FILE_MAX_BYTES,
        backupCount=FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(CSVFormatter(datefmt=FILE_DATE_FORMAT))
    return handler


def setup_logging(settings: "AppSettings") -> None:
    """
    Replace the root logger's handlers with the ones `settings` asks for.

    The project logger always passes DEBUG records on; each handler filters
    by its own level. A log file that cannot be created is reported and
    skipped, leaving console logging in place.

    Args:
        settings: AppSettings instance for all logging configuration
    """
    log_settings = settings.logging

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    logging.getLogger("dosmaps").setLevel(logging.DEBUG)

    if log_settings.console_logging:
        root_logger.addHandler(_console_handler(log_settings))

    log_path: Optional[Path] = None
    if log_settings.file_logging:
        log_path = log_settings.log_file_absolute_path
        try:
            root_logger.addHandler(_file_handler(log_path))
        except OSError as e:
            root_logger.warning(f"Could not setup file logging at {log_path}: {e}")
            log_path = None

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.INFO)

    logger = logging.getLogger(__name__)
    logger.info("Logging initialized")
    if log_settings.console_logging:
        logger.debug(
            f"Console logging: {log_settings.console_log_level} "
            f"(colors: {log_settings.console_use_colors})"
        )
    if log_path is not None:
        logger.debug(f"File logging: DEBUG at {log_path}")
