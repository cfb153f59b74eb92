"""
Base class for settings subsystems stored under one QSettings key prefix.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

_TRUE_STRINGS = ("true", "1", "yes", "on")


class SettingsGroup:
    """A set of related settings keys sharing a prefix.

    INI-backed stores hand every value back as a string, so reads go through
    the typed helpers here rather than `QSettings.value` directly.

    Attributes:
        PREFIX: Key prefix without the trailing slash, e.g. "logging"
    """

    PREFIX = ""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _key(self, name: str) -> str:
        return f"{self.PREFIX}/{name}" if self.PREFIX else name

    def _get_str(self, name: str, default: str = "") -> str:
        value = self.settings.value(self._key(name), default)
        return default if value is None else str(value)

    def _get_bool(self, name: str, default: bool = False) -> bool:
        value = self.settings.value(self._key(name), default)
        if value is None:
            return default
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_STRINGS
        return bool(value)

    def _set(self, name: str, value: object) -> None:
        self.settings.setValue(self._key(name), value)
