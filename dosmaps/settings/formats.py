"""
Format selection settings for dosmaps.
"""

from .group import SettingsGroup


class FormatSettings(SettingsGroup):
    """Defaults used by the format registry when opening maps."""

    PREFIX = "formats"

    @property
    def force_open(self) -> bool:
        """Open maps with an explicit format code even when the data does not match."""
        return self._get_bool("force_open", False)

    @force_open.setter
    def force_open(self, value: bool) -> None:
        self._set("force_open", value)

    @property
    def default_format(self) -> str:
        """Format code to fall back on when autodetection fails ("" for none)."""
        return self._get_str("default_format", "")

    @default_format.setter
    def default_format(self, value: str) -> None:
        self._set("default_format", value.strip())

    @property
    def check_supplementals(self) -> bool:
        """Whether autodetection looks for the companion files a format needs."""
        return self._get_bool("check_supplementals", True)

    @check_supplementals.setter
    def check_supplementals(self, value: bool) -> None:
        self._set("check_supplementals", value)
