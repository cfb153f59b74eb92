"""
Exception types raised while reading and writing map files.
"""


class MapError(Exception):
    """Base class for every error raised by dosmaps."""
    pass


class StreamError(MapError):
    """Raised when the underlying byte stream fails (open, short read, write)."""
    pass


class FormatError(MapError):
    """Raised when data does not follow the layout of the selected format."""
    pass


class ValidationError(FormatError):
    """Raised when a map model breaks a rule of the target format.

    Covers out-of-range tile codes, items outside the grid and wrong
    layer/path/attribute counts or types.
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors if errors is not None else [message]


class FormatMismatchError(MapError):
    """Raised when an explicitly requested format does not match the data."""
    pass


class UndeterminedFormatError(MapError):
    """Raised when a map is opened without a format code and none can be detected."""
    pass


class EncodingLimitError(MapError):
    """Raised when a valid model cannot be represented by the on-disk format."""
    pass


class UnknownFormatError(MapError, KeyError):
    """Raised when a format code is not registered."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Unknown format"
