"""
Format registry: lookup, autodetection and file-level open/save.

The registry is built once from an ordered list of handlers. Registration
order breaks ties during detection: the first UNSURE candidate is kept over
later ones, while each POSSIBLY_YES candidate replaces the one before it.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Iterable, Optional, Union

from ..errors import (
    FormatMismatchError,
    StreamError,
    UndeterminedFormatError,
    UnknownFormatError,
)
from ..maps.models import GridMap, Map
from ..stream import ByteStream, commit_file
from . import ccaves, ccomic, cosmo, ddave, nukem2, wordresc
from .base import Confidence, FormatHandler, Supplementals

if TYPE_CHECKING:
    from ..settings import AppSettings

DEFAULT_HANDLERS: tuple[FormatHandler, ...] = (
    ddave.HANDLER,
    ccaves.HANDLER,
    ccomic.HANDLER,
    nukem2.HANDLER,
    wordresc.HANDLER,
    cosmo.HANDLER,
)

StreamLike = Union[ByteStream, BinaryIO, bytes, bytearray]


def _as_stream(stream: StreamLike) -> ByteStream:
    return stream if isinstance(stream, ByteStream) else ByteStream(stream)


@dataclass
class DetectionResult:
    """Outcome of autodetection.

    Attributes:
        confidence: Confidence of the chosen handler (DEFINITELY_NO if none)
        handler: Chosen handler, or None if the type could not be determined
        candidates: Every handler that reached at least UNSURE, with the
            confidence it reported
    """

    confidence: Confidence = Confidence.DEFINITELY_NO
    handler: Optional[FormatHandler] = None
    candidates: list[tuple[FormatHandler, Confidence]] = field(default_factory=list)

    @property
    def is_determined(self) -> bool:
        return self.handler is not None


class FormatRegistry:
    """Ordered collection of format handlers."""

    def __init__(
        self,
        handlers: Iterable[FormatHandler],
        settings: Optional["AppSettings"] = None,
    ):
        """Create a registry.

        Args:
            handlers: Handlers in priority order
            settings: Optional settings supplying force-open and detection
                defaults

        Raises:
            ValueError: If two handlers share a format code
        """
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.settings = settings
        self._handlers: list[FormatHandler] = []
        self._by_code: dict[str, FormatHandler] = {}
        for handler in handlers:
            if handler.code in self._by_code:
                raise ValueError(f"Duplicate format code: {handler.code}")
            self._handlers.append(handler)
            self._by_code[handler.code] = handler
        self.logger.debug(f"Registered {len(self._handlers)} map formats")

    @classmethod
    def default(cls, settings: Optional["AppSettings"] = None) -> "FormatRegistry":
        """Build a registry holding every built-in format."""
        return cls(DEFAULT_HANDLERS, settings)

    # === ENUMERATION ===

    def list_handlers(self) -> list[FormatHandler]:
        return list(self._handlers)

    def list_formats(self) -> list[dict[str, object]]:
        """Describe every format: code, name, extensions and games."""
        return [handler.describe() for handler in self._handlers]

    def lookup(self, code: str) -> FormatHandler:
        """Get the handler for a format code.

        Raises:
            UnknownFormatError: If no handler has that code
        """
        try:
            return self._by_code[code]
        except KeyError:
            raise UnknownFormatError(f"Unknown map format: {code}") from None

    # === DETECTION ===

    def detect(
        self,
        stream: StreamLike,
        filename: Optional[Union[str, Path]] = None,
        check_supplementals: Optional[bool] = None,
    ) -> DetectionResult:
        """Work out which format a stream is in.

        Every handler is asked in registration order. A DEFINITELY_YES answer
        ends the search, POSSIBLY_YES replaces the current best and UNSURE is
        only taken if nothing better has been found. When `filename` is
        given, a candidate whose required companion files all exist next to
        it is promoted to at least POSSIBLY_YES.

        Args:
            stream: Data to identify
            filename: Path of the primary file, used to look for companions
            check_supplementals: Look for companion files (defaults to the
                settings value, or True without settings)

        Returns:
            DetectionResult; `is_determined` is False if no handler reached
            UNSURE
        """
        stream = _as_stream(stream)
        if check_supplementals is None:
            check_supplementals = (
                self.settings.formats.check_supplementals if self.settings else True
            )

        result = DetectionResult()
        for handler in self._handlers:
            cert = handler.identify(stream)
            if cert == Confidence.DEFINITELY_NO:
                continue
            result.candidates.append((handler, cert))

            if cert == Confidence.DEFINITELY_YES:
                self.logger.debug(f"File is definitely a {handler.name} [{handler.code}]")
                result.handler, result.confidence = handler, cert
                break
            if cert == Confidence.POSSIBLY_YES:
                self.logger.debug(f"File is likely to be a {handler.name} [{handler.code}]")
                result.handler, result.confidence = handler, cert
            else:
                self.logger.debug(f"File could be a {handler.name} [{handler.code}]")
                if result.handler is None:
                    result.handler, result.confidence = handler, cert

            if check_supplementals and filename is not None:
                if self._supplementals_present(handler, stream, Path(filename)):
                    result.handler = handler
                    result.confidence = max(cert, Confidence.POSSIBLY_YES)

        if not result.is_determined:
            self.logger.info("Unable to automatically determine the map format")
        return result

    def _supplementals_present(
        self, handler: FormatHandler, stream: ByteStream, path: Path
    ) -> bool:
        """Check whether every companion file `handler` needs exists."""
        required = handler.required_supplementals(stream, str(path))
        if not required:
            return False
        for role, name in required.items():
            if not (path.parent / Path(name).name).exists():
                self.logger.info(
                    f"Could not find {name} ({role}), map is probably not {handler.code}"
                )
                return False
        self.logger.info(f"All supplemental files present, map is likely {handler.code}")
        return True

    # === OPENING ===

    def _select(
        self,
        stream: ByteStream,
        code: Optional[str],
        filename: Optional[Union[str, Path]],
        force: Optional[bool],
    ) -> FormatHandler:
        if force is None:
            force = self.settings.formats.force_open if self.settings else False

        if code is None:
            result = self.detect(stream, filename)
            if result.handler is not None:
                return result.handler
            fallback = self.settings.formats.default_format if self.settings else ""
            if not fallback:
                raise UndeterminedFormatError(
                    "Unable to determine the map format; specify a format code"
                )
            self.logger.info(f"Falling back to default format {fallback}")
            code = fallback

        handler = self.lookup(code)
        if handler.identify(stream) == Confidence.DEFINITELY_NO:
            if not force:
                raise FormatMismatchError(f"Data is not a valid {handler.name}")
            self.logger.warning(f"Data is not a valid {handler.name}, open forced")
        return handler

    def open(
        self,
        stream: StreamLike,
        code: Optional[str] = None,
        filename: Optional[Union[str, Path]] = None,
        supplementals: Optional[Supplementals] = None,
        force: Optional[bool] = None,
    ) -> GridMap:
        """Open a map from a stream.

        Args:
            stream: Primary map data
            code: Format code; autodetected when None
            filename: Name of the primary file, used during detection
            supplementals: Companion streams keyed by role
            force: Open even if the data does not look like `code`

        Raises:
            UnknownFormatError: If `code` is not registered
            UndeterminedFormatError: If no code was given and detection failed
            FormatMismatchError: If the data does not match `code` and
                `force` is off
            FormatError: If the data cannot be parsed
        """
        stream = _as_stream(stream)
        handler = self._select(stream, code, filename, force)
        return handler.open(stream, supplementals)

    def open_file(
        self,
        path: Union[str, Path],
        code: Optional[str] = None,
        force: Optional[bool] = None,
    ) -> GridMap:
        """Open a map file along with the companion files its format needs.

        Raises:
            StreamError: If the map or a companion file cannot be read
        """
        path = Path(path)
        stream = ByteStream(self._read_file(path))
        handler = self._select(stream, code, path, force)

        supplementals: Supplementals = {}
        for role, name in handler.required_supplementals(stream, str(path)).items():
            self.logger.info(f"Opening supplemental file {name}")
            supplementals[role] = ByteStream(self._read_file(path.parent / Path(name).name))

        game_map = handler.open(stream, supplementals)
        self.logger.info(f"Opened {path.name} as {handler.code}")
        return game_map

    @staticmethod
    def _read_file(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise StreamError(f"Could not read {path}: {e}") from e

    # === WRITING ===

    def write(
        self,
        game_map: Map,
        code: str,
        output: Union[ByteStream, BinaryIO],
        supplementals: Optional[dict[str, Union[ByteStream, BinaryIO]]] = None,
    ) -> None:
        """Write a map to a stream in the given format."""
        self.lookup(code).write(game_map, output, supplementals)

    def save_file(self, game_map: Map, code: str, path: Union[str, Path]) -> None:
        """Write a map file, replacing the primary and companion files atomically.

        The map is fully encoded before any file is touched.
        """
        path = Path(path)
        handler = self.lookup(code)
        data, supp_data = handler.encode(game_map)

        names = handler.required_supplementals(ByteStream(data), str(path))
        commit_file(path, data)
        for role, blob in supp_data.items():
            commit_file(path.parent / Path(names[role]).name, blob)
        self.logger.info(f"Saved {path.name} as {handler.code}")
