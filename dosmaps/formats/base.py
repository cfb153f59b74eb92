"""
Format handler records and the validation shared by every format.

Each game format is described by one FormatHandler: its metadata plus the
functions that identify, open and write it. The record wraps those functions
so every format gets the same guarantees:

- identify never raises and always leaves the stream at its start
- a short read during open is reported as a FormatError, and a parsed map
  holding tile codes its layers do not accept is rejected
- write validates the model first and only touches the destination once the
  whole file has been encoded in memory
"""

import logging
import struct
from collections import Counter
from dataclasses import dataclass, field
from enum import IntEnum
from typing import BinaryIO, Callable, Optional, Union

from ..errors import FormatError, MapError, StreamError, ValidationError
from ..maps.models import (
    Attribute,
    EnumAttribute,
    GridMap,
    IntegerAttribute,
    Item,
    Layer,
    Map,
)
from ..settings.types import ValidationResult
from ..stream import ByteStream

logger = logging.getLogger(__name__)


class Confidence(IntEnum):
    """How sure a handler is that a stream is in its format."""

    DEFINITELY_NO = 0
    UNSURE = 1
    POSSIBLY_YES = 2
    DEFINITELY_YES = 3


Supplementals = dict[str, ByteStream]
"""Companion streams keyed by role (e.g. "layer1")."""

IdentifyFn = Callable[[ByteStream], Confidence]
OpenFn = Callable[[ByteStream, Supplementals], GridMap]
WriteFn = Callable[[GridMap, ByteStream, Supplementals], None]
SuppsFn = Callable[[ByteStream, str], dict[str, str]]
ValidateFn = Callable[[GridMap, list[str], list[str]], None]


@dataclass(frozen=True)
class FormatHandler:
    """Description and behaviour of one map file format.

    Attributes:
        code: Unique format code (e.g. "map-ddave")
        name: Human-readable name
        extensions: File extensions, without the dot
        games: Games that use this format
        identify_fn: Structural checks returning a Confidence
        open_fn: Parser producing a GridMap
        write_fn: Serialiser for a validated GridMap
        supps_fn: Works out required supplemental filenames
        validate_fn: Format-specific checks appended to the generic ones
        layer_count: Number of layers the format stores
        path_count: Number of paths the format stores (None = any)
        attribute_types: Expected type of each attribute, in order
    """

    code: str
    name: str
    extensions: tuple[str, ...]
    games: tuple[str, ...]
    identify_fn: IdentifyFn = field(repr=False)
    open_fn: OpenFn = field(repr=False)
    write_fn: WriteFn = field(repr=False)
    supps_fn: Optional[SuppsFn] = field(default=None, repr=False)
    validate_fn: Optional[ValidateFn] = field(default=None, repr=False)
    layer_count: int = 1
    path_count: Optional[int] = 0
    attribute_types: tuple[type[Attribute], ...] = ()

    # === DETECTION ===

    def identify(self, stream: ByteStream) -> Confidence:
        """Check whether `stream` looks like this format.

        Never raises for malformed data. The stream is rewound before and
        after the check.
        """
        try:
            stream.seek(0)
            return Confidence(self.identify_fn(stream))
        except (MapError, struct.error, ValueError) as e:
            logger.debug(f"{self.code}: identify rejected stream: {e}")
            return Confidence.DEFINITELY_NO
        finally:
            try:
                stream.seek(0)
            except StreamError as e:
                logger.warning(f"{self.code}: could not rewind stream: {e}")

    def required_supplementals(self, stream: ByteStream, filename: str) -> dict[str, str]:
        """Get the companion files this format needs, keyed by role.

        Args:
            stream: Primary stream (may be read to find embedded filenames)
            filename: Name of the primary file

        Returns:
            Mapping of role to filename; empty if none are needed
        """
        if self.supps_fn is None:
            return {}
        try:
            stream.seek(0)
            return self.supps_fn(stream, filename)
        finally:
            stream.seek(0)

    # === READING ===

    def open(
        self, stream: ByteStream, supplementals: Optional[Supplementals] = None
    ) -> GridMap:
        """Parse a map from `stream`.

        Raises:
            FormatError: If the data is truncated or inconsistent
            ValidationError: If the data breaks a rule of the format
        """
        stream.seek(0)
        try:
            game_map = self.open_fn(stream, supplementals or {})
        except StreamError as e:
            raise FormatError(f"{self.name} data is truncated: {e}") from e

        errors = check_tile_codes(game_map)
        if errors:
            raise ValidationError(
                f"{self.name} data holds invalid tile codes: {errors[0]}", errors
            )
        logger.debug(f"Opened {self.code} map with {len(game_map.layers)} layers")
        return game_map

    # === WRITING ===

    def validate(self, game_map: Map) -> ValidationResult:
        """Check a map against the rules of this format without writing it."""
        return validate_map(self, game_map)

    def encode(self, game_map: Map) -> tuple[bytes, dict[str, bytes]]:
        """Validate and serialise a map entirely in memory.

        Returns:
            (primary file data, supplemental data keyed by role)

        Raises:
            ValidationError: If the map breaks a rule of the format
            EncodingLimitError: If the map cannot be represented on disk
        """
        result = self.validate(game_map)
        if not result.is_valid:
            raise ValidationError(
                f"Map cannot be written as {self.name}: {result.errors[0]}",
                result.errors,
            )
        for warning in result.warnings:
            logger.warning(f"{self.code}: {warning}")

        if not isinstance(game_map, GridMap):
            raise ValidationError(f"{self.name} only stores grid maps")
        primary = ByteStream()
        # Formats with companion files add a stream per role
        supps: Supplementals = {}
        self.write_fn(game_map, primary, supps)
        return primary.getvalue(), {role: s.getvalue() for role, s in supps.items()}

    def write(
        self,
        game_map: Map,
        output: Union[ByteStream, BinaryIO],
        supplementals: Optional[dict[str, Union[ByteStream, BinaryIO]]] = None,
    ) -> None:
        """Serialise a map to `output`.

        Nothing is written to `output` or the supplemental outputs unless the
        whole map encodes successfully.
        """
        data, supp_data = self.encode(game_map)
        if not isinstance(output, ByteStream):
            output = ByteStream(output)
        output.write(data)
        output.flush()
        for role, target in (supplementals or {}).items():
            if role not in supp_data:
                continue
            if not isinstance(target, ByteStream):
                target = ByteStream(target)
            target.write(supp_data[role])
            target.flush()

    def describe(self) -> dict[str, object]:
        return {
            "code": self.code,
            "name": self.name,
            "extensions": list(self.extensions),
            "games": list(self.games),
        }


def validate_map(handler: FormatHandler, game_map: Map) -> ValidationResult:
    """Run the generic checks for `handler` followed by its own checks.

    Generic checks cover the map type, layer/attribute/path counts, attribute
    types and ranges, path lengths, item bounds, tile codes and placement
    rules. Every check runs in time linear in the number of items.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not isinstance(game_map, GridMap):
        errors.append(f"{handler.name} only stores grid maps")
        return ValidationResult(is_valid=False, errors=errors, warnings=warnings)

    if len(game_map.layers) != handler.layer_count:
        errors.append(
            f"Incorrect layer count: expected {handler.layer_count}, "
            f"got {len(game_map.layers)}"
        )

    _check_attributes(handler, game_map, errors)
    _check_paths(handler, game_map, errors)

    # Per-layer checks only make sense once the layer count is right
    if not errors:
        for layer in game_map.layers:
            width, height, _, _ = game_map.layer_dimensions(layer)
            valid_codes = layer.valid_codes
            counts: Counter[int] = Counter()
            for item in layer.items:
                if not (0 <= item.x < width and 0 <= item.y < height):
                    errors.append(
                        f"Layer {layer.title!r}: item at ({item.x}, {item.y}) is "
                        f"outside the {width}x{height} grid"
                    )
                    continue
                if valid_codes and item.code not in valid_codes:
                    errors.append(_code_error(layer, item))
                if not layer.placement.permits(item.code, item.x, item.y):
                    errors.append(
                        f"Layer {layer.title!r}: code {item.code} may not be "
                        f"placed at ({item.x}, {item.y})"
                    )
                counts[item.code] += 1
            for code, count in counts.items():
                limit = layer.placement.max_instances(code)
                if limit and count > limit:
                    errors.append(
                        f"Layer {layer.title!r}: code {code} appears {count} "
                        f"times (max {limit})"
                    )

    if not errors and handler.validate_fn is not None:
        handler.validate_fn(game_map, errors, warnings)

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def _code_error(layer: Layer, item: Item) -> str:
    return (
        f"Layer {layer.title!r}: tile code {item.code} at "
        f"({item.x}, {item.y}) is out of range"
    )


def check_tile_codes(game_map: GridMap) -> list[str]:
    """List every item whose code its layer does not accept.

    Layers without a list of valid codes accept anything.
    """
    errors: list[str] = []
    for layer in game_map.layers:
        valid_codes = layer.valid_codes
        if not valid_codes:
            continue
        errors.extend(
            _code_error(layer, item) for item in layer.items if item.code not in valid_codes
        )
    return errors


def _check_attributes(handler: FormatHandler, game_map: GridMap, errors: list[str]) -> None:
    expected = handler.attribute_types
    if len(game_map.attributes) != len(expected):
        errors.append(
            f"Incorrect attribute count: expected {len(expected)}, "
            f"got {len(game_map.attributes)}"
        )
        return
    for index, (attr, attr_type) in enumerate(zip(game_map.attributes, expected)):
        if not isinstance(attr, attr_type):
            errors.append(
                f"Attribute {index} ({attr.name!r}) should be "
                f"{attr_type.__name__}, not {type(attr).__name__}"
            )
            continue
        if isinstance(attr, EnumAttribute):
            if not 0 <= attr.value < len(attr.choices):
                errors.append(
                    f"Attribute {attr.name!r}: value {attr.value} is not one of "
                    f"the {len(attr.choices)} choices"
                )
        elif isinstance(attr, IntegerAttribute) and attr.is_limited:
            if not attr.minimum <= attr.value <= attr.maximum:
                errors.append(
                    f"Attribute {attr.name!r}: value {attr.value} is outside "
                    f"{attr.minimum}..{attr.maximum}"
                )


def _check_paths(handler: FormatHandler, game_map: GridMap, errors: list[str]) -> None:
    if handler.path_count is not None and len(game_map.paths) != handler.path_count:
        errors.append(
            f"Incorrect path count: expected {handler.path_count}, "
            f"got {len(game_map.paths)}"
        )
    for index, path in enumerate(game_map.paths):
        if path.max_points and len(path.points) > path.max_points:
            errors.append(
                f"Path {index} has {len(path.points)} points (max {path.max_points})"
            )
