"""Tests for format lookup, autodetection and file-level open/save."""

import io
import logging
import struct
from pathlib import Path

import pytest

from dosmaps.errors import (
    FormatMismatchError,
    StreamError,
    UndeterminedFormatError,
    UnknownFormatError,
    ValidationError,
)
from dosmaps.formats import Confidence, FormatHandler, FormatRegistry
from dosmaps.maps import GridMap, Item
from dosmaps.settings import AppSettings
from dosmaps.stream import ByteStream


def _ddave_level(tile: int = 1, path: bytes = b"\xea\xea") -> bytes:
    grid = bytearray(1000)
    grid[0] = tile
    return path.ljust(256, b"\x00") + bytes(grid) + bytes(24)


def _wordresc_level() -> bytes:
    out = struct.pack("<9H", 2, 1, 0, 1, 0, 0, 0, 2, 0)
    out += struct.pack("<4H", 0, 0, 0, 0)
    out += struct.pack("<14H", *([0] * 14))
    out += struct.pack("<2H", 0, 0)
    return out + b"\x02\xff" + b"\x08\x20"


def _fake(code: str, confidence: Confidence, supps: dict[str, str] | None = None) -> FormatHandler:
    return FormatHandler(
        code=code,
        name=f"Fake {code}",
        extensions=("bin",),
        games=("Test",),
        identify_fn=lambda stream: confidence,
        open_fn=lambda stream, supplementals: GridMap(),
        write_fn=lambda game_map, stream, supplementals: None,
        supps_fn=(lambda stream, filename: dict(supps)) if supps else None,
    )


class TestRegistryLookup:
    """Test registration and lookup."""

    def test_list_formats(self, registry: FormatRegistry) -> None:
        codes = [fmt["code"] for fmt in registry.list_formats()]
        assert codes == [
            "map-ddave", "map-ccaves", "map-ccomic", "map-nukem2", "map-wordresc", "map-cosmo",
        ]
        ddave = registry.list_formats()[0]
        assert ddave["extensions"] == ["dav"]
        assert ddave["games"] == ["Dangerous Dave"]

    def test_unknown_code(self, registry: FormatRegistry) -> None:
        with pytest.raises(UnknownFormatError):
            registry.lookup("map-nope")
        with pytest.raises(KeyError):
            registry.lookup("map-nope")

    def test_duplicate_code(self) -> None:
        handler = _fake("fake", Confidence.UNSURE)
        with pytest.raises(ValueError):
            FormatRegistry([handler, handler])


class TestDetection:
    """Test autodetection order and supplemental promotion."""

    def test_definite_match(self, registry: FormatRegistry) -> None:
        result = registry.detect(_ddave_level())
        assert result.is_determined
        assert result.handler.code == "map-ddave"
        assert result.confidence == Confidence.DEFINITELY_YES

    def test_undetermined(self, registry: FormatRegistry) -> None:
        """Test unrecognised data is a result, not an exception."""
        result = registry.detect(b"\x00\x01\x02")
        assert not result.is_determined
        assert result.candidates == []

    def test_unsure_tie_goes_to_first(self) -> None:
        registry = FormatRegistry([
            _fake("first", Confidence.UNSURE),
            _fake("second", Confidence.UNSURE),
        ])
        result = registry.detect(b"data")
        assert result.handler.code == "first"
        assert result.confidence == Confidence.UNSURE
        assert len(result.candidates) == 2

    def test_possibly_yes_beats_unsure(self) -> None:
        registry = FormatRegistry([
            _fake("unsure", Confidence.UNSURE),
            _fake("likely", Confidence.POSSIBLY_YES),
            _fake("later", Confidence.UNSURE),
        ])
        assert registry.detect(b"data").handler.code == "likely"

    def test_definite_stops_search(self) -> None:
        """Test handlers after a definite match are not consulted."""
        calls: list[str] = []

        def identify(stream: ByteStream) -> Confidence:
            calls.append("late")
            return Confidence.POSSIBLY_YES

        late = FormatHandler(
            code="late", name="Late", extensions=(), games=(),
            identify_fn=identify,
            open_fn=lambda stream, supplementals: GridMap(),
            write_fn=lambda game_map, stream, supplementals: None,
        )
        registry = FormatRegistry([_fake("sure", Confidence.DEFINITELY_YES), late])
        assert registry.detect(b"data").handler.code == "sure"
        assert calls == []

    def test_supplementals_promote_candidate(self, tmp_path: Path) -> None:
        """Test a candidate whose companion file exists wins over an earlier one."""
        (tmp_path / "level.d1").write_bytes(b"")
        registry = FormatRegistry([
            _fake("plain", Confidence.UNSURE),
            _fake("paired", Confidence.UNSURE, {"layer1": "level.d1"}),
        ])
        result = registry.detect(b"data", filename=tmp_path / "level.s1")
        assert result.handler.code == "paired"
        assert result.confidence == Confidence.POSSIBLY_YES

    def test_missing_supplementals_do_not_promote(self, tmp_path: Path) -> None:
        registry = FormatRegistry([
            _fake("plain", Confidence.UNSURE),
            _fake("paired", Confidence.UNSURE, {"layer1": "level.d1"}),
        ])
        result = registry.detect(b"data", filename=tmp_path / "level.s1")
        assert result.handler.code == "plain"
        assert result.confidence == Confidence.UNSURE

    def test_supplemental_check_disabled(self, tmp_path: Path, settings: AppSettings) -> None:
        """Test the settings can turn companion file checks off."""
        (tmp_path / "level.d1").write_bytes(b"")
        settings.formats.check_supplementals = False
        registry = FormatRegistry([
            _fake("plain", Confidence.UNSURE),
            _fake("paired", Confidence.UNSURE, {"layer1": "level.d1"}),
        ], settings)
        assert registry.detect(b"data", filename=tmp_path / "level.s1").handler.code == "plain"


class TestRegistryOpen:
    """Test opening streams with and without a format code."""

    def test_open_autodetected(self, registry: FormatRegistry) -> None:
        game_map = registry.open(_ddave_level(tile=7))
        assert game_map.layers[0].items == [Item(0, 0, 7)]

    def test_open_undetermined(self, registry: FormatRegistry) -> None:
        with pytest.raises(UndeterminedFormatError):
            registry.open(b"\x00\x01\x02")

    def test_open_unknown_code(self, registry: FormatRegistry) -> None:
        with pytest.raises(UnknownFormatError):
            registry.open(_ddave_level(), code="map-nope")

    def test_open_mismatch(self, registry: FormatRegistry) -> None:
        with pytest.raises(FormatMismatchError):
            registry.open(_ddave_level(), code="map-ccomic")

    def test_open_forced(self, registry: FormatRegistry, caplog: pytest.LogCaptureFixture) -> None:
        """Test forcing skips the format check but not the tile code check."""
        data = _ddave_level(tile=7) + b"\x00"
        with pytest.raises(FormatMismatchError):
            registry.open(data, code="map-ddave")
        with caplog.at_level(logging.WARNING):
            game_map = registry.open(data, code="map-ddave", force=True)
        assert game_map.layers[0].items == [Item(0, 0, 7)]
        assert "open forced" in caplog.text

    def test_open_forced_bad_code(self, registry: FormatRegistry) -> None:
        data = _ddave_level(tile=60)
        with pytest.raises(FormatMismatchError):
            registry.open(data, code="map-ddave")
        with pytest.raises(ValidationError):
            registry.open(data, code="map-ddave", force=True)

    def test_default_format_fallback(self, settings: AppSettings) -> None:
        """Test the configured default format is used when detection fails."""
        settings.formats.default_format = "map-ddave"
        settings.formats.force_open = True
        registry = FormatRegistry.default(settings)
        data = _ddave_level(tile=5, path=b"\x01\x01\x02\x03\xea\xea") + b"\x00"
        assert registry.detect(ByteStream(data)).handler is None
        game_map = registry.open(data)
        assert game_map.layers[0].items == [Item(0, 0, 5)]


class TestRegistryFiles:
    """Test file-level open and save."""

    def test_save_and_open_file(self, registry: FormatRegistry, tmp_path: Path) -> None:
        data = _ddave_level(tile=3)
        game_map = registry.open(data)
        path = tmp_path / "level1.dav"
        registry.save_file(game_map, "map-ddave", path)
        assert path.read_bytes() == data
        assert registry.open_file(path).layers[0].items == [Item(0, 0, 3)]

    def test_failed_save_keeps_old_file(self, registry: FormatRegistry, tmp_path: Path) -> None:
        """Test a map that fails validation leaves the existing file alone."""
        path = tmp_path / "level1.dav"
        path.write_bytes(b"original")
        game_map = registry.open(_ddave_level())
        game_map.layers[0].add_item(Item(0, 10, 1))
        with pytest.raises(ValidationError):
            registry.save_file(game_map, "map-ddave", path)
        assert path.read_bytes() == b"original"

    def test_write_to_stream(self, registry: FormatRegistry) -> None:
        data = _ddave_level(tile=2)
        output = io.BytesIO()
        registry.write(registry.open(data), "map-ddave", output)
        assert output.getvalue() == data

    def test_open_file_with_supplemental(self, registry: FormatRegistry, tmp_path: Path) -> None:
        """Test the companion file is found next to the level."""
        path = tmp_path / "level.s1"
        path.write_bytes(_wordresc_level())
        with pytest.raises(StreamError):
            registry.open_file(path)
        (tmp_path / "level.d1").write_bytes(b"")
        game_map = registry.open_file(path)
        assert (game_map.width, game_map.height) == (2, 1)

    def test_open_missing_file(self, registry: FormatRegistry, tmp_path: Path) -> None:
        with pytest.raises(StreamError):
            registry.open_file(tmp_path / "missing.dav")
