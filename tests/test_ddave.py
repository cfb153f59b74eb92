"""Tests for the Dangerous Dave level format."""

import io

import pytest

from dosmaps.errors import EncodingLimitError, ValidationError
from dosmaps.formats.base import Confidence
from dosmaps.formats.ddave import FILE_SIZE, HANDLER
from dosmaps.maps import Item, Map, MapCaps
from dosmaps.stream import ByteStream


def _level(path: bytes = b"\x01\x01\x02\x03\xea\xea", grid: bytes | None = None) -> bytes:
    if grid is None:
        cells = bytearray(1000)
        cells[0] = 1
        cells[105] = 52
        grid = bytes(cells)
    return path.ljust(256, b"\x00") + grid + bytes(24)


class TestDdaveIdentify:
    """Test Dangerous Dave detection."""

    def test_valid_level(self) -> None:
        assert HANDLER.identify(ByteStream(_level())) == Confidence.DEFINITELY_YES

    def test_wrong_size(self) -> None:
        assert HANDLER.identify(ByteStream(_level() + b"\x00")) == Confidence.DEFINITELY_NO

    def test_tile_code_too_high(self) -> None:
        """Test a code above the last tile rules the format out."""
        grid = bytearray(1000)
        grid[10] = 53
        assert HANDLER.identify(ByteStream(_level(grid=bytes(grid)))) == Confidence.DEFINITELY_NO

    def test_identify_rewinds(self) -> None:
        stream = ByteStream(_level())
        HANDLER.identify(stream)
        assert stream.tell() == 0


class TestDdaveOpen:
    """Test reading Dangerous Dave levels."""

    def test_open_level(self) -> None:
        """Test the grid, path and fixed properties are read."""
        game_map = HANDLER.open(ByteStream(_level()))
        assert (game_map.width, game_map.height) == (100, 10)
        assert (game_map.tile_width, game_map.tile_height) == (16, 16)
        assert game_map.viewport == (320, 160)
        assert game_map.caps & MapCaps.FIXED_PATH_COUNT
        assert game_map.layers[0].items == [Item(0, 0, 1), Item(5, 1, 52)]
        path = game_map.paths[0]
        assert path.points == [(1, 1), (3, 4)]
        assert path.fixed
        assert path.max_points == 128
        assert path.starts == [(704, 64), (944, 64)]

    def test_round_trip(self) -> None:
        """Test writing an opened level reproduces the file."""
        data = _level()
        output = io.BytesIO()
        HANDLER.write(HANDLER.open(ByteStream(data)), output)
        assert output.getvalue() == data
        assert len(data) == FILE_SIZE

    def test_tile_code_too_high_rejected(self) -> None:
        """Test a code past the last tile is refused rather than loaded."""
        grid = bytearray(1000)
        grid[10] = 200
        with pytest.raises(ValidationError, match="200"):
            HANDLER.open(ByteStream(_level(grid=bytes(grid))))


class TestDdaveWrite:
    """Test write validation for Dangerous Dave levels."""

    def test_item_outside_grid(self) -> None:
        """Test an out-of-bounds item fails validation and nothing is written."""
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.layers[0].add_item(Item(100, 0, 1))
        output = io.BytesIO()
        with pytest.raises(ValidationError) as exc_info:
            HANDLER.write(game_map, output)
        assert output.getvalue() == b""
        assert "outside" in exc_info.value.errors[0]

    def test_tile_code_out_of_range(self) -> None:
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.layers[0].add_item(Item(1, 1, 60))
        with pytest.raises(ValidationError):
            HANDLER.write(game_map, io.BytesIO())

    def test_non_grid_map_rejected(self) -> None:
        with pytest.raises(ValidationError, match="only stores grid maps"):
            HANDLER.encode(Map())

    def test_missing_path(self) -> None:
        """Test the single fixed path cannot be removed."""
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.paths.clear()
        assert not HANDLER.validate(game_map).is_valid

    def test_resize_rejected(self) -> None:
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.width = 50
        result = HANDLER.validate(game_map)
        assert not result.is_valid
        assert any("100x10" in error for error in result.errors)

    def test_path_too_far(self) -> None:
        """Test a path jump larger than a signed byte cannot be stored."""
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.paths[0].points.append((300, 4))
        with pytest.raises(EncodingLimitError):
            HANDLER.write(game_map, io.BytesIO())
