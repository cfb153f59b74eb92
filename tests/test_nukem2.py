"""Tests for the Duke Nukem II level format."""

import io
import struct

import pytest

from dosmaps.errors import EncodingLimitError, FormatError, ValidationError
from dosmaps.formats.base import Confidence
from dosmaps.formats.nukem2 import GRID_CELLS, HANDLER, MAX_ACTORS
from dosmaps.maps import IntegerAttribute, Item
from dosmaps.stream import ByteStream
from dosmaps.tilesets import GraphicsRole

WIDTH = 50

# Cell 51 holds both layers and needs overflow bits (2 << 6 in byte 12)
OVERFLOW = b"\x0c\x00\xff\x80\x00\x00"


def _cells() -> list[int]:
    cells = [0] * GRID_CELLS
    cells[0] = 5 * 8
    cells[1] = (7 * 5 + 1000) * 8
    cells[WIDTH + 1] = 0x8000 | 12 | (3 << 10)
    return cells


def _level(
    actors: tuple = ((20, 3, 4), (0x101, 49, 600)),
    overflow: bytes = OVERFLOW,
    trailer: bool = True,
) -> bytes:
    out = bytearray(struct.pack("<H", 47 + len(actors) * 6))
    for name in ("czone1.mni", "drop1.mni", "music.imf"):
        out += name.encode("latin-1").ljust(12, b" ") + b"\x00"
    out += struct.pack("<BBHH", 3, 2, 0, len(actors) * 3)
    for actor in actors:
        out += struct.pack("<3H", *actor)
    out += struct.pack("<H", WIDTH)
    out += struct.pack(f"<{GRID_CELLS}H", *_cells())
    out += struct.pack("<H", len(overflow)) + overflow
    if trailer:
        for name in ("attr1.mni", "", ""):
            out += name.encode("latin-1").ljust(13, b"\x00")
    return bytes(out)


class TestNukem2Identify:
    """Test Duke Nukem II detection."""

    def test_exact_size(self) -> None:
        assert HANDLER.identify(ByteStream(_level())) == Confidence.DEFINITELY_YES

    def test_missing_trailer(self) -> None:
        """Test a file without the trailing filenames is still a likely match."""
        assert HANDLER.identify(ByteStream(_level(trailer=False))) == Confidence.POSSIBLY_YES

    def test_overflow_overrun(self) -> None:
        """Test an overflow length past the end of the file rules it out."""
        data = bytearray(_level(trailer=False))
        offset = 47 + 12 + 2 + GRID_CELLS * 2
        data[offset:offset + 2] = struct.pack("<H", 0x1000)
        assert HANDLER.identify(ByteStream(bytes(data))) == Confidence.DEFINITELY_NO

    def test_too_short(self) -> None:
        assert HANDLER.identify(ByteStream(bytes(100))) == Confidence.DEFINITELY_NO


class TestNukem2Open:
    """Test reading Duke Nukem II levels."""

    def test_layers(self) -> None:
        """Test the dual-layer grid and actors are split into three layers."""
        game_map = HANDLER.open(ByteStream(_level()))
        assert (game_map.width, game_map.height) == (WIDTH, GRID_CELLS // WIDTH)
        background, foreground, actors = game_map.layers
        assert background.items == [Item(0, 0, 5), Item(1, 1, 12)]
        assert foreground.items == [Item(1, 0, 7), Item(1, 1, 67)]
        assert actors.items == [Item(3, 4, 20), Item(49, 600, 0x101)]

    def test_attributes(self) -> None:
        game_map = HANDLER.open(ByteStream(_level()))
        values = [attr.value for attr in game_map.attributes]
        assert values == ["czone1.mni", "drop1.mni", "music.imf", 3, 2, "attr1.mni", "", ""]

    def test_graphics_follow_czone_attribute(self) -> None:
        """Test the tileset filename is taken from the current attribute value."""
        game_map = HANDLER.open(ByteStream(_level()))
        graphics = game_map.graphics_filenames()
        assert graphics[GraphicsRole.BACKGROUND_TILESET].filename == "czone1.mni"
        game_map.attributes[0].value = "czone2.mni"
        graphics = game_map.graphics_filenames()
        assert graphics[GraphicsRole.BACKGROUND_TILESET].filename == "czone2.mni"

    def test_bad_width(self) -> None:
        data = bytearray(_level())
        offset = 47 + 12
        data[offset:offset + 2] = b"\x00\x00"
        with pytest.raises(FormatError):
            HANDLER.open(ByteStream(bytes(data)))


class TestNukem2Write:
    """Test writing Duke Nukem II levels."""

    def test_round_trip(self) -> None:
        data = _level()
        output = io.BytesIO()
        HANDLER.write(HANDLER.open(ByteStream(data)), output)
        assert output.getvalue() == data

    def test_round_trip_without_actors(self) -> None:
        """Test the grid offset follows the actor block size."""
        data = _level(actors=())
        output = io.BytesIO()
        HANDLER.write(HANDLER.open(ByteStream(data)), output)
        assert output.getvalue() == data

    def test_filename_too_long(self) -> None:
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.attributes[1].value = "averylongname.mni"
        with pytest.raises(ValidationError):
            HANDLER.write(game_map, io.BytesIO())

    def test_alt_backdrop_range(self) -> None:
        """Test 0 (no alternate backdrop) through 24 are accepted."""
        game_map = HANDLER.open(ByteStream(_level()))
        attr = game_map.attributes[4]
        assert isinstance(attr, IntegerAttribute)
        assert (attr.minimum, attr.maximum) == (0, 24)
        for value in (0, 24):
            attr.value = value
            assert HANDLER.validate(game_map).is_valid
        attr.value = 25
        assert not HANDLER.validate(game_map).is_valid

    def test_foreground_too_large_for_shared_cell(self) -> None:
        """Test a masked tile above the shared-cell limit cannot sit on a solid tile."""
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.layers[1].add_item(Item(0, 0, 150))
        with pytest.raises(EncodingLimitError):
            HANDLER.write(game_map, io.BytesIO())

    def test_too_many_actors(self) -> None:
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.layers[2].items = [Item(0, 0, 1)] * (MAX_ACTORS + 1)
        with pytest.raises(EncodingLimitError):
            HANDLER.write(game_map, io.BytesIO())

    def test_grid_too_large(self) -> None:
        game_map = HANDLER.open(ByteStream(_level()))
        game_map.height += 1
        assert not HANDLER.validate(game_map).is_valid
