"""
Captain Comic levels (.pt).

A u16 width and height followed by one byte per cell. Every cell holds a
drawable tile, including code 0, so every cell becomes an item.
"""

from ..codecs.grid import read_byte_grid, write_byte_grid
from ..errors import FormatError
from ..maps.models import GridMap, Item, Layer, MapCaps
from ..stream import ByteStream
from ..tilesets.models import GraphicsRole
from ..tilesets.resolvers import IndexedImage
from .base import Confidence, FormatHandler, Supplementals

TILE_WIDTH = 16
TILE_HEIGHT = 16
HEADER_LEN = 4

DEFAULT_TILE = 0x00
MAX_TILE = 87


def _identify(stream: ByteStream) -> Confidence:
    size = stream.size()
    if size < HEADER_LEN:
        return Confidence.DEFINITELY_NO
    width = stream.read_u16le()
    height = stream.read_u16le()
    cells = width * height
    if size != HEADER_LEN + cells:
        return Confidence.DEFINITELY_NO
    if cells and max(stream.read_exact(cells)) > MAX_TILE:
        return Confidence.DEFINITELY_NO
    return Confidence.DEFINITELY_YES


def _open(stream: ByteStream, supplementals: Supplementals) -> GridMap:
    width = stream.read_u16le()
    height = stream.read_u16le()
    expected = HEADER_LEN + width * height
    if stream.size() != expected:
        raise FormatError(
            f"A {width}x{height} map takes {expected} bytes, but the data is {stream.size()}"
        )
    background = Layer(
        title="Background",
        items=read_byte_grid(stream, width, height, skip_code=None, max_code=MAX_TILE),
        valid_items=[Item(0, 0, code) for code in range(MAX_TILE + 1)],
        resolver=IndexedImage(GraphicsRole.BACKGROUND_TILESET),
    )
    return GridMap(
        width=width,
        height=height,
        tile_width=TILE_WIDTH,
        tile_height=TILE_HEIGHT,
        viewport=(193, 160),
        caps=MapCaps.HAS_VIEWPORT | MapCaps.CAN_RESIZE,
        layers=[background],
    )


def _write(game_map: GridMap, stream: ByteStream, supplementals: Supplementals) -> None:
    stream.write_u16le(game_map.width)
    stream.write_u16le(game_map.height)
    write_byte_grid(
        stream, game_map.layers[0].items, game_map.width, game_map.height, DEFAULT_TILE
    )


def _validate(game_map: GridMap, errors: list[str], warnings: list[str]) -> None:
    for name, value in (("width", game_map.width), ("height", game_map.height)):
        if not 0 < value <= 0xFFFF:
            errors.append(f"Map {name} {value} does not fit in 16 bits")


HANDLER = FormatHandler(
    code="map-ccomic",
    name="Captain Comic level",
    extensions=("pt",),
    games=("Captain Comic",),
    identify_fn=_identify,
    open_fn=_open,
    write_fn=_write,
    validate_fn=_validate,
    layer_count=1,
    path_count=0,
)
