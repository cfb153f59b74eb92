"""
Dangerous Dave levels (.dav).

Fixed 1280-byte layout: a 256-byte path block, a 100x10 byte grid and 24
bytes of padding.
"""

from ..codecs.grid import decode_grid, encode_grid
from ..codecs.paths import decode_path, encode_path
from ..maps.models import GridMap, Item, Layer, MapCaps, Path
from ..stream import ByteStream
from ..tilesets.models import GraphicsRole
from ..tilesets.resolvers import IndexedImage
from .base import Confidence, FormatHandler, Supplementals

MAP_WIDTH = 100
MAP_HEIGHT = 10
TILE_WIDTH = 16
TILE_HEIGHT = 16

PATH_LEN = 256
GRID_LEN = MAP_WIDTH * MAP_HEIGHT
PAD_LEN = 24
FILE_SIZE = PATH_LEN + GRID_LEN + PAD_LEN

DEFAULT_TILE = 0x00
MAX_TILE = 52
PATH_END = (0xEA, 0xEA)
MAX_PATH_POINTS = PATH_LEN // 2


def _identify(stream: ByteStream) -> Confidence:
    if stream.size() != FILE_SIZE:
        return Confidence.DEFINITELY_NO
    stream.seek(PATH_LEN)
    if max(stream.read_exact(GRID_LEN)) > MAX_TILE:
        return Confidence.DEFINITELY_NO
    return Confidence.DEFINITELY_YES


def _open(stream: ByteStream, supplementals: Supplementals) -> GridMap:
    path = Path(
        points=decode_path(stream.read_exact(PATH_LEN), PATH_END),
        max_points=MAX_PATH_POINTS,
        fixed=True,
        force_closed=False,
        # Copies of the path used by the enemies in level 3
        starts=[(44 * TILE_WIDTH, 4 * TILE_HEIGHT), (59 * TILE_WIDTH, 4 * TILE_HEIGHT)],
    )

    items = decode_grid(
        list(stream.read_exact(GRID_LEN)), MAP_WIDTH, MAP_HEIGHT, DEFAULT_TILE, MAX_TILE
    )
    background = Layer(
        title="Background",
        items=items,
        valid_items=[Item(0, 0, code) for code in range(MAX_TILE + 1)],
        resolver=IndexedImage(GraphicsRole.BACKGROUND_TILESET),
    )

    return GridMap(
        width=MAP_WIDTH,
        height=MAP_HEIGHT,
        tile_width=TILE_WIDTH,
        tile_height=TILE_HEIGHT,
        viewport=(20 * TILE_WIDTH, 10 * TILE_HEIGHT),
        caps=MapCaps.HAS_VIEWPORT | MapCaps.HAS_PATHS | MapCaps.FIXED_PATH_COUNT,
        layers=[background],
        paths=[path],
    )


def _write(game_map: GridMap, stream: ByteStream, supplementals: Supplementals) -> None:
    stream.write(encode_path(game_map.paths[0].points, PATH_LEN, PATH_END))
    stream.write(bytes(encode_grid(game_map.layers[0].items, MAP_WIDTH, MAP_HEIGHT, DEFAULT_TILE)))
    stream.write(bytes(PAD_LEN))


def _validate(game_map: GridMap, errors: list[str], warnings: list[str]) -> None:
    if (game_map.width, game_map.height) != (MAP_WIDTH, MAP_HEIGHT):
        errors.append(
            f"Map must be {MAP_WIDTH}x{MAP_HEIGHT} tiles, not "
            f"{game_map.width}x{game_map.height}"
        )


HANDLER = FormatHandler(
    code="map-ddave",
    name="Dangerous Dave level",
    extensions=("dav",),
    games=("Dangerous Dave",),
    identify_fn=_identify,
    open_fn=_open,
    write_fn=_write,
    validate_fn=_validate,
    layer_count=1,
    path_count=1,
)
