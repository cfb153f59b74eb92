"""
Crystal Caves levels.

Each row is a length byte (always 40) followed by 40 tile bytes, so the map
height is the file size divided by 41. 0x20 is an empty cell.

Objects drawn from several tiles keep their first tile in the grid and mark
the other cells they cover with 0x6E. Vines are handled differently: cells
marked 0x6E above a vine are filled in with the vine tile when the level is
opened. A few tiles also exist under a second code, which is replaced by
the usual one.
"""

import logging

from ..codecs.grid import decode_grid, encode_grid
from ..errors import FormatError
from ..maps.models import GridMap, Item, Layer
from ..stream import ByteStream
from ..tilesets.models import GraphicsRole, ImageKind
from ..tilesets.resolvers import CodeTable, IndexedImage
from .base import Confidence, FormatHandler, Supplementals

logger = logging.getLogger(__name__)

MAP_WIDTH = 40
ROW_LEN = MAP_WIDTH + 1
MAX_HEIGHT = 100
TILE_WIDTH = 16
TILE_HEIGHT = 16

DEFAULT_TILE = 0x20
MAX_TILE = 0xFE
CONTINUATION = 0x6E
SIGN = 0x5B

VINE_TILES = frozenset({0x86, 0x87, 0x88})
TILE_ALIASES = {0xFD: 0x91, 0xFE: 0x92, 0x4B: 0x43}

BACKGROUND_RESOLVER = CodeTable(
    {CONTINUATION: ImageKind.BLANK},
    default=IndexedImage(GraphicsRole.BACKGROUND_TILESET),
)


def _identify(stream: ByteStream) -> Confidence:
    size = stream.size()
    if size == 0 or size % ROW_LEN:
        return Confidence.DEFINITELY_NO
    height = size // ROW_LEN
    if height > MAX_HEIGHT:
        return Confidence.DEFINITELY_NO
    for _ in range(height):
        if stream.read_u8() != MAP_WIDTH:
            return Confidence.DEFINITELY_NO
        if max(stream.read_exact(MAP_WIDTH)) > MAX_TILE:
            return Confidence.DEFINITELY_NO
    return Confidence.DEFINITELY_YES


def _is_sign_text(cells: list[int], index: int) -> bool:
    # The byte after a sign marker is the sign's text, not a tile
    return index % MAP_WIDTH > 0 and cells[index - 1] == SIGN


def _normalise(cells: list[int], height: int) -> None:
    """Replace duplicate tile codes and fill in vine continuations, in place."""
    changed = 0
    for i, code in enumerate(cells):
        if code in TILE_ALIASES and not _is_sign_text(cells, i):
            cells[i] = TILE_ALIASES[code]
            changed += 1

    # Bottom-up so a vine several cells tall is filled from its base
    for y in range(height - 2, -1, -1):
        for x in range(MAP_WIDTH):
            i = y * MAP_WIDTH + x
            below = cells[i + MAP_WIDTH]
            if cells[i] == CONTINUATION and below in VINE_TILES and not _is_sign_text(cells, i):
                cells[i] = below
                changed += 1

    if changed:
        logger.debug(f"Normalised {changed} cells")


def _open(stream: ByteStream, supplementals: Supplementals) -> GridMap:
    size = stream.size()
    if size == 0 or size % ROW_LEN:
        raise FormatError(f"Data size {size} is not a whole number of {ROW_LEN}-byte rows")
    height = size // ROW_LEN
    if height > MAX_HEIGHT:
        raise FormatError(f"Map has {height} rows, the most allowed is {MAX_HEIGHT}")

    cells: list[int] = []
    for y in range(height):
        row_len = stream.read_u8()
        if row_len != MAP_WIDTH:
            raise FormatError(f"Row {y} claims {row_len} tiles, expected {MAP_WIDTH}")
        cells.extend(stream.read_exact(MAP_WIDTH))
    _normalise(cells, height)

    background = Layer(
        title="Background",
        items=decode_grid(cells, MAP_WIDTH, height, DEFAULT_TILE, MAX_TILE),
        valid_items=[Item(0, 0, code) for code in range(MAX_TILE + 1)],
        resolver=BACKGROUND_RESOLVER,
    )
    return GridMap(
        width=MAP_WIDTH,
        height=height,
        tile_width=TILE_WIDTH,
        tile_height=TILE_HEIGHT,
        layers=[background],
    )


def _write(game_map: GridMap, stream: ByteStream, supplementals: Supplementals) -> None:
    cells = encode_grid(game_map.layers[0].items, MAP_WIDTH, game_map.height, DEFAULT_TILE)
    for y in range(game_map.height):
        stream.write_u8(MAP_WIDTH)
        stream.write(bytes(cells[y * MAP_WIDTH:(y + 1) * MAP_WIDTH]))


def _validate(game_map: GridMap, errors: list[str], warnings: list[str]) -> None:
    if game_map.width != MAP_WIDTH:
        errors.append(f"Map must be {MAP_WIDTH} tiles wide, not {game_map.width}")
    if not 0 < game_map.height <= MAX_HEIGHT:
        errors.append(f"Map height {game_map.height} is outside 1..{MAX_HEIGHT}")


HANDLER = FormatHandler(
    code="map-ccaves",
    name="Crystal Caves level",
    extensions=("ccl",),
    games=("Crystal Caves",),
    identify_fn=_identify,
    open_fn=_open,
    write_fn=_write,
    validate_fn=_validate,
    layer_count=1,
    path_count=0,
)
