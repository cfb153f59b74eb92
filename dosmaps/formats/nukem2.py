"""
Duke Nukem II levels (.mni).

Layout:
    u16      offset of the grid block
    13 x 3   CZone, backdrop and music filenames (space padded, NUL ended)
    u8       flags
    u8       alternate backdrop number
    u16      reserved
    u16      actor word count, followed by (code, x, y) u16 triples
    grid     u16 width, 32750 dual-layer cell values
    overflow u16 length, run-length compressed overflow bits
    13 x 3   zone attribute, solid and masked tileset filenames (NUL padded)
"""

import logging

from ..codecs.dualgrid import (
    DualCellLayout,
    decode_cells,
    decode_overflow_rle,
    encode_cells,
    encode_overflow_rle,
    pack_overflow,
    unpack_overflow,
)
from ..errors import EncodingLimitError, FormatError
from ..maps.models import (
    FilenameAttribute,
    GraphicsFilename,
    GridMap,
    IntegerAttribute,
    Item,
    Layer,
    Map,
    MapCaps,
)
from ..stream import ByteStream
from ..tilesets.models import GraphicsRole
from ..tilesets.resolvers import IndexedImage
from .base import Confidence, FormatHandler, Supplementals

logger = logging.getLogger(__name__)

TILE_WIDTH = 8
TILE_HEIGHT = 8
VIEWPORT = (256, 160)

FILENAME_LEN = 13
FILENAME_MAX = 12
HEADER_LEN = 2 + FILENAME_LEN * 3 + 1 + 1 + 2 + 2
GRID_CELLS = 32750
GRID_LEN = 2 + GRID_CELLS * 2
TRAILER_LEN = FILENAME_LEN * 3

NUM_SOLID_TILES = 1000
NUM_MASKED_TILES = 160
ACTOR_WORDS = 3
MAX_ACTORS = (0xFFFF - HEADER_LEN) // (ACTOR_WORDS * 2)

LAYOUT = DualCellLayout(solid_tiles=NUM_SOLID_TILES)

# Sub-tilesets inside the CZone tileset
CZONE_SOLID = 0
CZONE_MASKED = 1


def _identify(stream: ByteStream) -> Confidence:
    size = stream.size()
    if size < HEADER_LEN + GRID_LEN:
        return Confidence.DEFINITELY_NO

    grid_offset = stream.read_u16le()
    if grid_offset > size - GRID_LEN:
        return Confidence.DEFINITELY_NO

    stream.skip(FILENAME_LEN * 3 + 4)
    actor_words = stream.read_u16le()
    if HEADER_LEN + actor_words * 2 + GRID_LEN > size:
        return Confidence.DEFINITELY_NO

    stream.seek(grid_offset + GRID_LEN)
    extra_len = stream.read_u16le()
    data_end = grid_offset + GRID_LEN + 2 + extra_len
    if data_end > size:
        return Confidence.DEFINITELY_NO
    if data_end + TRAILER_LEN == size:
        return Confidence.DEFINITELY_YES
    return Confidence.POSSIBLY_YES


def _graphics(game_map: Map) -> dict[GraphicsRole, GraphicsFilename]:
    czone = game_map.attributes[0]
    files: dict[GraphicsRole, GraphicsFilename] = {}
    if isinstance(czone, FilenameAttribute) and czone.value:
        files[GraphicsRole.BACKGROUND_TILESET] = GraphicsFilename(
            GraphicsRole.BACKGROUND_TILESET, "tls-nukem2-czone", czone.value
        )
    return files


def _open(stream: ByteStream, supplementals: Supplementals) -> GridMap:
    grid_offset = stream.read_u16le()
    czone = stream.read_padded(FILENAME_LEN)
    backdrop = stream.read_padded(FILENAME_LEN)
    music = stream.read_padded(FILENAME_LEN)
    flags = stream.read_u8()
    alt_backdrop = stream.read_u8()
    stream.skip(2)
    actor_words = stream.read_u16le()

    actors = []
    for _ in range(actor_words // ACTOR_WORDS):
        code, x, y = stream.read_u16le_array(ACTOR_WORDS)
        actors.append(Item(x, y, code))

    stream.seek(grid_offset)
    width = stream.read_u16le()
    if width == 0 or width > GRID_CELLS:
        raise FormatError(f"Invalid map width {width}")
    height = GRID_CELLS // width
    values = stream.read_u16le_array(GRID_CELLS)

    extra_len = stream.read_u16le()
    packed = decode_overflow_rle(stream.read_exact(extra_len))
    overflow = unpack_overflow(packed, GRID_CELLS)
    bg_items, fg_items = decode_cells(values, overflow, width, height, LAYOUT)

    trailing = [stream.read_padded(FILENAME_LEN) for _ in range(3)]

    attributes = [
        FilenameAttribute(
            "CZone tileset",
            "Tileset used to draw the foreground and background layers",
            czone, "mni",
        ),
        FilenameAttribute("Backdrop", "Image drawn behind the map", backdrop, "mni"),
        FilenameAttribute("Music", "Background music", music, "imf"),
        IntegerAttribute("Flags", "Level flag bits", flags, 0, 0xFF),
        # 0 is stored by levels that never switch backdrop
        IntegerAttribute(
            "Alt backdrop", "Number of the alternate backdrop file (DROPx.MNI)",
            alt_backdrop, 0, 24,
        ),
        FilenameAttribute(
            "Zone attribute (unused)", "Zone tile attribute file", trailing[0], "mni"
        ),
        FilenameAttribute(
            "Zone tileset (unused)", "Zone solid tileset file", trailing[1], "mni"
        ),
        FilenameAttribute(
            "Zone masked tileset (unused)", "Zone masked tileset file", trailing[2], "mni"
        ),
    ]

    layers = [
        Layer(
            title="Background",
            items=bg_items,
            valid_items=[Item(0, 0, code) for code in range(NUM_SOLID_TILES)],
            resolver=IndexedImage(GraphicsRole.BACKGROUND_TILESET, sub_tileset=CZONE_SOLID),
        ),
        Layer(
            title="Foreground",
            items=fg_items,
            valid_items=[Item(0, 0, code) for code in range(NUM_MASKED_TILES)],
            resolver=IndexedImage(GraphicsRole.BACKGROUND_TILESET, sub_tileset=CZONE_MASKED),
        ),
        Layer(
            title="Actors",
            items=actors,
            resolver=IndexedImage(GraphicsRole.SPRITE_TILESET),
        ),
    ]

    return GridMap(
        attributes=attributes,
        graphics_resolver=_graphics,
        width=width,
        height=height,
        tile_width=TILE_WIDTH,
        tile_height=TILE_HEIGHT,
        viewport=VIEWPORT,
        caps=MapCaps.HAS_VIEWPORT,
        layers=layers,
    )


def _write(game_map: GridMap, stream: ByteStream, supplementals: Supplementals) -> None:
    background, foreground, actor_layer = game_map.layers
    actors = actor_layer.items
    if len(actors) > MAX_ACTORS:
        raise EncodingLimitError(
            f"Too many actors ({len(actors)}); the format holds at most {MAX_ACTORS}"
        )

    attrs = [attr.value for attr in game_map.attributes]
    stream.write_u16le(HEADER_LEN + len(actors) * ACTOR_WORDS * 2)
    for name in attrs[0:3]:
        stream.write_padded(name, FILENAME_LEN, pad=b" ", pad_to=FILENAME_MAX)
    stream.write_u8(attrs[3])
    stream.write_u8(attrs[4])
    stream.write_u16le(0)

    stream.write_u16le(len(actors) * ACTOR_WORDS)
    for actor in actors:
        stream.write_u16le_array([actor.code, actor.x, actor.y])

    values, overflow = encode_cells(
        background.items, foreground.items, game_map.width, GRID_CELLS, LAYOUT
    )
    stream.write_u16le(game_map.width)
    stream.write_u16le_array(values)

    extra = encode_overflow_rle(pack_overflow(overflow))
    stream.write_u16le(len(extra))
    stream.write(extra)

    for name in attrs[5:8]:
        stream.write_padded(name, FILENAME_LEN)


def _validate(game_map: GridMap, errors: list[str], warnings: list[str]) -> None:
    if game_map.width <= 0 or game_map.width * game_map.height > GRID_CELLS:
        errors.append(
            f"Map size {game_map.width}x{game_map.height} does not fit in "
            f"{GRID_CELLS} cells"
        )
    for attr in game_map.attributes:
        if isinstance(attr, FilenameAttribute) and len(attr.value) > FILENAME_MAX:
            errors.append(
                f"Attribute {attr.name!r}: filename {attr.value!r} is longer "
                f"than {FILENAME_MAX} characters"
            )
    for actor in game_map.layers[2].items:
        if actor.code > 0xFFFF:
            errors.append(f"Actor code {actor.code} does not fit in 16 bits")


HANDLER = FormatHandler(
    code="map-nukem2",
    name="Duke Nukem II level",
    extensions=("mni",),
    games=("Duke Nukem II",),
    identify_fn=_identify,
    open_fn=_open,
    write_fn=_write,
    validate_fn=_validate,
    layer_count=3,
    path_count=0,
    attribute_types=(
        FilenameAttribute,
        FilenameAttribute,
        FilenameAttribute,
        IntegerAttribute,
        IntegerAttribute,
        FilenameAttribute,
        FilenameAttribute,
        FilenameAttribute,
    ),
)
