"""
Cosmo's Cosmic Adventures levels (.mni).

Layout:
    u16      flag bits (backdrop, rain, backdrop scrolling, palette
             animation, music)
    u16      map width in tiles
    u16      actor word count, followed by (type, x, y) u16 triples
    32768    u16 raw tile values, 0 = empty

Tile values below 16000 are byte offsets into the solid tileset (8 per
tile); values from 16000 up index the masked tileset (40 per tile).
"""

from ..codecs.grid import decode_grid, encode_grid
from ..errors import EncodingLimitError, FormatError
from ..maps.models import (
    EnumAttribute,
    GraphicsFilename,
    GridMap,
    IntegerAttribute,
    Item,
    Layer,
    MapCaps,
)
from ..stream import ByteStream
from ..tilesets.models import GraphicsRole
from ..tilesets.resolvers import IndexedImage, SubTilesetImage, ThresholdImage
from .base import Confidence, FormatHandler, Supplementals

TILE_WIDTH = 8
TILE_HEIGHT = 8
VIEWPORT = (38 * TILE_WIDTH, 18 * TILE_HEIGHT)

HEADER_LEN = 6
GRID_CELLS = 32768
GRID_LEN = GRID_CELLS * 2
ACTOR_WORDS = 3
MAX_ACTORS = 410

NUM_SOLID_TILES = 2000
NUM_MASKED_TILES = 1000
SOLID_STRIDE = 8
MASKED_BASE = 16000
MASKED_STRIDE = 40

# (attribute name, bit offset, bit width)
FLAG_FIELDS = (
    ("Backdrop", 0, 5),
    ("Rain", 5, 1),
    ("Horizontal backdrop scroll", 6, 1),
    ("Vertical backdrop scroll", 7, 1),
    ("Palette animation", 8, 3),
    ("Music", 11, 5),
)
NO_YES = ["No", "Yes"]

GRAPHICS = {
    GraphicsRole.BACKGROUND_TILESET: GraphicsFilename(
        GraphicsRole.BACKGROUND_TILESET, "tls-cosmo", "tiles.mni"
    ),
    GraphicsRole.FOREGROUND_TILESET: GraphicsFilename(
        GraphicsRole.FOREGROUND_TILESET, "tls-cosmo-masked", "masktile.mni"
    ),
    GraphicsRole.SPRITE_TILESET: GraphicsFilename(
        GraphicsRole.SPRITE_TILESET, "tls-cosmo-actors", "actors.mni"
    ),
}

BACKGROUND_RESOLVER = ThresholdImage(
    MASKED_BASE,
    below=IndexedImage(GraphicsRole.BACKGROUND_TILESET, stride=SOLID_STRIDE),
    above=IndexedImage(
        GraphicsRole.FOREGROUND_TILESET, base=MASKED_BASE, stride=MASKED_STRIDE
    ),
)


def _identify(stream: ByteStream) -> Confidence:
    size = stream.size()
    if size < HEADER_LEN + GRID_LEN:
        return Confidence.DEFINITELY_NO
    stream.skip(2)
    width = stream.read_u16le()
    if width == 0 or GRID_CELLS % width:
        return Confidence.DEFINITELY_NO
    actor_words = stream.read_u16le()
    if actor_words > MAX_ACTORS * ACTOR_WORDS:
        return Confidence.DEFINITELY_NO
    expected = HEADER_LEN + actor_words * 2 + GRID_LEN
    if expected > size:
        return Confidence.DEFINITELY_NO
    if expected == size:
        return Confidence.DEFINITELY_YES
    return Confidence.POSSIBLY_YES


def _flag_attributes(flags: int) -> list:
    attributes = []
    for name, shift, bits in FLAG_FIELDS:
        value = (flags >> shift) & ((1 << bits) - 1)
        if bits == 1:
            attributes.append(EnumAttribute(name, f"{name} enabled", value, NO_YES))
        else:
            attributes.append(IntegerAttribute(name, f"{name} number", value, 0, (1 << bits) - 1))
    return attributes


def _open(stream: ByteStream, supplementals: Supplementals) -> GridMap:
    flags = stream.read_u16le()
    width = stream.read_u16le()
    if width == 0 or GRID_CELLS % width:
        raise FormatError(f"Map width {width} does not divide the {GRID_CELLS}-cell grid")
    height = GRID_CELLS // width

    actor_words = stream.read_u16le()
    actors = []
    for _ in range(actor_words // ACTOR_WORDS):
        code, x, y = stream.read_u16le_array(ACTOR_WORDS)
        actors.append(Item(x, y, code))

    tiles = decode_grid(stream.read_u16le_array(GRID_CELLS), width, height, skip_code=0)

    valid_tiles = [Item(0, 0, n * SOLID_STRIDE) for n in range(1, NUM_SOLID_TILES)]
    valid_tiles += [
        Item(0, 0, MASKED_BASE + n * MASKED_STRIDE) for n in range(NUM_MASKED_TILES)
    ]
    layers = [
        Layer(
            title="Background",
            items=tiles,
            valid_items=valid_tiles,
            resolver=BACKGROUND_RESOLVER,
        ),
        Layer(
            title="Actors",
            items=actors,
            resolver=SubTilesetImage(GraphicsRole.SPRITE_TILESET),
        ),
    ]

    return GridMap(
        attributes=_flag_attributes(flags),
        graphics=dict(GRAPHICS),
        width=width,
        height=height,
        tile_width=TILE_WIDTH,
        tile_height=TILE_HEIGHT,
        viewport=VIEWPORT,
        caps=MapCaps.HAS_VIEWPORT,
        layers=layers,
    )


def _write(game_map: GridMap, stream: ByteStream, supplementals: Supplementals) -> None:
    background, actor_layer = game_map.layers
    actors = actor_layer.items
    if len(actors) > MAX_ACTORS:
        raise EncodingLimitError(
            f"Too many actors ({len(actors)}); the format holds at most {MAX_ACTORS}"
        )

    flags = 0
    for attr, (_, shift, _) in zip(game_map.attributes, FLAG_FIELDS):
        flags |= attr.value << shift

    stream.write_u16le(flags)
    stream.write_u16le(game_map.width)
    stream.write_u16le(len(actors) * ACTOR_WORDS)
    for actor in actors:
        stream.write_u16le_array([actor.code, actor.x, actor.y])
    stream.write_u16le_array(encode_grid(background.items, game_map.width, game_map.height))


def _validate(game_map: GridMap, errors: list[str], warnings: list[str]) -> None:
    if game_map.width <= 0 or game_map.width * game_map.height != GRID_CELLS:
        errors.append(
            f"Map size {game_map.width}x{game_map.height} must cover exactly "
            f"{GRID_CELLS} cells"
        )
    for actor in game_map.layers[1].items:
        if actor.code > 0xFFFF:
            errors.append(f"Actor code {actor.code} does not fit in 16 bits")


HANDLER = FormatHandler(
    code="map-cosmo",
    name="Cosmo's Cosmic Adventures level",
    extensions=("mni",),
    games=("Cosmo's Cosmic Adventures",),
    identify_fn=_identify,
    open_fn=_open,
    write_fn=_write,
    validate_fn=_validate,
    layer_count=2,
    path_count=0,
    attribute_types=(
        IntegerAttribute,
        EnumAttribute,
        EnumAttribute,
        EnumAttribute,
        IntegerAttribute,
        IntegerAttribute,
    ),
)
