"""
Word Rescue levels (.s0 - .s19).

Layout:
    9 x u16  width, height, background colour, tileset (1-based), backdrop,
             start x/y and end x/y (in half-tile units)
    records  gruzzles, unknown, slime buckets and books as (count, points);
             seven letters as bare points; animated tiles as (count, points);
             an empty end record
    RLE      background layer, (count, code) pairs, 0xFF = no tile
    RLE      attribute layer at twice the map resolution, 0x20 = empty

The attribute layer is stored one column to the left of where it is drawn,
so column 0 can never hold anything.
"""

import logging
import re

from ..codecs.rle import read_rle_grid, write_rle_grid
from ..maps.models import (
    EnumAttribute,
    GraphicsFilename,
    GridMap,
    Item,
    ItemType,
    Layer,
    LayerCaps,
    Map,
    MapCaps,
    PlacementRule,
)
from ..stream import ByteStream
from ..tilesets.models import GraphicsRole, ImageKind
from ..tilesets.resolvers import CodeTable, FixedImage, IndexedImage
from .base import Confidence, FormatHandler, Supplementals

logger = logging.getLogger(__name__)

TILE_WIDTH = 16
TILE_HEIGHT = 16
ATTR_TILE_WIDTH = 8
ATTR_TILE_HEIGHT = 8
VIEWPORT = (288, 152)

DEFAULT_BG_TILE = 0xFF
DEFAULT_ATTR_TILE = 0x20
MAX_TILE = 240

NUM_LETTERS = 7
HEADER_WORDS = 9
MIN_FILE_LEN = 2 * 15 + 4 * NUM_LETTERS

# Item layer codes
CODE_GRUZZLE = 1
CODE_SLIME = 2
CODE_BOOK = 3
CODE_ENTRANCE = 4
CODE_EXIT = 5
CODE_LETTER = 6
CODE_UNKNOWN = CODE_LETTER + NUM_LETTERS
CODE_ANIMATED = CODE_UNKNOWN + 1
CODE_END = 0

LETTER_CODES = tuple(range(CODE_LETTER, CODE_LETTER + NUM_LETTERS))

# Item records in file order; None marks the fixed letter block
RECORDS: tuple = (CODE_GRUZZLE, CODE_UNKNOWN, CODE_SLIME, CODE_BOOK, None, CODE_ANIMATED)

SUPP_LAYER1 = "layer1"

BG_COLOURS = [
    "EGA 0 - Black", "EGA 1 - Dark blue", "EGA 2 - Dark green",
    "EGA 3 - Dark cyan", "EGA 4 - Dark red", "EGA 5 - Dark magenta",
    "EGA 6 - Brown", "EGA 7 - Light grey", "EGA 8 - Dark grey",
    "EGA 9 - Light blue", "EGA 10 - Light green", "EGA 11 - Light cyan",
    "EGA 12 - Light red", "EGA 13 - Light magenta", "EGA 14 - Yellow",
    "EGA 15 - White",
]
TILESETS = [
    "Desert", "Castle", "Suburban", "Spooky (episode 3 only)", "Industrial",
    "Custom (back6.wr)", "Custom (back7.wr)", "Custom (back8.wr)",
]
BACKDROPS = [
    "None (use background colour)", "Custom (drop1.wr)",
    "Cave (episodes 2-3 only)", "Desert", "Mountain",
    "Custom (drop5.wr)", "Custom (drop6.wr)", "Custom (drop7.wr)",
]

BACKGROUND_RESOLVER = IndexedImage(GraphicsRole.BACKGROUND_TILESET)

ATTRIBUTE_RESOLVER = CodeTable({
    # Question mark boxes, numbered by the box they belong to
    **{n: ImageKind.digit(n) for n in range(NUM_LETTERS)},
    0x73: FixedImage(GraphicsRole.BACKGROUND_TILESET, 50),  # solid
    0x74: FixedImage(GraphicsRole.BACKGROUND_TILESET, 91),  # jump up through
    0xFD: ImageKind.BLANK,
})

ITEM_RESOLVER = CodeTable({
    CODE_GRUZZLE: FixedImage(GraphicsRole.SPRITE_TILESET, 15),
    CODE_SLIME: FixedImage(GraphicsRole.BACKGROUND_TILESET, 238),
    CODE_BOOK: FixedImage(GraphicsRole.BACKGROUND_TILESET, 239),
    CODE_ENTRANCE: FixedImage(GraphicsRole.SPRITE_TILESET, 1),
    CODE_EXIT: FixedImage(GraphicsRole.SPRITE_TILESET, 3),
    **{code: FixedImage(GraphicsRole.SPRITE_TILESET, 31 + code - CODE_LETTER)
       for code in LETTER_CODES},
    CODE_ANIMATED: ImageKind.INTERACTIVE,
})

ITEM_TYPES = {
    CODE_ENTRANCE: ItemType.ENTRANCE,
    CODE_EXIT: ItemType.EXIT,
    CODE_ANIMATED: ItemType.ANIMATED,
}

_SUFFIX_RE = re.compile(r"\.([sS])(\d+)$")


def _skip_rle(stream: ByteStream, cells: int, max_code: int = 0xFF) -> bool:
    """Walk an RLE layer without decoding it; False if it is malformed."""
    pos = 0
    while pos < cells:
        if stream.remaining() < 2:
            return False
        count = stream.read_u8()
        code = stream.read_u8()
        pos += count
        if code != DEFAULT_BG_TILE and code > max_code:
            return False
    return pos == cells


def _identify(stream: ByteStream) -> Confidence:
    size = stream.size()
    if size < MIN_FILE_LEN:
        return Confidence.DEFINITELY_NO

    width = stream.read_u16le()
    height = stream.read_u16le()
    stream.skip((HEADER_WORDS - 2) * 2)

    min_size = MIN_FILE_LEN
    # The end record is a plain count like the others
    for record in RECORDS + (CODE_END,):
        if record is None:
            stream.skip(NUM_LETTERS * 4)
            continue
        count = stream.read_u16le()
        min_size += count * 4
        if size < min_size:
            return Confidence.DEFINITELY_NO
        stream.skip(count * 4)

    if not _skip_rle(stream, width * height, MAX_TILE):
        return Confidence.DEFINITELY_NO

    # Background is sound; a clean attribute layer ending at EOF settles it
    attr_ok = _skip_rle(stream, width * height * 4)
    if attr_ok and stream.tell() == size:
        return Confidence.DEFINITELY_YES
    return Confidence.POSSIBLY_YES


def _required_supplementals(stream: ByteStream, filename: str) -> dict[str, str]:
    match = _SUFFIX_RE.search(filename)
    if match is None:
        return {}
    d = "d" if match.group(1) == "s" else "D"
    return {SUPP_LAYER1: f"{filename[:match.start()]}.{d}{match.group(2)}"}


def _graphics(game_map: Map) -> dict[GraphicsRole, GraphicsFilename]:
    tileset = game_map.attributes[1].value
    backdrop = game_map.attributes[2].value
    files = {
        GraphicsRole.BACKGROUND_TILESET: GraphicsFilename(
            GraphicsRole.BACKGROUND_TILESET, "tls-wordresc", f"back{tileset + 1}.wr"
        ),
    }
    if backdrop > 0:
        files[GraphicsRole.BACKGROUND_IMAGE] = GraphicsFilename(
            GraphicsRole.BACKGROUND_IMAGE, "tls-wordresc", f"drop{backdrop}.wr"
        )
    return files


def _read_points(stream: ByteStream, code: int, count: int) -> list[Item]:
    item_type = ITEM_TYPES.get(code, ItemType.DEFAULT)
    items = []
    for _ in range(count):
        x = stream.read_u16le()
        y = stream.read_u16le()
        items.append(Item(x, y, code, item_type))
    return items


def _open(stream: ByteStream, supplementals: Supplementals) -> GridMap:
    (width, height, bg_colour, tileset, backdrop,
     start_x, start_y, end_x, end_y) = stream.read_u16le_array(HEADER_WORDS)

    items = [
        Item(start_x // 2, start_y // 2, CODE_ENTRANCE, ItemType.ENTRANCE),
        Item(end_x // 2, end_y // 2, CODE_EXIT, ItemType.EXIT),
    ]
    for record in RECORDS:
        if record is None:
            for code in LETTER_CODES:
                items.extend(_read_points(stream, code, 1))
        else:
            items.extend(_read_points(stream, record, stream.read_u16le()))
    end_count = stream.read_u16le()
    if end_count:
        logger.warning(f"Skipping {end_count} entries in the end record")
        stream.skip(end_count * 4)

    background = read_rle_grid(stream, width, height, DEFAULT_BG_TILE, max_code=MAX_TILE)
    attr_width = width * 2
    attr_height = height * 2
    attr_items = read_rle_grid(stream, attr_width, attr_height, DEFAULT_ATTR_TILE, x_offset=1)

    attributes = [
        EnumAttribute(
            "Background colour",
            "Colour drawn where there are no tiles, if no backdrop is set",
            bg_colour, BG_COLOURS,
        ),
        EnumAttribute(
            "Tileset", "Tileset to use for this map",
            tileset - 1 if tileset > 0 else 0, TILESETS,
        ),
        EnumAttribute(
            "Backdrop", "Image shown behind the map (overrides background colour)",
            backdrop, BACKDROPS,
        ),
    ]

    layers = [
        Layer(
            title="Background",
            items=background,
            valid_items=[Item(0, 0, code) for code in range(MAX_TILE + 1)],
            resolver=BACKGROUND_RESOLVER,
        ),
        Layer(
            title="Attributes",
            items=attr_items,
            caps=LayerCaps.HAS_OWN_TILE_SIZE | LayerCaps.HAS_OWN_SIZE,
            tile_width=ATTR_TILE_WIDTH,
            tile_height=ATTR_TILE_HEIGHT,
            width=attr_width + 1,
            height=attr_height,
            resolver=ATTRIBUTE_RESOLVER,
            placement=PlacementRule(blocked_columns=frozenset({0})),
        ),
        Layer(
            title="Items",
            items=items,
            valid_items=[
                Item(0, 0, code, ITEM_TYPES.get(code, ItemType.DEFAULT))
                for code in range(CODE_GRUZZLE, CODE_ANIMATED + 1)
            ],
            resolver=ITEM_RESOLVER,
            placement=PlacementRule(
                unique_codes=frozenset((CODE_ENTRANCE, CODE_EXIT) + LETTER_CODES)
            ),
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
    background, attr_layer, item_layer = game_map.layers

    groups: dict[int, list[Item]] = {}
    for item in item_layer.items:
        groups.setdefault(item.code, []).append(item)
    entrance = groups.get(CODE_ENTRANCE, [Item(0, 0, CODE_ENTRANCE)])[0]
    exit_ = groups.get(CODE_EXIT, [Item(0, 0, CODE_EXIT)])[0]

    stream.write_u16le_array([
        game_map.width,
        game_map.height,
        game_map.attributes[0].value,
        game_map.attributes[1].value + 1,
        game_map.attributes[2].value,
        entrance.x * 2,
        entrance.y * 2,
        exit_.x * 2,
        exit_.y * 2,
    ])

    for record in RECORDS:
        if record is None:
            for code in LETTER_CODES:
                letter = groups.get(code, [Item(0, 0, code)])[0]
                stream.write_u16le_array([letter.x, letter.y])
            continue
        points = groups.get(record, [])
        stream.write_u16le(len(points))
        for item in points:
            stream.write_u16le_array([item.x, item.y])
    stream.write_u16le(0)

    write_rle_grid(stream, background.items, game_map.width, game_map.height, DEFAULT_BG_TILE)
    write_rle_grid(
        stream, attr_layer.items, game_map.width * 2, game_map.height * 2,
        DEFAULT_ATTR_TILE, x_offset=1,
    )


def _validate(game_map: GridMap, errors: list[str], warnings: list[str]) -> None:
    if not (0 < game_map.width <= 0x7FFF and 0 < game_map.height <= 0x7FFF):
        errors.append(f"Map size {game_map.width}x{game_map.height} is out of range")

    attr_layer = game_map.layers[1]
    if (attr_layer.width, attr_layer.height) != (game_map.width * 2 + 1, game_map.height * 2):
        errors.append(
            f"Attribute layer is {attr_layer.width}x{attr_layer.height}, expected "
            f"{game_map.width * 2 + 1}x{game_map.height * 2}"
        )
    for item in attr_layer.items:
        if not 0 <= item.code <= 0xFF:
            errors.append(f"Attribute code {item.code} does not fit in a byte")

    codes = {item.code for item in game_map.layers[2].items}
    for code, name in ((CODE_ENTRANCE, "entrance"), (CODE_EXIT, "exit")):
        if code not in codes:
            warnings.append(f"Map has no {name}; it will be placed at (0, 0)")
    missing = [code - CODE_LETTER + 1 for code in LETTER_CODES if code not in codes]
    if missing:
        warnings.append(f"Letters {missing} are not placed; they will be put at (0, 0)")


HANDLER = FormatHandler(
    code="map-wordresc",
    name="Word Rescue level",
    extensions=tuple(f"s{n}" for n in range(20)),
    games=("Word Rescue",),
    identify_fn=_identify,
    open_fn=_open,
    write_fn=_write,
    supps_fn=_required_supplementals,
    validate_fn=_validate,
    layer_count=3,
    path_count=0,
    attribute_types=(EnumAttribute, EnumAttribute, EnumAttribute),
)
