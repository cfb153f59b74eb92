"""
Data models for maps read from and written to game files.

A handler's open operation builds one of these object graphs; the caller
inspects and edits it in place and may hand it back to the same handler for
writing. The map exclusively owns its layers and paths; items are plain
values stored in each layer's ordered list.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, IntEnum, IntFlag
from typing import Callable, Optional

from ..tilesets.models import GraphicsRole, TileImage, TilesetCollection, UNKNOWN_IMAGE
from ..tilesets.resolvers import ImageResolver


# =============================================================================
# Capability flags
# =============================================================================

class MapCaps(IntFlag):
    """Capabilities of a grid map."""

    NONE = 0
    CAN_RESIZE = 0x01
    CHANGE_TILE_SIZE = 0x02
    HAS_VIEWPORT = 0x04
    HAS_PATHS = 0x08
    FIXED_PATH_COUNT = 0x10


class LayerCaps(IntFlag):
    """Capabilities of a single layer."""

    NONE = 0
    HAS_OWN_TILE_SIZE = 0x01
    """Layer tiles differ in size from the map's tiles."""

    HAS_OWN_SIZE = 0x02
    """Layer grid differs in size from the map grid."""

    HAS_PALETTE = 0x04

    USE_IMAGE_DIMS = 0x08
    """Item footprint comes from its image rather than the tile size."""


# =============================================================================
# Items and paths
# =============================================================================

class ItemType(IntEnum):
    """Distinguishes ordinary tiles from format-specific markers."""

    DEFAULT = 0
    ENTRANCE = 1
    EXIT = 2
    ANIMATED = 3


@dataclass(frozen=True)
class Item:
    """A single tile or object placed in a layer.

    Several items may share one cell (e.g. a foreground and background tile
    in different layers, or stacked objects in the same layer).

    Attributes:
        x: Grid column, in the layer's tile units
        y: Grid row, in the layer's tile units
        code: Format-specific tile code
        type: Marker type (DEFAULT for ordinary placements)
    """

    x: int
    y: int
    code: int
    type: ItemType = ItemType.DEFAULT


Point = tuple[int, int]


@dataclass
class Path:
    """An ordered list of points describing scripted movement.

    Attributes:
        points: Absolute points, in pixels
        max_points: Upper bound on `len(points)` (0 = unlimited)
        fixed: Path cannot be added or removed, only edited
        force_closed: Path must loop back to its first point
        starts: Offsets at which copies of this path shape are placed
    """

    points: list[Point] = field(default_factory=list)
    max_points: int = 0
    fixed: bool = False
    force_closed: bool = False
    starts: list[Point] = field(default_factory=list)


# =============================================================================
# Attributes
# =============================================================================

class AttributeKind(Enum):
    INTEGER = "integer"
    ENUM = "enum"
    FILENAME = "filename"


@dataclass
class Attribute(ABC):
    """A named, format-level setting such as a backdrop or music track."""

    name: str
    description: str = ""

    @property
    @abstractmethod
    def kind(self) -> AttributeKind:
        """Which value type this attribute holds."""


@dataclass
class IntegerAttribute(Attribute):
    """Integer value; minimum and maximum both zero means unlimited."""

    value: int = 0
    minimum: int = 0
    maximum: int = 0

    @property
    def kind(self) -> AttributeKind:
        return AttributeKind.INTEGER

    @property
    def is_limited(self) -> bool:
        return not (self.minimum == 0 and self.maximum == 0)


@dataclass
class EnumAttribute(Attribute):
    """Index into an ordered list of display names."""

    value: int = 0
    choices: list[str] = field(default_factory=list)

    @property
    def kind(self) -> AttributeKind:
        return AttributeKind.ENUM

    @property
    def label(self) -> str:
        if 0 <= self.value < len(self.choices):
            return self.choices[self.value]
        return f"<invalid {self.value}>"


@dataclass
class FilenameAttribute(Attribute):
    """Name of another game file, with the extension it is expected to have."""

    value: str = ""
    extension: str = ""

    @property
    def kind(self) -> AttributeKind:
        return AttributeKind.FILENAME


@dataclass(frozen=True)
class GraphicsFilename:
    """Reference to a graphics file a map is drawn with.

    Attributes:
        role: What the file is used for
        type_code: Format code of the graphics file (e.g. "tls-wordresc")
        filename: File name, relative to the map's directory
    """

    role: GraphicsRole
    type_code: str
    filename: str


# =============================================================================
# Layers
# =============================================================================

@dataclass(frozen=True)
class PlacementRule:
    """Where a layer's codes may be placed and how often.

    Attributes:
        blocked_columns: Columns where nothing may be placed
        unique_codes: Codes that may appear at most once in the layer
    """

    blocked_columns: frozenset[int] = frozenset()
    unique_codes: frozenset[int] = frozenset()

    def permits(self, code: int, x: int, y: int) -> bool:
        return x not in self.blocked_columns

    def max_instances(self, code: int) -> int:
        """Get the maximum number of items with `code` (0 = unlimited)."""
        return 1 if code in self.unique_codes else 0


@dataclass
class Layer:
    """One plane of tile placements within a grid map.

    Attributes:
        title: Display name
        items: Placed items, in file order
        valid_items: Exemplar items listing the codes this layer accepts
        caps: Layer capabilities
        tile_width, tile_height: Own tile size (HAS_OWN_TILE_SIZE only)
        width, height: Own grid size (HAS_OWN_SIZE only)
        resolver: Strategy used by image_from_code
        placement: Strategy deciding where codes may go
    """

    title: str
    items: list[Item] = field(default_factory=list)
    valid_items: list[Item] = field(default_factory=list)
    caps: LayerCaps = LayerCaps.NONE
    tile_width: int = 0
    tile_height: int = 0
    width: int = 0
    height: int = 0
    resolver: Optional[ImageResolver] = field(default=None, repr=False)
    placement: PlacementRule = field(default_factory=PlacementRule, repr=False)

    def image_from_code(self, item: Item, tilesets: TilesetCollection) -> TileImage:
        """Work out what to draw for `item`.

        Never raises for bad codes; unresolvable items come back as UNKNOWN.
        """
        if self.resolver is None:
            return UNKNOWN_IMAGE
        return self.resolver.resolve(item, tilesets)

    def cell_index(self) -> dict[tuple[int, int], list[Item]]:
        """Group items by cell in a single pass over the layer."""
        index: dict[tuple[int, int], list[Item]] = {}
        for item in self.items:
            index.setdefault((item.x, item.y), []).append(item)
        return index

    def items_at(self, x: int, y: int) -> list[Item]:
        """Items in cell (x, y).

        Builds the cell index on each call; for a pass over many cells, call
        `cell_index` once and look cells up in it.
        """
        return self.cell_index().get((x, y), [])

    def add_item(self, item: Item) -> None:
        self.items.append(item)

    def remove_items_at(self, x: int, y: int) -> int:
        """Remove every item in cell (x, y).

        Returns:
            Number of items removed
        """
        before = len(self.items)
        self.items = [i for i in self.items if not (i.x == x and i.y == y)]
        return before - len(self.items)

    @property
    def valid_codes(self) -> set[int]:
        return {item.code for item in self.valid_items}


# =============================================================================
# Maps
# =============================================================================

GraphicsResolver = Callable[["Map"], dict[GraphicsRole, GraphicsFilename]]


@dataclass
class Map:
    """Base map: format-level attributes plus graphics file references.

    Graphics references are either fixed (`graphics`) or derived from the
    current attribute values by `graphics_resolver`.
    """

    attributes: list[Attribute] = field(default_factory=list)
    graphics: dict[GraphicsRole, GraphicsFilename] = field(default_factory=dict)
    graphics_resolver: Optional[GraphicsResolver] = field(default=None, repr=False)

    def graphics_filenames(self) -> dict[GraphicsRole, GraphicsFilename]:
        """Get the graphics files this map is currently drawn with."""
        if self.graphics_resolver is not None:
            return self.graphics_resolver(self)
        return dict(self.graphics)

    def attribute(self, name: str) -> Attribute:
        """Find an attribute by name.

        Raises:
            KeyError: If no attribute has that name
        """
        for attr in self.attributes:
            if attr.name == name:
                return attr
        raise KeyError(f"Map has no attribute named {name!r}")


@dataclass
class GridMap(Map):
    """A map made of layers of tiles laid out on a grid.

    Attributes:
        width, height: Map size in tiles
        tile_width, tile_height: Tile size in pixels
        viewport: In-game view size in pixels, if the format defines one
        caps: Map capabilities
        layers: Layers, drawn first to last
        paths: Movement paths
    """

    width: int = 0
    height: int = 0
    tile_width: int = 0
    tile_height: int = 0
    viewport: Optional[tuple[int, int]] = None
    caps: MapCaps = MapCaps.NONE
    layers: list[Layer] = field(default_factory=list)
    paths: list[Path] = field(default_factory=list)

    def layer_dimensions(self, layer: Layer) -> tuple[int, int, int, int]:
        """Get a layer's effective grid and tile size.

        Returns:
            (width, height, tile_width, tile_height) with the grid in the
            layer's own tile units
        """
        if layer.caps & LayerCaps.HAS_OWN_TILE_SIZE:
            tile_width, tile_height = layer.tile_width, layer.tile_height
        else:
            tile_width, tile_height = self.tile_width, self.tile_height

        if layer.caps & LayerCaps.HAS_OWN_SIZE:
            width, height = layer.width, layer.height
        else:
            # Convert from map tile size to layer tile size
            width = self.width * self.tile_width // tile_width
            height = self.height * self.tile_height // tile_height
        return width, height, tile_width, tile_height

    def layer(self, title: str) -> Layer:
        """Find a layer by title.

        Raises:
            KeyError: If no layer has that title
        """
        for layer in self.layers:
            if layer.title == title:
                return layer
        raise KeyError(f"Map has no layer titled {title!r}")
