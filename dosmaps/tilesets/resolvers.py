"""
Strategies that turn a layer item into a drawable tile image.

Each layer is given one resolver. Resolvers never raise for bad codes or
missing tilesets; they degrade to an UNKNOWN placeholder so the renderer
decides how to show the problem.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol, Union

from .models import (
    GraphicsRole,
    ImageKind,
    TileImage,
    Tileset,
    TilesetCollection,
    UNKNOWN_IMAGE,
)

if TYPE_CHECKING:
    from ..maps.models import Item

logger = logging.getLogger(__name__)


class ImageResolver(Protocol):
    """Resolves an item to a TileImage."""

    def resolve(self, item: "Item", tilesets: TilesetCollection) -> TileImage: ...


def _lookup(
    tilesets: TilesetCollection,
    role: GraphicsRole,
    index: int,
    sub_tileset: Optional[int] = None,
) -> TileImage:
    """Fetch image `index` from the tileset for `role`, optionally one level deep."""
    tileset: Optional[Tileset] = tilesets.get(role)
    if tileset is None:
        return UNKNOWN_IMAGE
    if sub_tileset is not None:
        tileset = tileset.open_tileset(sub_tileset)
        if tileset is None:
            return UNKNOWN_IMAGE
    image = tileset.open_image(index)
    if image is None:
        return UNKNOWN_IMAGE
    return TileImage.supplied(image)


@dataclass(frozen=True)
class IndexedImage:
    """Use the item code as an index into one tileset.

    The index is `(code - base) // stride`, which covers formats that store
    byte offsets into tile data rather than tile numbers.
    """

    role: GraphicsRole
    sub_tileset: Optional[int] = None
    base: int = 0
    stride: int = 1

    def resolve(self, item: "Item", tilesets: TilesetCollection) -> TileImage:
        if item.code < self.base:
            return UNKNOWN_IMAGE
        return _lookup(
            tilesets, self.role, (item.code - self.base) // self.stride, self.sub_tileset
        )


@dataclass(frozen=True)
class SubTilesetImage:
    """Use the item code to pick a nested tileset, then show one image from it.

    Suits sprite files where each actor type has its own frame set.
    """

    role: GraphicsRole
    index: int = 0

    def resolve(self, item: "Item", tilesets: TilesetCollection) -> TileImage:
        return _lookup(tilesets, self.role, self.index, item.code)


@dataclass(frozen=True)
class FixedImage:
    """Always show one specific tile, regardless of the item code."""

    role: GraphicsRole
    index: int
    sub_tileset: Optional[int] = None

    def resolve(self, item: "Item", tilesets: TilesetCollection) -> TileImage:
        return _lookup(tilesets, self.role, self.index, self.sub_tileset)


@dataclass(frozen=True)
class ThresholdImage:
    """Pick between two resolvers depending on whether the code reaches a threshold."""

    threshold: int
    below: ImageResolver
    above: ImageResolver

    def resolve(self, item: "Item", tilesets: TilesetCollection) -> TileImage:
        if item.code < self.threshold:
            return self.below.resolve(item, tilesets)
        return self.above.resolve(item, tilesets)


@dataclass(frozen=True)
class CodeTable:
    """Map individual codes to their own resolver, with a fallback."""

    table: dict[int, Union[ImageResolver, ImageKind]] = field(default_factory=dict)
    default: Union[ImageResolver, ImageKind] = ImageKind.UNKNOWN

    def resolve(self, item: "Item", tilesets: TilesetCollection) -> TileImage:
        entry = self.table.get(item.code, self.default)
        if isinstance(entry, ImageKind):
            return TileImage(entry)
        return entry.resolve(item, tilesets)
