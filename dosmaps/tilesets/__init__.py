"""
Tileset boundary for dosmaps.

Holds the tileset models the caller fills with images and the resolver
strategies layers use to turn item codes into drawable tiles.
"""

from .models import (
    GraphicsRole, Tileset, TilesetCollection, ImageKind, TileImage,
    UNKNOWN_IMAGE, BLANK_IMAGE
)
from .resolvers import (
    ImageResolver, IndexedImage, SubTilesetImage, FixedImage, ThresholdImage,
    CodeTable
)

__all__ = [
    # Data models
    'GraphicsRole',
    'ImageKind',
    'TileImage',
    'Tileset',
    'TilesetCollection',
    'UNKNOWN_IMAGE',
    'BLANK_IMAGE',

    # Resolvers
    'ImageResolver',
    'IndexedImage',
    'SubTilesetImage',
    'FixedImage',
    'ThresholdImage',
    'CodeTable',
]
