"""Map models and summaries shared by every format handler."""

from .models import (
    MapCaps,
    LayerCaps,
    ItemType,
    Item,
    Point,
    Path,
    AttributeKind,
    Attribute,
    IntegerAttribute,
    EnumAttribute,
    FilenameAttribute,
    GraphicsFilename,
    PlacementRule,
    Layer,
    Map,
    GridMap,
)
from .summary import describe_map, map_to_json, layer_to_text

__all__ = [
    "MapCaps",
    "LayerCaps",
    "ItemType",
    "Item",
    "Point",
    "Path",
    "AttributeKind",
    "Attribute",
    "IntegerAttribute",
    "EnumAttribute",
    "FilenameAttribute",
    "GraphicsFilename",
    "PlacementRule",
    "Layer",
    "Map",
    "GridMap",
    "describe_map",
    "map_to_json",
    "layer_to_text",
]
