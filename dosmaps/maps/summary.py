"""
Read-only summaries of opened maps for listing and export tools.
"""

import logging
from typing import Any

import orjson

from .models import (
    Attribute,
    EnumAttribute,
    FilenameAttribute,
    GridMap,
    IntegerAttribute,
    Map,
)

logger = logging.getLogger(__name__)


def _describe_attribute(attr: Attribute) -> dict[str, Any]:
    info: dict[str, Any] = {
        "name": attr.name,
        "kind": attr.kind.value,
        "description": attr.description,
    }
    if isinstance(attr, IntegerAttribute):
        info["value"] = attr.value
        if attr.is_limited:
            info["range"] = [attr.minimum, attr.maximum]
    elif isinstance(attr, EnumAttribute):
        info["value"] = attr.value
        info["label"] = attr.label
        info["choices"] = list(attr.choices)
    elif isinstance(attr, FilenameAttribute):
        info["value"] = attr.value
        info["extension"] = attr.extension
    return info


def describe_map(game_map: Map) -> dict[str, Any]:
    """Summarise a map's attributes, graphics, layers and paths.

    Args:
        game_map: Map returned by a format handler

    Returns:
        Plain dictionary suitable for JSON export or printing
    """
    summary: dict[str, Any] = {
        "attributes": [_describe_attribute(a) for a in game_map.attributes],
        "graphics": {
            role.value: {"type": gf.type_code, "filename": gf.filename}
            for role, gf in game_map.graphics_filenames().items()
        },
    }
    if not isinstance(game_map, GridMap):
        return summary

    summary["size"] = [game_map.width, game_map.height]
    summary["tile_size"] = [game_map.tile_width, game_map.tile_height]
    if game_map.viewport is not None:
        summary["viewport"] = list(game_map.viewport)
    summary["caps"] = [flag.name for flag in type(game_map.caps) if flag and flag in game_map.caps]

    layers = []
    for layer in game_map.layers:
        width, height, tile_width, tile_height = game_map.layer_dimensions(layer)
        layers.append({
            "title": layer.title,
            "size": [width, height],
            "tile_size": [tile_width, tile_height],
            "items": len(layer.items),
            "valid_codes": len(layer.valid_items),
        })
    summary["layers"] = layers

    summary["paths"] = [
        {
            "points": [list(p) for p in path.points],
            "max_points": path.max_points,
            "fixed": path.fixed,
            "closed": path.force_closed,
            "starts": [list(s) for s in path.starts],
        }
        for path in game_map.paths
    ]
    return summary


def map_to_json(game_map: Map) -> str:
    """Export `describe_map` output as indented JSON."""
    return orjson.dumps(describe_map(game_map), option=orjson.OPT_INDENT_2).decode("utf-8")


def layer_to_text(game_map: GridMap, index: int) -> str:
    """Render one layer as a grid of hex codes, one text line per row.

    Empty cells are shown as dots. Where several items share a cell the last
    one is shown.

    Raises:
        IndexError: If the map has no layer at `index`
    """
    layer = game_map.layers[index]
    width, height, _, _ = game_map.layer_dimensions(layer)
    cells = {pos: items[-1].code for pos, items in layer.cell_index().items()}

    digits = max((len(f"{code:x}") for code in cells.values()), default=1)
    empty = "." * digits
    lines = []
    for y in range(height):
        row = []
        for x in range(width):
            code = cells.get((x, y))
            row.append(empty if code is None else f"{code:0{digits}x}")
        lines.append(" ".join(row))
    logger.debug(f"Rendered layer {layer.title!r} as {width}x{height} text grid")
    return "\n".join(lines)
