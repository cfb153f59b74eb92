"""
Map format handlers and the registry that selects between them.

Usage:
    from dosmaps.formats import FormatRegistry

    registry = FormatRegistry.default()
    game_map = registry.open_file("level1.dav")
"""

from .base import Confidence, FormatHandler, Supplementals, check_tile_codes, validate_map
from .registry import DEFAULT_HANDLERS, DetectionResult, FormatRegistry

__all__ = [
    # Handler contract
    "Confidence",
    "FormatHandler",
    "Supplementals",
    "validate_map",
    "check_tile_codes",
    # Registry
    "DEFAULT_HANDLERS",
    "DetectionResult",
    "FormatRegistry",
]
