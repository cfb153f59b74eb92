"""
Codec primitives shared by the map format handlers.
"""

from .grid import decode_grid, encode_grid, read_byte_grid, write_byte_grid
from .rle import read_rle_grid, write_rle_grid, encode_rle
from .dualgrid import (
    DualCellLayout, decode_cells, encode_cells,
    pack_overflow, unpack_overflow, decode_overflow_rle, encode_overflow_rle,
    MAX_OVERFLOW_RUN
)
from .paths import decode_path, encode_path

__all__ = [
    # Fixed grid
    'decode_grid',
    'encode_grid',
    'read_byte_grid',
    'write_byte_grid',

    # Run-length
    'read_rle_grid',
    'write_rle_grid',
    'encode_rle',

    # Dual-layer
    'DualCellLayout',
    'decode_cells',
    'encode_cells',
    'pack_overflow',
    'unpack_overflow',
    'decode_overflow_rle',
    'encode_overflow_rle',
    'MAX_OVERFLOW_RUN',

    # Paths
    'decode_path',
    'encode_path',
]
