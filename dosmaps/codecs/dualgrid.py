"""
Bit-packed dual-layer codec.

Each grid cell is one 16-bit value holding a background tile, a foreground
tile, or both:

- top bit set: both. Low bits are the background tile; the next bits are the
  low bits of the foreground tile. The remaining high foreground bits live in
  a separate overflow stream, 2 bits per cell, 4 cells per byte.
- top bit clear, below the solid threshold: background tile only.
- top bit clear, at or above the threshold: foreground tile only.

The overflow stream is compressed with its own run-length scheme: a byte with
the top bit set starts a literal run of `0x100 - byte` bytes, any other byte
is a repeat count followed by the byte to repeat, and 0x00 0x00 ends the
stream.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import EncodingLimitError, FormatError
from ..maps.models import Item

logger = logging.getLogger(__name__)

DUAL_FLAG = 0x8000

MAX_OVERFLOW_RUN = 0x7F
"""Longest literal or repeat run written to the overflow stream.

A run of 0x80 is known to freeze the game, and literal runs are held to the
same limit as repeat runs.
"""

OVERFLOW_CELLS_PER_BYTE = 4


@dataclass(frozen=True)
class DualCellLayout:
    """Bit layout of a dual-layer cell value.

    Attributes:
        solid_tiles: Number of background tiles; scaled by `stride` this is
            the threshold between background-only and foreground-only values
        stride: Multiplier applied to tile numbers in single-layer values
        masked_step: Spacing of foreground-only tile numbers
        bg_bits: Width of the background field in a combined value
        fg_low_bits: Width of the foreground field in a combined value
        overflow_bits: Foreground bits carried in the overflow stream
    """

    solid_tiles: int = 1000
    stride: int = 8
    masked_step: int = 5
    bg_bits: int = 10
    fg_low_bits: int = 5
    overflow_bits: int = 2

    @property
    def threshold(self) -> int:
        return self.solid_tiles * self.stride

    @property
    def max_combined_fg(self) -> int:
        """Largest foreground tile that can share a cell with a background tile."""
        return (1 << (self.fg_low_bits + self.overflow_bits)) - 1

    def decode(self, value: int, overflow: int) -> tuple[Optional[int], Optional[int]]:
        """Split a cell value into (background, foreground); None where absent."""
        if value & DUAL_FLAG:
            bg = value & ((1 << self.bg_bits) - 1)
            fg_low = (value >> self.bg_bits) & ((1 << self.fg_low_bits) - 1)
            return bg, fg_low | (overflow << self.fg_low_bits)
        if value < self.threshold:
            return value // self.stride, None
        return None, (value // self.stride - self.solid_tiles) // self.masked_step

    def encode(self, bg: int, fg: Optional[int]) -> tuple[int, int]:
        """Build a cell value from its tiles.

        Returns:
            (cell value, overflow bits)

        Raises:
            EncodingLimitError: If `fg` is too large to share a cell with `bg`
        """
        if fg is None:
            return bg * self.stride, 0
        if bg == 0:
            return (fg * self.masked_step + self.solid_tiles) * self.stride, 0
        if fg > self.max_combined_fg:
            raise EncodingLimitError(
                f"Foreground tile {fg} cannot share a cell with background tile "
                f"{bg} (limit {self.max_combined_fg})"
            )
        low_mask = (1 << self.fg_low_bits) - 1
        value = DUAL_FLAG | bg | ((fg & low_mask) << self.bg_bits)
        return value, fg >> self.fg_low_bits


def decode_cells(
    values: list[int],
    overflow: list[int],
    width: int,
    height: int,
    layout: DualCellLayout,
    bg_default: int = 0,
) -> tuple[list[Item], list[Item]]:
    """Decode cell values into background and foreground items.

    Background tiles equal to `bg_default` produce no item. Cells past
    width*height are ignored.

    Returns:
        (background items, foreground items)
    """
    bg_items: list[Item] = []
    fg_items: list[Item] = []
    for i in range(width * height):
        bg, fg = layout.decode(values[i], overflow[i])
        x, y = i % width, i // width
        if bg is not None and bg != bg_default:
            bg_items.append(Item(x, y, bg))
        if fg is not None:
            fg_items.append(Item(x, y, fg))
    return bg_items, fg_items


def encode_cells(
    bg_items: list[Item],
    fg_items: list[Item],
    width: int,
    cell_count: int,
    layout: DualCellLayout,
) -> tuple[list[int], list[int]]:
    """Combine background and foreground items into cell values.

    Args:
        bg_items: Background layer items
        fg_items: Foreground layer items
        width: Grid width in cells
        cell_count: Total number of cells to produce
        layout: Bit layout to encode with

    Returns:
        (cell values, overflow bits per cell)
    """
    bg_cells = [0] * cell_count
    fg_cells: list[Optional[int]] = [None] * cell_count
    for item in bg_items:
        bg_cells[item.y * width + item.x] = item.code
    for item in fg_items:
        fg_cells[item.y * width + item.x] = item.code

    values: list[int] = []
    overflow: list[int] = []
    for bg, fg in zip(bg_cells, fg_cells):
        value, extra = layout.encode(bg, fg)
        values.append(value)
        overflow.append(extra)
    return values, overflow


# === OVERFLOW STREAM ===

def pack_overflow(overflow: list[int]) -> bytes:
    """Pack 2-bit overflow values four to a byte, first cell in the low bits."""
    out = bytearray()
    for i in range(0, len(overflow), OVERFLOW_CELLS_PER_BYTE):
        byte = 0
        for shift, value in enumerate(overflow[i:i + OVERFLOW_CELLS_PER_BYTE]):
            byte |= (value & 0x03) << (shift * 2)
        out.append(byte)
    return bytes(out)


def unpack_overflow(data: bytes, cell_count: int) -> list[int]:
    """Expand packed overflow bytes to one value per cell.

    Cells not covered by `data` get 0; values past `cell_count` are dropped.
    """
    values: list[int] = []
    for byte in data:
        for shift in range(OVERFLOW_CELLS_PER_BYTE):
            values.append((byte >> (shift * 2)) & 0x03)
        if len(values) >= cell_count:
            break
    values = values[:cell_count]
    values.extend([0] * (cell_count - len(values)))
    return values


def decode_overflow_rle(data: bytes) -> bytes:
    """Expand a compressed overflow stream into packed overflow bytes.

    Raises:
        FormatError: If a literal run extends past the end of the data
    """
    out = bytearray()
    pos = 0
    while pos < len(data):
        code = data[pos]
        pos += 1
        if code & 0x80:
            length = 0x100 - code
            if pos + length > len(data):
                raise FormatError(
                    f"Overflow literal run of {length} bytes at offset {pos - 1} "
                    "runs past the end of the data"
                )
            out.extend(data[pos:pos + length])
            pos += length
        else:
            if pos >= len(data):
                raise FormatError("Overflow repeat run is missing its value byte")
            value = data[pos]
            pos += 1
            if code == 0 and value == 0:
                break
            out.extend(bytes([value]) * code)
    return bytes(out)


def encode_overflow_rle(packed: bytes, max_run: int = MAX_OVERFLOW_RUN) -> bytes:
    """Compress packed overflow bytes.

    Trailing zero bytes are not stored, since a reader fills missing overflow
    with zeros. The result always ends with the 0x00 0x00 terminator.
    """
    end = len(packed)
    while end > 0 and packed[end - 1] == 0:
        end -= 1

    out = bytearray()
    literal = bytearray()

    def flush_literal() -> None:
        while literal:
            chunk = literal[:max_run]
            out.append(0x100 - len(chunk))
            out.extend(chunk)
            del literal[:len(chunk)]

    pos = 0
    while pos < end:
        value = packed[pos]
        run_end = pos
        while run_end < end and packed[run_end] == value:
            run_end += 1
        run = run_end - pos
        if run > 1:
            flush_literal()
            while run > 0:
                amount = min(max_run, run)
                out.append(amount)
                out.append(value)
                run -= amount
        else:
            literal.append(value)
        pos = run_end

    flush_literal()
    out.extend(b"\x00\x00")
    logger.debug(f"Compressed {len(packed)} overflow bytes to {len(out)}")
    return bytes(out)
