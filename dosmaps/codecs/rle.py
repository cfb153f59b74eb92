"""
Run-length codec built from (count, code) byte pairs.

Each pair expands to `count` consecutive grid cells holding `code`. Cells
holding the layer's default code produce no items but still advance the
cursor.
"""

import logging
from typing import Optional

from ..errors import EncodingLimitError, FormatError, ValidationError
from ..maps.models import Item
from ..stream import ByteStream

logger = logging.getLogger(__name__)

MAX_RUN = 0xFF


def read_rle_grid(
    stream: ByteStream,
    width: int,
    height: int,
    default_code: int,
    x_offset: int = 0,
    max_code: Optional[int] = None,
) -> list[Item]:
    """Read an RLE-compressed grid of width*height cells.

    Args:
        stream: Stream positioned at the first pair
        width: Grid width in cells
        height: Grid height in cells
        default_code: Code meaning "nothing here"
        x_offset: Added to every decoded x coordinate
        max_code: Highest non-default code a cell may hold, if limited

    Returns:
        One item per non-default cell, in row-major order

    Raises:
        FormatError: If a run extends past the end of the grid
        ValidationError: If a run holds a code above `max_code`
        StreamError: If the data ends before the grid is full
    """
    total = width * height
    items: list[Item] = []
    pos = 0
    while pos < total:
        count = stream.read_u8()
        code = stream.read_u8()
        if pos + count > total:
            raise FormatError(
                f"RLE run of {count} at cell {pos} overruns the {width}x{height} grid"
            )
        if code != default_code:
            if max_code is not None and code > max_code:
                raise ValidationError(
                    f"Tile code {code} at cell {pos} is above the maximum of {max_code}"
                )
            for i in range(pos, pos + count):
                items.append(Item(i % width + x_offset, i // width, code))
        pos += count
    return items


def encode_rle(
    cells: list[int], terminator: Optional[tuple[int, int]] = None
) -> bytes:
    """Compress a list of byte-sized cell codes into (count, code) pairs.

    Runs longer than 255 cells are split into several pairs.

    Args:
        cells: Cell codes in row-major order
        terminator: Reserved (count, code) pair a reader treats as the end of
            data. If the final pair would equal it, the last cell is moved
            into a pair of its own.

    Raises:
        EncodingLimitError: If the final pair equals the terminator and
            cannot be split
    """
    pairs: list[list[int]] = []
    for code in cells:
        if pairs and pairs[-1][1] == code and pairs[-1][0] < MAX_RUN:
            pairs[-1][0] += 1
        else:
            pairs.append([1, code])

    if terminator is not None and pairs and tuple(pairs[-1]) == tuple(terminator):
        count, code = pairs[-1]
        if count == 1:
            raise EncodingLimitError(
                f"Final RLE pair ({count:#04x}, {code:#04x}) collides with the "
                "terminator and cannot be split"
            )
        pairs[-1][0] = count - 1
        pairs.append([1, code])
        logger.debug(f"Split final RLE run of {count} to avoid terminator")

    out = bytearray()
    for count, code in pairs:
        out.append(count)
        out.append(code)
    return bytes(out)


def write_rle_grid(
    stream: ByteStream,
    items: list[Item],
    width: int,
    height: int,
    default_code: int,
    x_offset: int = 0,
) -> None:
    """Lay items out on a grid and write it RLE-compressed."""
    cells = [default_code] * (width * height)
    for item in items:
        cells[item.y * width + item.x - x_offset] = item.code
    stream.write(encode_rle(cells))
