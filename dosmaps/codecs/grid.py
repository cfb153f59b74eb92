"""
Fixed grid codec: one fixed-width code per cell, row-major.
"""

from typing import Optional

from ..errors import ValidationError
from ..maps.models import Item
from ..stream import ByteStream


def decode_grid(
    codes: list[int],
    width: int,
    height: int,
    skip_code: Optional[int] = 0,
    max_code: Optional[int] = None,
) -> list[Item]:
    """Turn a row-major list of cell codes into items.

    Args:
        codes: Cell codes, at least width*height of them
        width: Grid width in cells
        height: Grid height in cells
        skip_code: Code meaning "nothing here"; those cells produce no item.
            None emits an item for every cell.
        max_code: Highest code a cell may hold, if limited

    Returns:
        Items in row-major order

    Raises:
        ValidationError: If a cell holds a code above `max_code`
    """
    items: list[Item] = []
    for i in range(width * height):
        code = codes[i]
        if skip_code is not None and code == skip_code:
            continue
        if max_code is not None and code > max_code:
            raise ValidationError(
                f"Tile code {code} at ({i % width}, {i // width}) is above the "
                f"maximum of {max_code}"
            )
        items.append(Item(i % width, i // width, code))
    return items


def encode_grid(
    items: list[Item], width: int, height: int, fill_code: int = 0
) -> list[int]:
    """Lay items out into a row-major cell list.

    Cells with no item get `fill_code`; if several items share a cell the
    last one wins. Items are assumed to be within bounds (checked by write
    validation).
    """
    cells = [fill_code] * (width * height)
    for item in items:
        cells[item.y * width + item.x] = item.code
    return cells


def read_byte_grid(
    stream: ByteStream,
    width: int,
    height: int,
    skip_code: Optional[int] = 0,
    max_code: Optional[int] = None,
) -> list[Item]:
    """Read a grid of single-byte cells from the stream."""
    return decode_grid(
        list(stream.read_exact(width * height)), width, height, skip_code, max_code
    )


def write_byte_grid(
    stream: ByteStream, items: list[Item], width: int, height: int, fill_code: int = 0
) -> None:
    """Write a grid of single-byte cells to the stream."""
    stream.write(bytes(encode_grid(items, width, height, fill_code)))
