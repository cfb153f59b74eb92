"""
Relative-delta path codec.

A path is stored as signed 8-bit (dx, dy) pairs, each relative to the
previous point (the first relative to the origin), ended by a reserved
sentinel pair or by running out of space.
"""

import logging

from ..errors import EncodingLimitError
from ..maps.models import Point

logger = logging.getLogger(__name__)


def _to_s8(value: int) -> int:
    return value - 0x100 if value >= 0x80 else value


def decode_path(data: bytes, sentinel: tuple[int, int]) -> list[Point]:
    """Decode delta pairs into absolute points.

    Args:
        data: Raw path block; decoding stops at its end if no sentinel is found
        sentinel: Reserved (dx, dy) byte values marking the end of the path

    Returns:
        Absolute points, in order
    """
    points: list[Point] = []
    x = y = 0
    for i in range(0, len(data) - 1, 2):
        if (data[i], data[i + 1]) == sentinel:
            break
        x += _to_s8(data[i])
        y += _to_s8(data[i + 1])
        points.append((x, y))
    return points


def encode_path(points: list[Point], block_size: int, sentinel: tuple[int, int]) -> bytes:
    """Encode absolute points as delta pairs in a fixed-size block.

    A delta equal to the sentinel is avoided by moving that point down one
    pixel; the following delta is taken from the moved point so the rest of
    the path is unaffected. The sentinel is appended only if it fits, and the
    block is zero-filled to `block_size`.

    Raises:
        EncodingLimitError: If the points do not fit in the block, a delta
            does not fit in a signed byte, or the last point would need moving
    """
    if len(points) * 2 > block_size:
        raise EncodingLimitError(
            f"Path has {len(points)} points but only {block_size // 2} fit"
        )

    sentinel_delta = (_to_s8(sentinel[0]), _to_s8(sentinel[1]))
    out = bytearray()
    last_x = last_y = 0
    for index, (x, y) in enumerate(points):
        dx = x - last_x
        dy = y - last_y
        if (dx, dy) == sentinel_delta:
            if index == len(points) - 1:
                raise EncodingLimitError(
                    f"Last path point {(x, y)} is at the reserved offset "
                    f"{sentinel_delta} from the point before it; move either "
                    "point by at least one pixel"
                )
            logger.debug(f"Nudging path point {index} at {(x, y)} to avoid sentinel")
            y += 1
            dy += 1
        if not (-0x80 <= dx <= 0x7F and -0x80 <= dy <= 0x7F):
            raise EncodingLimitError(
                f"Path point {index} at {(x, y)} is too far from the previous "
                f"point ({dx}, {dy})"
            )
        out.append(dx & 0xFF)
        out.append(dy & 0xFF)
        last_x, last_y = x, y

    if len(out) < block_size:
        out.extend(sentinel)
    return bytes(out.ljust(block_size, b"\x00"))
