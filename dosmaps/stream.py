"""
Byte stream wrapper used by every format handler.

Wraps a seekable binary file object and adds the little-endian integer and
padded-string helpers the map formats are built from. Short reads raise
StreamError instead of silently returning fewer bytes.
"""

import io
import logging
import os
import struct
import tempfile
from pathlib import Path
from typing import BinaryIO, Union

from .errors import StreamError

logger = logging.getLogger(__name__)


class ByteStream:
    """Seekable byte stream with exact reads and little-endian helpers."""

    def __init__(self, raw: Union[BinaryIO, bytes, bytearray, None] = None):
        """Wrap a binary file object.

        Args:
            raw: Binary file object, or bytes to read from. None creates an
                empty in-memory stream for writing.
        """
        if raw is None:
            raw = io.BytesIO()
        elif isinstance(raw, (bytes, bytearray)):
            raw = io.BytesIO(bytes(raw))
        self.raw: BinaryIO = raw

    # === POSITIONING ===

    def seek(self, offset: int) -> None:
        """Seek to an absolute offset."""
        if offset < 0:
            raise StreamError(f"Cannot seek to negative offset {offset}")
        try:
            self.raw.seek(offset, os.SEEK_SET)
        except (OSError, ValueError) as e:
            raise StreamError(f"Seek to {offset} failed: {e}") from e

    def skip(self, count: int) -> None:
        """Seek relative to the current position."""
        self.seek(self.tell() + count)

    def tell(self) -> int:
        """Get the current position."""
        return self.raw.tell()

    def size(self) -> int:
        """Get the total size of the stream without moving the read position."""
        pos = self.raw.tell()
        try:
            end = self.raw.seek(0, os.SEEK_END)
        finally:
            self.raw.seek(pos, os.SEEK_SET)
        return end

    def remaining(self) -> int:
        """Get the number of bytes between the current position and the end."""
        return self.size() - self.tell()

    # === READING ===

    def read_exact(self, count: int) -> bytes:
        """Read exactly `count` bytes.

        Raises:
            StreamError: If fewer bytes are available
        """
        if count < 0:
            raise StreamError(f"Invalid read length {count}")
        try:
            data = self.raw.read(count)
        except OSError as e:
            raise StreamError(f"Read failed: {e}") from e
        if len(data) != count:
            raise StreamError(
                f"Short read at offset {self.tell() - len(data)}: "
                f"wanted {count} bytes, got {len(data)}"
            )
        return data

    def read_u8(self) -> int:
        return self.read_exact(1)[0]

    def read_s8(self) -> int:
        return struct.unpack("<b", self.read_exact(1))[0]

    def read_u16le(self) -> int:
        return struct.unpack("<H", self.read_exact(2))[0]

    def read_u16le_array(self, count: int) -> list[int]:
        """Read `count` consecutive little-endian 16-bit values."""
        return list(struct.unpack(f"<{count}H", self.read_exact(count * 2)))

    def read_padded(self, length: int) -> str:
        """Read a fixed-length text field, dropping NUL and trailing space padding."""
        raw = self.read_exact(length)
        text = raw.split(b"\x00", 1)[0].decode("latin-1")
        return text.rstrip(" ")

    # === WRITING ===

    def write(self, data: Union[bytes, bytearray]) -> None:
        try:
            self.raw.write(data)
        except (OSError, ValueError) as e:
            raise StreamError(f"Write failed: {e}") from e

    def write_u8(self, value: int) -> None:
        self.write(struct.pack("<B", value))

    def write_u16le(self, value: int) -> None:
        self.write(struct.pack("<H", value))

    def write_u16le_array(self, values: list[int]) -> None:
        self.write(struct.pack(f"<{len(values)}H", *values))

    def write_padded(
        self, text: str, length: int, pad: bytes = b"\x00", pad_to: int | None = None
    ) -> None:
        """Write a fixed-length text field.

        Args:
            text: Text to write
            length: Total field length in bytes
            pad: Byte used to fill the field up to `pad_to`
            pad_to: Fill with `pad` up to this many bytes, then NULs up to
                `length`. Defaults to `length`.
        """
        raw = text.encode("latin-1")
        if len(raw) > length:
            raise StreamError(f"Text {text!r} does not fit in {length} bytes")
        if pad_to is None:
            pad_to = length
        raw = raw.ljust(pad_to, pad).ljust(length, b"\x00")
        self.write(raw)

    def flush(self) -> None:
        try:
            self.raw.flush()
        except OSError as e:
            raise StreamError(f"Flush failed: {e}") from e

    def getvalue(self) -> bytes:
        """Get the full contents of the stream."""
        pos = self.tell()
        try:
            self.raw.seek(0)
            return self.raw.read()
        finally:
            self.raw.seek(pos)


def commit_file(path: Path, data: bytes) -> None:
    """Replace `path` with `data` atomically.

    Writes to a temporary file in the destination directory and renames it
    over the target, so a failure leaves the previous file untouched.
    """
    path = Path(path)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    except OSError as e:
        raise StreamError(f"Could not write {path}: {e}") from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise StreamError(f"Could not write {path}: {e}") from e
    logger.debug(f"Wrote {len(data)} bytes to {path}")
