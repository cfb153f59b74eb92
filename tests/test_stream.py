"""Tests for the byte stream wrapper and atomic file replacement."""

import io
from pathlib import Path

import pytest

from dosmaps.errors import StreamError
from dosmaps.stream import ByteStream, commit_file


class TestByteStreamReading:
    """Test exact reads and integer helpers."""

    def test_little_endian_helpers(self) -> None:
        """Test u8, s8 and u16 values are read little-endian."""
        stream = ByteStream(b"\x34\x12\xff\x80\x01\x00\x02\x00")
        assert stream.read_u16le() == 0x1234
        assert stream.read_u8() == 0xFF
        assert stream.read_s8() == -128
        assert stream.read_u16le_array(2) == [1, 2]
        assert stream.remaining() == 0

    def test_short_read_raises(self) -> None:
        """Test reading past the end raises instead of returning less data."""
        stream = ByteStream(b"\x01\x02\x03")
        with pytest.raises(StreamError):
            stream.read_exact(4)

    def test_size_keeps_position(self) -> None:
        """Test size() does not move the read position."""
        stream = ByteStream(b"abcdef")
        stream.seek(2)
        assert stream.size() == 6
        assert stream.tell() == 2
        stream.skip(3)
        assert stream.read_exact(1) == b"f"

    def test_negative_seek_raises(self) -> None:
        """Test seeking before the start is rejected."""
        with pytest.raises(StreamError):
            ByteStream(b"abc").seek(-1)

    def test_read_padded_strips_padding(self) -> None:
        """Test NUL and trailing space padding are removed."""
        stream = ByteStream(b"TILES.MNI   \x00junk")
        assert stream.read_padded(13) == "TILES.MNI"
        assert stream.tell() == 13


class TestByteStreamWriting:
    """Test writes to in-memory and file-backed streams."""

    def test_write_padded_with_pad_to(self) -> None:
        """Test text is space-filled up to pad_to and NUL-filled after."""
        stream = ByteStream()
        stream.write_padded("ab", 5, pad=b" ", pad_to=4)
        assert stream.getvalue() == b"ab  \x00"

    def test_write_padded_too_long(self) -> None:
        """Test text longer than the field is rejected."""
        with pytest.raises(StreamError):
            ByteStream().write_padded("toolongname", 4)

    def test_wraps_file_object(self) -> None:
        """Test an existing binary file object can be wrapped."""
        raw = io.BytesIO()
        stream = ByteStream(raw)
        stream.write_u16le(0xBEEF)
        stream.write_u8(7)
        stream.flush()
        assert raw.getvalue() == b"\xef\xbe\x07"


class TestCommitFile:
    """Test atomic replacement of files on disk."""

    def test_replaces_existing_file(self, tmp_path: Path) -> None:
        """Test the destination holds the new data and no temp file is left."""
        target = tmp_path / "level.dav"
        target.write_bytes(b"old")
        commit_file(target, b"new data")
        assert target.read_bytes() == b"new data"
        assert [p.name for p in tmp_path.iterdir()] == ["level.dav"]

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        """Test a missing destination directory surfaces as StreamError."""
        with pytest.raises(StreamError):
            commit_file(tmp_path / "missing" / "level.dav", b"data")
