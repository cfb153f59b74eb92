"""
Data models for the tilesets a map is drawn with.

Tilesets are supplied by the caller; dosmaps never decodes game graphics
itself. A tileset is an ordered list of entries, each either a Pillow image
or a nested tileset (for formats that pack several sub-tilesets into one
file). Each model is intentionally lightweight: no decoding of game files.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from PIL import Image


class GraphicsRole(Enum):
    """Purpose of a graphics file referenced by a map."""

    BACKGROUND_TILESET = "background_tileset"
    """Solid tiles drawn behind everything else."""

    FOREGROUND_TILESET = "foreground_tileset"
    """Masked tiles drawn over the background."""

    SPRITE_TILESET = "sprite_tileset"
    """Actor and item sprites."""

    FONT_TILESET = "font_tileset"
    """Glyphs for in-level text."""

    BACKGROUND_IMAGE = "background_image"
    """Full-screen backdrop shown behind the map."""


@dataclass
class Tileset:
    """Ordered collection of drawable entries.

    Entries are referenced by numeric index. An entry may itself be a
    Tileset, reached through `open_tileset`.
    """

    entries: list[Union[Image.Image, "Tileset"]] = field(default_factory=list)
    name: str = ""

    def __len__(self) -> int:
        return len(self.entries)

    def open_image(self, index: int) -> Optional[Image.Image]:
        """Get the image at `index`, or None if out of range or not an image."""
        if index < 0 or index >= len(self.entries):
            return None
        entry = self.entries[index]
        if isinstance(entry, Tileset):
            return None
        return entry

    def open_tileset(self, index: int) -> Optional["Tileset"]:
        """Get the nested tileset at `index`, or None if there isn't one."""
        if index < 0 or index >= len(self.entries):
            return None
        entry = self.entries[index]
        return entry if isinstance(entry, Tileset) else None

    @classmethod
    def from_sheet(
        cls, sheet: Image.Image, tile_width: int, tile_height: int, name: str = ""
    ) -> "Tileset":
        """Slice a sprite sheet into a tileset, left to right then top to bottom.

        Args:
            sheet: Source image
            tile_width: Width of each tile in pixels
            tile_height: Height of each tile in pixels
            name: Optional tileset name

        Returns:
            Tileset with one entry per complete tile in the sheet
        """
        if tile_width <= 0 or tile_height <= 0:
            raise ValueError(f"Invalid tile size {tile_width}x{tile_height}")

        columns = sheet.width // tile_width
        rows = sheet.height // tile_height
        entries: list[Union[Image.Image, Tileset]] = []
        for row in range(rows):
            for col in range(columns):
                left = col * tile_width
                top = row * tile_height
                entries.append(
                    sheet.crop((left, top, left + tile_width, top + tile_height))
                )
        return cls(entries=entries, name=name)

    @classmethod
    def from_file(
        cls, path: Path, tile_width: int, tile_height: int
    ) -> "Tileset":
        """Load a sprite sheet from disk and slice it."""
        with Image.open(path) as sheet:
            sheet.load()
            return cls.from_sheet(sheet, tile_width, tile_height, name=Path(path).stem)


TilesetCollection = dict[GraphicsRole, Tileset]
"""Tilesets keyed by the role they play for a map."""


class ImageKind(Enum):
    """What a renderer should draw for an item."""

    SUPPLIED = "supplied"
    BLANK = "blank"
    DIGIT_0 = "digit_0"
    DIGIT_1 = "digit_1"
    DIGIT_2 = "digit_2"
    DIGIT_3 = "digit_3"
    DIGIT_4 = "digit_4"
    DIGIT_5 = "digit_5"
    DIGIT_6 = "digit_6"
    DIGIT_7 = "digit_7"
    DIGIT_8 = "digit_8"
    DIGIT_9 = "digit_9"
    DIGIT_A = "digit_a"
    DIGIT_B = "digit_b"
    DIGIT_C = "digit_c"
    DIGIT_D = "digit_d"
    DIGIT_E = "digit_e"
    DIGIT_F = "digit_f"
    INTERACTIVE = "interactive"
    UNKNOWN = "unknown"

    @classmethod
    def digit(cls, value: int) -> "ImageKind":
        """Get the hex digit placeholder for 0-15."""
        if not 0 <= value <= 0xF:
            return cls.UNKNOWN
        return cls[f"DIGIT_{value:X}"]

    @property
    def is_placeholder(self) -> bool:
        return self not in (ImageKind.SUPPLIED, ImageKind.BLANK)


@dataclass(frozen=True)
class TileImage:
    """Result of resolving an item to something drawable.

    `image` is only set when `kind` is SUPPLIED.
    """

    kind: ImageKind
    image: Optional[Image.Image] = None

    @classmethod
    def supplied(cls, image: Image.Image) -> "TileImage":
        return cls(ImageKind.SUPPLIED, image)


UNKNOWN_IMAGE = TileImage(ImageKind.UNKNOWN)
BLANK_IMAGE = TileImage(ImageKind.BLANK)
