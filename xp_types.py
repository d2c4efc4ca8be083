"""
XP Types & Constants — REXPaint .xp Image Format
=================================================

Foundational type definitions, constants, packed record layouts and error
classes for the XP codec. This module has ZERO external dependencies beyond
the Python standard library.

Format reference:
  - REXPaint manual, .xp format appendix
  - gzip-wrapped, little-endian, column-major cell records
"""

import struct
from dataclasses import dataclass, field
from typing import List, Tuple

__all__ = [
    "XP_VERSION", "XP_EXPORT_LAYERS", "XP_EXTENSION", "UNDRAWN_RGB",
    "FILE_HEADER", "LAYER_HEADER", "CELL_RECORD",
    "XPError", "XPValidationError", "XPFormatError", "XPBoundsError",
    "column_major_to_xy", "xy_to_column_major",
    "Cell", "XPImage",
]

# ═══════════════════════════════════════════════════════════════
# FORMAT CONSTANTS
# ═══════════════════════════════════════════════════════════════

# Version written on export. REXPaint stores a negative build number here;
# decode accepts any value.
XP_VERSION = -1

# Encode always emits a single flattened layer
XP_EXPORT_LAYERS = 1

XP_EXTENSION = ".xp"

# Reserved background colour meaning "nothing painted here"
UNDRAWN_RGB = (0xFF, 0x00, 0xFF)


# ═══════════════════════════════════════════════════════════════
# PACKED LAYOUTS (explicit, never inferred from memory layout)
# ═══════════════════════════════════════════════════════════════

# version : int32, layer_count : uint32
FILE_HEADER = struct.Struct('<iI')

# width : uint32, height : uint32
LAYER_HEADER = struct.Struct('<II')

# glyph : uint32, fg r/g/b : uint8 x3, bg r/g/b : uint8 x3  (10 bytes, no padding)
CELL_RECORD = struct.Struct('<I6B')


# ═══════════════════════════════════════════════════════════════
# ERROR CLASSES
# ═══════════════════════════════════════════════════════════════

class XPError(Exception):
    """Base error for all XP codec operations."""
    pass

class XPValidationError(XPError):
    """Caller precondition failed (bad path, negative size)."""
    pass

class XPFormatError(XPError):
    """gzip stream or binary layout is malformed or truncated."""
    pass

class XPBoundsError(XPError, IndexError):
    """Cell coordinate outside the image, or image has no cells."""
    pass


# ═══════════════════════════════════════════════════════════════
# COORDINATE TRANSFORM
# ═══════════════════════════════════════════════════════════════

def column_major_to_xy(index: int, height: int) -> Tuple[int, int]:
    """Stored record index -> (x, y). The vertical axis varies fastest."""
    return index // height, index % height

def xy_to_column_major(x: int, y: int, height: int) -> int:
    """(x, y) -> stored record index."""
    return x * height + y


# ═══════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ═══════════════════════════════════════════════════════════════

@dataclass
class Cell:
    """
    One grid position: glyph code plus foreground and background colour.

    Colours are kept as separate 8-bit channels so callers can combine them
    into whatever packed format they need. A cell whose background equals
    UNDRAWN_RGB is "undrawn"; that is a value convention, nothing more.

    Wire format (10 bytes):
        glyph : uint32
        fg_r, fg_g, fg_b : uint8
        bg_r, bg_g, bg_b : uint8
    """
    glyph: int = 0
    fg_r: int = 0
    fg_g: int = 0
    fg_b: int = 0
    bg_r: int = UNDRAWN_RGB[0]
    bg_g: int = UNDRAWN_RGB[1]
    bg_b: int = UNDRAWN_RGB[2]

    PACKED_SIZE = CELL_RECORD.size  # 10 bytes

    @classmethod
    def cleared(cls) -> 'Cell':
        """A new cell in the REXPaint default (undrawn) state."""
        cell = cls()
        cell.clear()
        return cell

    @classmethod
    def from_argb(cls, fore: int, back: int, glyph: int = 0) -> 'Cell':
        cell = cls(glyph=glyph)
        cell.set_argb(fore, back)
        return cell

    @classmethod
    def from_rgba(cls, fore: int, back: int, glyph: int = 0) -> 'Cell':
        cell = cls(glyph=glyph)
        cell.set_rgba(fore, back)
        return cell

    def copy(self) -> 'Cell':
        return Cell(self.glyph, self.fg_r, self.fg_g, self.fg_b,
                    self.bg_r, self.bg_g, self.bg_b)

    # ─── State ────────────────────────────────────────────────

    def clear(self) -> None:
        """Remove the glyph and reset colours. A cleared cell is undrawn."""
        self.glyph = 0
        self.fg_r, self.fg_g, self.fg_b = 0, 0, 0
        self.bg_r, self.bg_g, self.bg_b = UNDRAWN_RGB

    def is_undrawn(self) -> bool:
        return (self.bg_r, self.bg_g, self.bg_b) == UNDRAWN_RGB

    def _set_undrawn(self) -> None:
        self.fg_r, self.fg_g, self.fg_b = 0, 0, 0
        self.bg_r, self.bg_g, self.bg_b = UNDRAWN_RGB

    # ─── Colour conversions ───────────────────────────────────

    def to_argb(self) -> Tuple[int, int]:
        """(fore, back) as 0xAARRGGBB. Alpha is always 0xFF."""
        fore = 0xFF000000 | (self.fg_r << 16) | (self.fg_g << 8) | self.fg_b
        back = 0xFF000000 | (self.bg_r << 16) | (self.bg_g << 8) | self.bg_b
        return fore, back

    def to_rgba(self) -> Tuple[int, int]:
        """(fore, back) as 0xRRGGBBAA. Alpha is always 0xFF."""
        fore = (self.fg_r << 24) | (self.fg_g << 16) | (self.fg_b << 8) | 0xFF
        back = (self.bg_r << 24) | (self.bg_g << 16) | (self.bg_b << 8) | 0xFF
        return fore, back

    def set_argb(self, fore: int, back: int) -> None:
        """
        Set colours from ARGB8888 values.

        A zero background alpha makes the cell undrawn. Any other alpha,
        and the foreground alpha in every case, is ignored.
        """
        if (back >> 24) & 0xFF == 0:
            self._set_undrawn()
            return

        self.fg_r = (fore >> 16) & 0xFF
        self.fg_g = (fore >> 8) & 0xFF
        self.fg_b = fore & 0xFF

        self.bg_r = (back >> 16) & 0xFF
        self.bg_g = (back >> 8) & 0xFF
        self.bg_b = back & 0xFF

    def set_rgba(self, fore: int, back: int) -> None:
        """Set colours from RGBA8888 values. Same alpha rule as set_argb()."""
        if back & 0xFF == 0:
            self._set_undrawn()
            return

        self.fg_r = (fore >> 24) & 0xFF
        self.fg_g = (fore >> 16) & 0xFF
        self.fg_b = (fore >> 8) & 0xFF

        self.bg_r = (back >> 24) & 0xFF
        self.bg_g = (back >> 16) & 0xFF
        self.bg_b = (back >> 8) & 0xFF

    # ─── Wire format ──────────────────────────────────────────

    def pack(self) -> bytes:
        """Serialize to the 10-byte cell record."""
        try:
            return CELL_RECORD.pack(
                self.glyph,
                self.fg_r, self.fg_g, self.fg_b,
                self.bg_r, self.bg_g, self.bg_b,
            )
        except struct.error as e:
            raise XPValidationError(f"Cell does not fit the 10-byte record: {self!r} ({e})") from e

    @classmethod
    def unpack(cls, data: bytes, offset: int = 0) -> 'Cell':
        """Deserialize one record starting at offset."""
        end = offset + cls.PACKED_SIZE
        if len(data) < end:
            raise XPFormatError(
                f"Cell record needs {cls.PACKED_SIZE} bytes at offset {offset}, "
                f"got {max(len(data) - offset, 0)}"
            )
        return cls(*CELL_RECORD.unpack_from(data, offset))


@dataclass
class XPImage:
    """
    A decoded (or to-be-encoded) XP image: a single flattened layer.

    Cells are stored row-major, index = x + y * width. An image with zero
    cells is uninitialised and every cell access on it fails.
    """
    width: int = 0
    height: int = 0
    cells: List[Cell] = field(default_factory=list)

    @classmethod
    def blank(cls, width: int, height: int) -> 'XPImage':
        image = cls()
        image.init(width, height)
        return image

    def init(self, width: int, height: int) -> None:
        """Allocate width * height cells, all cleared to the undrawn default."""
        if width < 0 or height < 0:
            raise XPValidationError(f"Image size must be non-negative, got {width}x{height}")
        self.width = width
        self.height = height
        self.cells = [Cell.cleared() for _ in range(width * height)]

    def _index(self, x: int, y: int) -> int:
        if not self.cells:
            raise XPBoundsError("Image has no data.")
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            raise XPBoundsError(
                f"({x}, {y}) out of bounds for {self.width}x{self.height} image"
            )
        return x + y * self.width

    def get_cell(self, x: int, y: int) -> Cell:
        """Copy of the cell at (x, y). (0, 0) is the top-left corner."""
        return self.cells[self._index(x, y)].copy()

    def set_cell(self, x: int, y: int, cell: Cell) -> None:
        """Overwrite the cell at (x, y) by value."""
        self.cells[self._index(x, y)] = cell.copy()
