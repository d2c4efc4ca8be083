"""
XP Preview — raster rendering of an XPImage with Pillow.

Each cell becomes a cell_size x cell_size square filled with its background
colour, with the glyph drawn in the foreground colour. Undrawn cells are left
fully transparent. Glyph codes are read as code page 437, as REXPaint's
default fonts are.
"""

from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from xp_types import XPImage, XPValidationError

__all__ = ["render_image", "save_preview", "glyph_char", "REPLACEMENT_CHAR"]

TRANSPARENT = (0, 0, 0, 0)

# NUL and space render as background only
_BLANK_GLYPHS = (0, 32)


# Drawn in place of codes no font can show
REPLACEMENT_CHAR = '?'


def glyph_char(glyph: int, font=None) -> str:
    """Glyph code -> drawable character, or REPLACEMENT_CHAR."""
    if 0 <= glyph < 256:
        char = bytes([glyph]).decode('cp437')
    elif glyph < 0 or glyph > 0x10FFFF or 0xD800 <= glyph <= 0xDFFF:
        return REPLACEMENT_CHAR
    else:
        char = chr(glyph)

    # Bitmap fonts only encode latin-1
    if isinstance(font, ImageFont.ImageFont):
        try:
            char.encode('latin-1')
        except UnicodeEncodeError:
            return REPLACEMENT_CHAR
    return char


def render_image(image: XPImage, cell_size: int = 8,
                 font: Optional[ImageFont.ImageFont] = None) -> Image.Image:
    if cell_size < 1:
        raise XPValidationError(f"cell_size must be positive, got {cell_size}")
    if font is None:
        font = ImageFont.load_default()

    img = Image.new("RGBA", (max(1, image.width * cell_size),
                             max(1, image.height * cell_size)), TRANSPARENT)
    draw = ImageDraw.Draw(img)

    for i, cell in enumerate(image.cells):
        if cell.is_undrawn():
            continue
        x = (i % image.width) * cell_size
        y = (i // image.width) * cell_size
        draw.rectangle(
            [x, y, x + cell_size - 1, y + cell_size - 1],
            fill=(cell.bg_r, cell.bg_g, cell.bg_b, 255),
        )
        if cell.glyph not in _BLANK_GLYPHS:
            draw.text((x, y), glyph_char(cell.glyph, font), font=font,
                      fill=(cell.fg_r, cell.fg_g, cell.fg_b, 255))
    return img


def save_preview(image: XPImage, path: str, cell_size: int = 8,
                 font: Optional[ImageFont.ImageFont] = None) -> str:
    """Render and write a PNG preview. Returns the path written."""
    render_image(image, cell_size, font).save(path, format="PNG")
    return str(path)
