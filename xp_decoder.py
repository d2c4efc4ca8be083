"""
XP Decoder — REXPaint .xp Image Decoder
========================================

Decodes REXPaint .xp files back to a single flattened XPImage.

Decode path:
  1. gzip decompression (shared CompressionEngine)
  2. File header: version (any value accepted), layer count
  3. First layer's width/height size the image
  4. Every layer, bottom to top: width/height read (and, after the first,
     discarded), then width*height column-major cell records painted over
     the image at their row-major position

Layers are composited by plain overwrite. A cell whose background is the
undrawn sentinel still replaces whatever a lower layer put there.
"""

import io
from typing import BinaryIO, Tuple

from xp_types import (
    XP_EXTENSION,
    FILE_HEADER, LAYER_HEADER,
    Cell, XPImage,
    XPFormatError, XPValidationError,
    column_major_to_xy,
)
from xp_encoder import CompressionEngine

__all__ = ["XPDecoder", "import_xp", "decode_bytes"]


# ═══════════════════════════════════════════════════════════════
# DECODER
# ═══════════════════════════════════════════════════════════════

class XPDecoder:
    """
    XP image decoder.

    Usage:
        decoder = XPDecoder()
        image = decoder.decode("art.xp")
        cell = image.get_cell(0, 0)

    strict_layers=True rejects files whose later layers declare different
    dimensions from the first. By default those fields are read and ignored.
    """

    def __init__(self, strict_layers: bool = False):
        self.strict_layers = strict_layers
        self.compressor = CompressionEngine()

    # ─── Main Entry Points ────────────────────────────────────

    def decode(self, filepath: str) -> XPImage:
        """
        Decode an .xp file.

        Args:
            filepath: Path ending in ".xp" (case-sensitive).

        Returns:
            The composited image.
        """
        filepath = str(filepath)
        if not filepath.endswith(XP_EXTENSION):
            raise XPValidationError(f"File is not an XP image: {filepath}")

        with open(filepath, 'rb') as f:
            return self.decode_stream(f)

    def decode_stream(self, source: BinaryIO) -> XPImage:
        """Decode from a readable binary stream. The source is left open."""
        with self.compressor.open_reader(source) as stream:
            raw = stream.read()
        return self._decode_layers(raw)

    def decode_bytes(self, data: bytes) -> XPImage:
        """Decode from in-memory .xp (gzipped) bytes."""
        return self.decode_stream(io.BytesIO(data))

    def inspect_bytes(self, data: bytes) -> dict:
        """
        Walk the header and layer headers without building an image.

        Returns:
            dict with 'version', 'layer_count', 'layers' (width/height each)
            and 'size_raw'.
        """
        raw = self.compressor.decompress(data)
        version, layer_count = self._read_header(raw)

        layers = []
        pos = FILE_HEADER.size
        for i in range(layer_count):
            width, height = self._read_layer_header(raw, pos, i)
            layers.append({'width': width, 'height': height})
            pos += LAYER_HEADER.size + width * height * Cell.PACKED_SIZE
            if pos > len(raw):
                raise XPFormatError(
                    f"Layer {i} truncated: need {pos} bytes, have {len(raw)}"
                )

        return {
            'version': version,
            'layer_count': layer_count,
            'layers': layers,
            'size_raw': len(raw),
        }

    # ─── Layer Decoding ───────────────────────────────────────

    def _decode_layers(self, raw: bytes) -> XPImage:
        """Parse the decompressed layout and composite every layer."""
        _version, layer_count = self._read_header(raw)
        if layer_count == 0:
            raise XPFormatError("XP file declares no layers")

        pos = FILE_HEADER.size
        width, height = self._read_layer_header(raw, pos, 0)
        cell_count = width * height

        # Reject a short first layer before allocating width*height cells
        first_end = pos + LAYER_HEADER.size + cell_count * Cell.PACKED_SIZE
        if first_end > len(raw):
            raise XPFormatError(
                f"Layer 0 truncated: need {first_end} bytes, have {len(raw)}"
            )

        # Built privately and handed out only once every layer is in
        image = XPImage.blank(width, height)

        for layer in range(layer_count):
            if layer != 0:
                layer_w, layer_h = self._read_layer_header(raw, pos, layer)
                if self.strict_layers and (layer_w, layer_h) != (width, height):
                    raise XPFormatError(
                        f"Layer {layer} is {layer_w}x{layer_h}, "
                        f"first layer is {width}x{height}"
                    )
            pos += LAYER_HEADER.size

            end = pos + cell_count * Cell.PACKED_SIZE
            if end > len(raw):
                raise XPFormatError(
                    f"Layer {layer} truncated: need {cell_count} cell records "
                    f"({end - pos} bytes), have {max(len(raw) - pos, 0)}"
                )

            for k in range(cell_count):
                x, y = column_major_to_xy(k, height)
                image.cells[x + y * width] = Cell.unpack(raw, pos)
                pos += Cell.PACKED_SIZE

        return image

    @staticmethod
    def _read_header(raw: bytes) -> Tuple[int, int]:
        if len(raw) < FILE_HEADER.size:
            raise XPFormatError(
                f"XP header needs {FILE_HEADER.size} bytes, got {len(raw)}"
            )
        return FILE_HEADER.unpack_from(raw, 0)

    @staticmethod
    def _read_layer_header(raw: bytes, pos: int, layer: int) -> Tuple[int, int]:
        if len(raw) < pos + LAYER_HEADER.size:
            raise XPFormatError(
                f"Layer {layer} header truncated at offset {pos}"
            )
        return LAYER_HEADER.unpack_from(raw, pos)


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def import_xp(filepath: str, strict: bool = False) -> XPImage:
    """Convenience: decode an .xp file in one call."""
    return XPDecoder(strict_layers=strict).decode(filepath)

def decode_bytes(data: bytes, strict: bool = False) -> XPImage:
    """Convenience: decode in-memory .xp bytes in one call."""
    return XPDecoder(strict_layers=strict).decode_bytes(data)
