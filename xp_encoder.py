"""
XP Encoder — REXPaint .xp Image Encoder
========================================

Encodes an XPImage into the REXPaint .xp format:
  gzip( header + one layer of column-major cell records )

Scope:
  - gzip compression adapter shared with the decoder
  - Fixed little-endian header (version -1, one layer)
  - Row-major image cells re-ordered into the column-major stored order
  - Output to a path, a writable binary stream, or in-memory bytes

Multiple layers are never written; the image is already a flat composite.
"""

import io
import gzip
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional

from xp_types import (
    XP_VERSION, XP_EXPORT_LAYERS, XP_EXTENSION,
    FILE_HEADER, LAYER_HEADER,
    XPImage, XPFormatError, XPValidationError,
    xy_to_column_major,
)

__all__ = ["CompressionEngine", "XPEncoder", "export_xp"]


# ═══════════════════════════════════════════════════════════════
# COMPRESSION ENGINE
# ═══════════════════════════════════════════════════════════════

class CompressionEngine:
    """gzip wrapper for both directions. XP files are always gzipped."""

    DEFAULT_LEVEL = 9

    @staticmethod
    @contextmanager
    def open_reader(source: BinaryIO) -> Iterator[BinaryIO]:
        """
        Decompressing view over a readable binary stream.

        Corrupt or truncated gzip data raises XPFormatError; other OSErrors
        from the underlying stream propagate unchanged. The source itself is
        left open for its owner to close.
        """
        stream = gzip.GzipFile(fileobj=source, mode='rb')
        try:
            yield stream
        except (gzip.BadGzipFile, zlib.error) as e:
            raise XPFormatError(f"Malformed gzip stream: {e}") from e
        except EOFError as e:
            raise XPFormatError(f"Truncated gzip stream: {e}") from e
        finally:
            stream.close()

    @staticmethod
    @contextmanager
    def open_writer(sink: BinaryIO, level: int = DEFAULT_LEVEL) -> Iterator[BinaryIO]:
        """
        Compressing view over a writable binary stream.

        The gzip trailer is written when the block exits, on every path.
        Output is not complete until then. The sink is not closed.
        """
        # Pinned mtime: identical images give identical bytes
        stream = gzip.GzipFile(fileobj=sink, mode='wb', compresslevel=level, mtime=0)
        try:
            yield stream
        finally:
            stream.close()

    @classmethod
    def compress(cls, data: bytes, level: int = DEFAULT_LEVEL) -> bytes:
        buf = io.BytesIO()
        with cls.open_writer(buf, level) as stream:
            stream.write(data)
        return buf.getvalue()

    @classmethod
    def decompress(cls, data: bytes) -> bytes:
        with cls.open_reader(io.BytesIO(data)) as stream:
            return stream.read()


# ═══════════════════════════════════════════════════════════════
# ENCODER
# ═══════════════════════════════════════════════════════════════

class XPEncoder:
    """
    XP image encoder.

    Usage:
        encoder = XPEncoder()
        result = encoder.encode(image, output_path="art.xp")
        raw = encoder.encode_bytes(image)
    """

    def __init__(self, compress_level: int = CompressionEngine.DEFAULT_LEVEL):
        if not 0 <= compress_level <= 9:
            raise XPValidationError(f"compress_level must be 0-9, got {compress_level}")
        self.compress_level = compress_level
        self.compressor = CompressionEngine()

    # ─── Main Entry Points ────────────────────────────────────

    def encode(self, image: XPImage, output_path: Optional[str] = None) -> dict:
        """
        Encode an image, optionally writing it to disk.

        Args:
            image: The image to encode.
            output_path: Destination file. ".xp" is appended when missing.
                An existing file is overwritten.

        Returns:
            dict with dimensions, sizes and written paths.
        """
        raw = self._serialize(image)
        compressed = self.compressor.compress(raw, self.compress_level)

        paths = {}
        if output_path:
            output_path = str(output_path)
            if not output_path.endswith(XP_EXTENSION):
                output_path += XP_EXTENSION
            Path(output_path).parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'wb') as f:
                f.write(compressed)
            paths['xp'] = output_path

        return self._summary(image, raw, compressed, paths)

    def encode_stream(self, image: XPImage, sink: BinaryIO) -> dict:
        """Encode into a writable binary stream. The sink is left open."""
        raw = self._serialize(image)
        start = sink.tell() if sink.seekable() else None
        with self.compressor.open_writer(sink, self.compress_level) as stream:
            stream.write(raw)
        written = sink.tell() - start if start is not None else None

        result = self._summary(image, raw, None, {})
        if written is not None:
            result['size_compressed'] = written
            result['compression_ratio'] = round(len(raw) / max(written, 1), 2)
        return result

    def encode_bytes(self, image: XPImage) -> bytes:
        """Encode to in-memory .xp bytes."""
        return self.compressor.compress(self._serialize(image), self.compress_level)

    # ─── Serialization ────────────────────────────────────────

    def _serialize(self, image: XPImage) -> bytes:
        """Header plus a single layer, records in stored (column-major) order."""
        width, height = image.width, image.height
        if len(image.cells) != width * height:
            raise XPValidationError(
                f"Image holds {len(image.cells)} cells, expected {width * height}"
            )

        records: List[bytes] = [b''] * (width * height)
        for i, cell in enumerate(image.cells):
            x, y = i % width, i // width
            records[xy_to_column_major(x, y, height)] = cell.pack()

        buf = bytearray()
        buf.extend(FILE_HEADER.pack(XP_VERSION, XP_EXPORT_LAYERS))
        buf.extend(LAYER_HEADER.pack(width, height))
        for record in records:
            buf.extend(record)
        return bytes(buf)

    @staticmethod
    def _summary(image: XPImage, raw: bytes, compressed: Optional[bytes],
                 paths: dict) -> dict:
        return {
            'width': image.width,
            'height': image.height,
            'layer_count': XP_EXPORT_LAYERS,
            'size_raw': len(raw),
            'size_compressed': len(compressed) if compressed is not None else None,
            'compression_ratio': (round(len(raw) / max(len(compressed), 1), 2)
                                  if compressed is not None else None),
            'paths': paths,
        }


# ═══════════════════════════════════════════════════════════════
# CONVENIENCE FUNCTIONS
# ═══════════════════════════════════════════════════════════════

def export_xp(image: XPImage, path: str) -> dict:
    """Convenience: write an image to an .xp file in one call."""
    return XPEncoder().encode(image, output_path=path)
