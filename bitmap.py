"""
PIXELBOOST - Bitmap

RGBA pixel buffer shared by every stage of the editing pipeline, plus the
OpenCV-backed decode/encode helpers that move bitmaps in and out of bytes.
"""

import logging
from dataclasses import dataclass

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# MIME types accepted from the uploader
ACCEPTED_TYPES = ('image/jpeg', 'image/png')

# Export formats: key -> (extension, MIME type)
EXPORT_FORMATS = {
    'png': ('.png', 'image/png'),
    'jpeg': ('.jpg', 'image/jpeg'),
}

DEFAULT_EXPORT_NAME = 'pixelboost-enhanced.png'

JPEG_MAGIC = b"\xff\xd8\xff"


class PixelboostError(Exception):
    """Base class for errors surfaced to callers of the editing core."""


class DecodeError(PixelboostError):
    """Source bytes could not be decoded into a bitmap."""


@dataclass(frozen=True, eq=False)
class Bitmap:
    """A width x height buffer of RGBA 8-bit pixels.

    ``pixels`` has shape (height, width, 4) and dtype uint8. Bitmaps are
    treated as values: pipeline stages return new bitmaps instead of
    writing into the one they were given.
    """
    pixels: np.ndarray

    def __post_init__(self):
        px = self.pixels
        if px.ndim != 3 or px.shape[2] != 4:
            raise ValueError(f"Bitmap pixels must be (H, W, 4), got {px.shape}")
        if px.dtype != np.uint8:
            raise ValueError(f"Bitmap pixels must be uint8, got {px.dtype}")

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> tuple:
        """(width, height)"""
        return (self.width, self.height)

    @classmethod
    def blank(cls, width: int, height: int, color=(0, 0, 0, 0)) -> 'Bitmap':
        """Create a bitmap filled with a single RGBA color."""
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = color
        return cls(pixels)

    def copy(self) -> 'Bitmap':
        return Bitmap(self.pixels.copy())

    def equals(self, other: 'Bitmap') -> bool:
        """Same dimensions and identical pixel values."""
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)


def _to_rgba8(img: np.ndarray) -> np.ndarray:
    """Normalize an OpenCV-decoded array (gray/BGR/BGRA, 8 or 16 bit) to RGBA uint8."""
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    channels = img.shape[2]
    if channels == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    raise DecodeError(f"Unsupported channel count: {channels}")


def _read_flags(data: bytes) -> int:
    """imdecode flags for the given bytes, chosen from their magic number."""
    # IMREAD_UNCHANGED skips EXIF orientation; JPEG carries no alpha to lose
    if data[:3] == JPEG_MAGIC:
        return cv2.IMREAD_COLOR
    return cv2.IMREAD_UNCHANGED


def decode(data: bytes, mime_type: str = None) -> Bitmap:
    """Decode encoded image bytes (PNG, JPEG, ...) into an RGBA bitmap.

    JPEG data is upright after decoding: its EXIF orientation tag is applied.

    Raises:
        DecodeError: if the bytes are empty, corrupt or not an image.
    """
    if not data:
        raise DecodeError("No image data to decode")

    buf = np.frombuffer(data, dtype=np.uint8)
    try:
        img = cv2.imdecode(buf, _read_flags(data))
    except cv2.error as e:
        raise DecodeError(f"Could not decode image: {e}") from e

    if img is None or img.size == 0:
        raise DecodeError(f"Could not decode image ({mime_type or 'unknown type'}, {len(data)} bytes)")

    bitmap = Bitmap(np.ascontiguousarray(_to_rgba8(img)))
    logger.debug("[Bitmap] Decoded %s -> %dx%d", mime_type or 'image', bitmap.width, bitmap.height)
    return bitmap


def encode(bitmap: Bitmap, fmt: str = 'png', quality: int = 95) -> bytes:
    """Encode a bitmap as PNG (alpha kept) or JPEG (alpha dropped)."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format: {fmt}. Valid formats: {list(EXPORT_FORMATS.keys())}")

    ext, _ = EXPORT_FORMATS[fmt]
    if fmt == 'jpeg':
        img = cv2.cvtColor(bitmap.pixels, cv2.COLOR_RGBA2BGR)
        params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)]
    else:
        img = cv2.cvtColor(bitmap.pixels, cv2.COLOR_RGBA2BGRA)
        params = []

    ok, buffer = cv2.imencode(ext, img, params)
    if not ok:
        raise PixelboostError(f"Failed to encode {bitmap.width}x{bitmap.height} bitmap as {fmt}")
    return buffer.tobytes()
