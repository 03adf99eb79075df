"""
PIXELBOOST - Geometric Transforms

Crop extraction, lossless 90° rotation and free-angle rotation with
bounding-box expansion.
"""

import logging
import math

import cv2
import numpy as np

from bitmap import Bitmap
from state import CropRect

logger = logging.getLogger(__name__)

# Fully transparent fill for pixels outside the rotated source
TRANSPARENT = (0.0, 0.0, 0.0, 0.0)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up."""
    return int(math.floor(value + 0.5))


def premultiply(pixels: np.ndarray) -> np.ndarray:
    """RGBA uint8 -> float32 with RGB multiplied by alpha (0-255 scale)."""
    out = pixels.astype(np.float32)
    alpha = out[:, :, 3:4] / 255.0
    out[:, :, :3] *= alpha
    return out


def unpremultiply(pixels: np.ndarray) -> np.ndarray:
    """Inverse of premultiply, rounding and clamping back to RGBA uint8."""
    pixels = np.clip(pixels, 0.0, 255.0)
    alpha = pixels[:, :, 3:4]
    safe_alpha = np.where(alpha > 0, alpha, 1.0)
    rgb = np.where(alpha > 0, pixels[:, :, :3] * 255.0 / safe_alpha, 0.0)
    out = np.concatenate([rgb, alpha], axis=2)
    return np.clip(np.floor(out + 0.5), 0, 255).astype(np.uint8)


def resample(bitmap: Bitmap, width: int, height: int,
             interpolation: int = cv2.INTER_CUBIC) -> Bitmap:
    """Resize to exactly (width, height), filtering in premultiplied alpha."""
    resized = cv2.resize(premultiply(bitmap.pixels), (width, height), interpolation=interpolation)
    return Bitmap(unpremultiply(resized))


def crop(bitmap: Bitmap, rect: CropRect) -> Bitmap:
    """
    Extract a sub-rectangle given in the bitmap's native pixel coordinates.

    The rectangle is rounded to whole pixels (result is round(w) x round(h))
    and clamped to the image. An empty rectangle, or one that clamps to
    zero area, leaves the bitmap unchanged.
    """
    if rect is None or rect.is_empty:
        return bitmap

    x0 = min(max(round_half_up(rect.x), 0), bitmap.width)
    y0 = min(max(round_half_up(rect.y), 0), bitmap.height)
    x1 = min(x0 + round_half_up(rect.w), bitmap.width)
    y1 = min(y0 + round_half_up(rect.h), bitmap.height)

    if x1 <= x0 or y1 <= y0:
        logger.warning("[Geometry] Crop %s is outside %dx%d, ignoring", rect, bitmap.width, bitmap.height)
        return bitmap

    logger.debug("[Geometry] Crop (%d, %d) %dx%d", x0, y0, x1 - x0, y1 - y0)
    return Bitmap(bitmap.pixels[y0:y1, x0:x1].copy())


def rotate90(bitmap: Bitmap, clockwise: bool = True) -> Bitmap:
    """Rotate a quarter turn. Width and height swap; pixels are only moved, never resampled."""
    code = cv2.ROTATE_90_CLOCKWISE if clockwise else cv2.ROTATE_90_COUNTERCLOCKWISE
    return Bitmap(np.ascontiguousarray(cv2.rotate(bitmap.pixels, code)))


def rotated_bounds(width: int, height: int, degrees: float) -> tuple:
    """Size (width, height) of the box that fully contains the rotated image."""
    theta = math.radians(degrees)
    cos_a = abs(math.cos(theta))
    sin_a = abs(math.sin(theta))
    new_w = round_half_up(width * cos_a + height * sin_a)
    new_h = round_half_up(width * sin_a + height * cos_a)
    return max(1, new_w), max(1, new_h)


def free_rotate(bitmap: Bitmap, degrees: float) -> Bitmap:
    """
    Rotate by an arbitrary angle about the image centre without clipping.

    Positive angles turn the image clockwise on screen. The canvas grows to
    the rotated bounding box and uncovered pixels are fully transparent.

    Args:
        bitmap: Source bitmap
        degrees: Rotation angle, typically -45 to +45

    Returns:
        Rotated bitmap (or the input itself when degrees == 0)
    """
    if degrees == 0:
        return bitmap

    w, h = bitmap.width, bitmap.height
    new_w, new_h = rotated_bounds(w, h, degrees)

    # OpenCV treats positive angles as counter-clockwise
    center = ((w - 1) / 2.0, (h - 1) / 2.0)
    M = cv2.getRotationMatrix2D(center, -degrees, 1.0)
    M[0, 2] += (new_w - 1) / 2.0 - center[0]
    M[1, 2] += (new_h - 1) / 2.0 - center[1]

    rotated = cv2.warpAffine(premultiply(bitmap.pixels), M, (new_w, new_h),
                             flags=cv2.INTER_CUBIC,
                             borderMode=cv2.BORDER_CONSTANT,
                             borderValue=TRANSPARENT)

    logger.debug("[Geometry] Free rotate %.2f°: %dx%d -> %dx%d", degrees, w, h, new_w, new_h)
    return Bitmap(unpremultiply(rotated))
