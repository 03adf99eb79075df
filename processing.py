"""
PIXELBOOST - Image Processing Core

Per-pixel tonal adjustments (brightness, contrast, saturation) and 3x3
convolution filters (sharpen, noise reduction) over RGBA bitmaps.

Every adjustment returns its input unchanged at the neutral value, so a
control left at its default costs nothing and cannot drift pixel values.
"""

import logging

import numpy as np
from scipy import ndimage

from bitmap import Bitmap

logger = logging.getLogger(__name__)

# Neutral values for each control
NEUTRAL_BRIGHTNESS = 0
NEUTRAL_CONTRAST = 0
NEUTRAL_SATURATION = 100

# Box blur applied by noise reduction
BOX_BLUR_KERNEL = (1.0,) * 9
BOX_BLUR_DIVISOR = 9.0


def _round_half_up(values: np.ndarray) -> np.ndarray:
    """Round to nearest integer with .5 going up (not to even)."""
    return np.floor(values + 0.5)


def _to_channel_u8(values: np.ndarray) -> np.ndarray:
    """Round and clamp float channel values into uint8."""
    return np.clip(_round_half_up(values), 0, 255).astype(np.uint8)


def _with_rgb(bitmap: Bitmap, rgb: np.ndarray) -> Bitmap:
    """New bitmap with the given RGB channels and the original alpha."""
    out = np.empty_like(bitmap.pixels)
    out[:, :, :3] = rgb
    out[:, :, 3] = bitmap.pixels[:, :, 3]
    return Bitmap(out)


# =============================================================================
# CONVOLUTION FILTERS
# =============================================================================

def convolve(bitmap: Bitmap, kernel, divisor: float) -> Bitmap:
    """
    Apply a 3x3 kernel to the R, G and B channels of a bitmap.

    Neighbourhoods are sampled with coordinates clamped to the image (edge
    pixels are replicated). Alpha is copied through untouched.

    Args:
        bitmap: Source bitmap
        kernel: Nine weights in row-major order (top-left first)
        divisor: Weighted sum is divided by this before rounding

    Returns:
        New bitmap with each channel clamp(round(sum / divisor), 0, 255)
    """
    weights = np.asarray(kernel, dtype=np.float64)
    if weights.size != 9:
        raise ValueError(f"Kernel must have 9 weights, got {weights.size}")
    if divisor == 0:
        raise ValueError("Kernel divisor must be non-zero")
    weights = weights.reshape(3, 3)

    rgb = bitmap.pixels[:, :, :3].astype(np.float64)
    out = np.empty(rgb.shape, dtype=np.uint8)
    for c in range(3):
        # mode='nearest' replicates edge pixels
        summed = ndimage.correlate(rgb[:, :, c], weights, mode='nearest')
        out[:, :, c] = _to_channel_u8(summed / divisor)

    return _with_rgb(bitmap, out)


def sharpen(bitmap: Bitmap, intensity: float) -> Bitmap:
    """
    Unsharp-mask style sharpening. intensity: 0-100.

    The centre weight grows as 1 + 8t and each neighbour is -t (t =
    intensity / 100), so the kernel always sums to 1 and flat regions
    are left alone.
    """
    if intensity <= 0:
        return bitmap

    t = intensity / 100.0
    center = 1.0 + 8.0 * t
    edge = -t
    kernel = (
        edge, edge, edge,
        edge, center, edge,
        edge, edge, edge,
    )
    logger.debug("[Processing] Sharpen t=%.2f on %dx%d", t, bitmap.width, bitmap.height)
    return convolve(bitmap, kernel, 1.0)


def noise_reduction_passes(intensity: float) -> int:
    """Number of box-blur passes for a noise reduction intensity (0, 1 or 2)."""
    if intensity <= 0:
        return 0
    return int(_round_half_up(np.float64(intensity) / 100.0 * 2.0))


def reduce_noise(bitmap: Bitmap, intensity: float) -> Bitmap:
    """
    Box-blur noise reduction. intensity: 0-100 maps to 0, 1 or 2 passes.

    Each pass feeds the next.
    """
    passes = noise_reduction_passes(intensity)
    if passes == 0:
        return bitmap

    logger.debug("[Processing] Noise reduction: %d pass(es)", passes)
    result = bitmap
    for _ in range(passes):
        result = convolve(result, BOX_BLUR_KERNEL, BOX_BLUR_DIVISOR)
    return result


# =============================================================================
# COLOR ADJUSTMENTS
# =============================================================================

def adjust_brightness(bitmap: Bitmap, brightness: float) -> Bitmap:
    """
    Additive brightness. brightness: -100 to +100 (0 = no change).

    Adds (brightness / 100) * 128 to R, G and B.
    """
    if brightness == NEUTRAL_BRIGHTNESS:
        return bitmap

    offset = (brightness / 100.0) * 128.0
    rgb = bitmap.pixels[:, :, :3].astype(np.float64) + offset
    return _with_rgb(bitmap, _to_channel_u8(rgb))


def contrast_factor(contrast: float) -> float:
    """Contrast multiplier around the 128 midpoint for contrast in -100..100."""
    return (259.0 * (contrast + 255.0)) / (255.0 * (259.0 - contrast))


def adjust_contrast(bitmap: Bitmap, contrast: float) -> Bitmap:
    """
    Multiplicative contrast around the midpoint. contrast: -100 to +100.
    """
    if contrast == NEUTRAL_CONTRAST:
        return bitmap

    factor = contrast_factor(contrast)
    rgb = bitmap.pixels[:, :, :3].astype(np.float64)
    rgb = factor * (rgb - 128.0) + 128.0
    return _with_rgb(bitmap, _to_channel_u8(rgb))


def rgb_to_hsl(rgb: np.ndarray) -> tuple:
    """
    Convert RGB (0-255, shape (..., 3)) to H, S, L arrays in 0-1.

    Hue is taken from whichever channel holds the maximum, checking red,
    then green, then blue. Grey pixels get H = S = 0.
    """
    rgb = np.asarray(rgb, dtype=np.float64) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    mx = np.max(rgb, axis=-1)
    mn = np.min(rgb, axis=-1)
    l = (mx + mn) / 2.0
    d = mx - mn
    chromatic = d > 0

    # Safe denominators; results for grey pixels are masked out below
    safe_d = np.where(chromatic, d, 1.0)
    denom = np.where(l > 0.5, 2.0 - mx - mn, mx + mn)
    denom = np.where(chromatic, denom, 1.0)
    s = np.where(chromatic, d / denom, 0.0)

    h_r = ((g - b) / safe_d + np.where(g < b, 6.0, 0.0)) / 6.0
    h_g = ((b - r) / safe_d + 2.0) / 6.0
    h_b = ((r - g) / safe_d + 4.0) / 6.0
    h = np.select([mx == r, mx == g], [h_r, h_g], default=h_b)
    h = np.where(chromatic, h, 0.0)

    return h, s, l


def _hue_to_rgb(p: np.ndarray, q: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = np.where(t < 0, t + 1.0, t)
    t = np.where(t > 1, t - 1.0, t)
    return np.select(
        [t < 1.0 / 6.0, t < 0.5, t < 2.0 / 3.0],
        [p + (q - p) * 6.0 * t, q, p + (q - p) * (2.0 / 3.0 - t) * 6.0],
        default=p,
    )


def hsl_to_rgb(h: np.ndarray, s: np.ndarray, l: np.ndarray) -> np.ndarray:
    """Convert H, S, L arrays (0-1) back to rounded RGB uint8 of shape (..., 3)."""
    h = np.asarray(h, dtype=np.float64)
    s = np.asarray(s, dtype=np.float64)
    l = np.asarray(l, dtype=np.float64)

    q = np.where(l < 0.5, l * (1.0 + s), l + s - l * s)
    p = 2.0 * l - q

    r = _hue_to_rgb(p, q, h + 1.0 / 3.0)
    g = _hue_to_rgb(p, q, h)
    b = _hue_to_rgb(p, q, h - 1.0 / 3.0)
    rgb = np.stack([r, g, b], axis=-1)

    # Achromatic pixels collapse to their lightness
    grey = (s == 0)[..., None]
    rgb = np.where(grey, l[..., None], rgb)

    return _to_channel_u8(rgb * 255.0)


def adjust_saturation(bitmap: Bitmap, saturation: float) -> Bitmap:
    """
    HSL saturation scale. saturation: 0 (greyscale) to 200 (double), 100 = no change.

    Hue and lightness are preserved; S is multiplied by saturation / 100
    and clamped to [0, 1].
    """
    if saturation == NEUTRAL_SATURATION:
        return bitmap

    factor = saturation / 100.0
    h, s, l = rgb_to_hsl(bitmap.pixels[:, :, :3])
    s = np.clip(s * factor, 0.0, 1.0)
    return _with_rgb(bitmap, hsl_to_rgb(h, s, l))
