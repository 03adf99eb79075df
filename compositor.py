"""
PIXELBOOST - Compositor

Builds the display/export bitmap from the base bitmap and the current
enhancement values. The order of stages is fixed:

1. Crop (pending, not yet committed)
2. Free rotation
3. Noise reduction -> brightness -> contrast -> saturation -> sharpen

Geometry comes first so filter neighbourhoods see the final image edges.
Noise reduction runs before tone so it never fights sharpening detail, and
sharpening runs last on the final tonal result.
"""

import logging
from typing import Optional

from bitmap import Bitmap
from geometry import crop, free_rotate
from processing import (
    reduce_noise,
    adjust_brightness,
    adjust_contrast,
    adjust_saturation,
    sharpen,
)
from state import CropRect, EnhancementValues

logger = logging.getLogger(__name__)


def apply_adjustments(base: Bitmap, values: EnhancementValues,
                      pending_crop: Optional[CropRect] = None) -> Bitmap:
    """
    Render the output bitmap for a base bitmap and a set of values.

    The base is never modified and is never returned itself; when every
    control is neutral the result is a copy.

    Args:
        base: Committed base bitmap
        values: Enhancement control values
        pending_crop: Optional crop rectangle in base coordinates

    Returns:
        Fresh output bitmap
    """
    result = base

    # 1. Geometry
    if pending_crop is not None and not pending_crop.is_empty:
        result = crop(result, pending_crop)
    if values.rotation != 0:
        result = free_rotate(result, values.rotation)

    # 2. Pixel stages start from a buffer of their own
    if result is base:
        result = base.copy()

    # 3. Detail and tone
    result = reduce_noise(result, values.noise_reduction)
    result = adjust_brightness(result, values.brightness)
    result = adjust_contrast(result, values.contrast)
    result = adjust_saturation(result, values.saturation)
    result = sharpen(result, values.sharpness)

    logger.debug("[Compositor] %dx%d -> %dx%d with %s",
                 base.width, base.height, result.width, result.height, values)
    return result
