"""
PIXELBOOST - Image Processor

Standalone processing functions for executor workers.
These must be picklable (no class state, importable at module level).
"""

from bitmap import Bitmap, encode
from compositor import apply_adjustments
from state import EnhancementValues, CropRect


def decode_and_upscale(data: bytes, mime_type: str = None) -> Bitmap:
    """
    Decode source bytes and upscale to 2x - runs in worker.

    Raises:
        DecodeError: if the bytes cannot be decoded. No bitmap is produced.
    """
    from upscale import upscale_bytes
    return upscale_bytes(data, mime_type)


def render_and_encode(base: Bitmap, values: EnhancementValues,
                      pending_crop: CropRect = None,
                      fmt: str = 'png', quality: int = 95) -> bytes:
    """
    Render the compositor output for a base bitmap and encode it - runs in worker.

    Returns:
        Encoded image bytes
    """
    output = apply_adjustments(base, values, pending_crop)
    return encode(output, fmt, quality)
