"""
PIXELBOOST - Workers Module

Background worker functions for decode, upscale and export.
"""

from workers.image_processor import (
    decode_and_upscale,
    render_and_encode,
)

__all__ = [
    'decode_and_upscale',
    'render_and_encode',
]
