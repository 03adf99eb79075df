"""
Pytest configuration and fixtures for PixelBoost tests.
"""
import os
import sys

import cv2
import numpy as np
import pytest

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import storage  # noqa: E402
from bitmap import Bitmap  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_storage(tmp_path):
    """Keep preferences in a throwaway database."""
    store = storage.Storage(tmp_path / "settings.db")
    storage.set_storage(store)
    yield store
    storage.set_storage(None)


@pytest.fixture
def solid_bitmap():
    """Factory for single-color bitmaps."""
    def make(width=10, height=10, color=(255, 0, 0, 255)):
        return Bitmap.blank(width, height, color)
    return make


@pytest.fixture
def random_bitmap():
    """Factory for reproducible noisy opaque bitmaps."""
    def make(width=12, height=8, seed=0):
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
        pixels[:, :, 3] = 255
        return Bitmap(pixels)
    return make


@pytest.fixture
def png_bytes():
    """Factory for PNG-encoded images (RGB, opaque)."""
    def make(width=8, height=6, color=(30, 120, 200)):
        rgb = np.zeros((height, width, 3), dtype=np.uint8)
        rgb[:, :] = color
        ok, buf = cv2.imencode('.png', cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR))
        assert ok
        return buf.tobytes()
    return make
