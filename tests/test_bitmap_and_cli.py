"""
Tests for bitmap decode/encode and the command line entry point.
"""
import struct

import cv2
import numpy as np
import pytest

import bitmap as bm
import storage
from bitmap import Bitmap, DecodeError
from main import build_parser, main
from presets import create_user_preset
from state import EnhancementValues


def _with_exif_orientation(jpeg: bytes, orientation: int) -> bytes:
    """Insert a minimal EXIF APP1 segment holding only an orientation tag."""
    ifd = struct.pack(">H", 1) + struct.pack(">HHIHH", 0x0112, 3, 1, orientation, 0) + struct.pack(">I", 0)
    payload = b"Exif\x00\x00" + b"MM\x00\x2a" + struct.pack(">I", 8) + ifd
    app1 = b"\xff\xe1" + struct.pack(">H", len(payload) + 2) + payload
    # Keep the JFIF APP0 segment first
    pos = 2
    if jpeg[2:4] == b"\xff\xe0":
        pos = 4 + struct.unpack(">H", jpeg[4:6])[0]
    return jpeg[:pos] + app1 + jpeg[pos:]


class TestBitmap:
    """Test the pixel buffer and codecs."""

    def test_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            Bitmap(np.zeros((4, 4, 3), dtype=np.uint8))
        with pytest.raises(ValueError):
            Bitmap(np.zeros((4, 4, 4), dtype=np.float32))

    def test_blank(self):
        b = Bitmap.blank(3, 2, (1, 2, 3, 4))
        assert b.size == (3, 2)
        assert tuple(b.pixels[1, 2]) == (1, 2, 3, 4)

    def test_decode_png_to_rgba(self, png_bytes):
        b = bm.decode(png_bytes(5, 4, color=(30, 120, 200)))
        assert b.size == (5, 4)
        assert tuple(b.pixels[0, 0]) == (30, 120, 200, 255)

    def test_decode_grayscale(self):
        ok, buf = cv2.imencode('.png', np.full((3, 3), 77, dtype=np.uint8))
        b = bm.decode(buf.tobytes())
        assert tuple(b.pixels[0, 0]) == (77, 77, 77, 255)

    def test_decode_corrupt(self):
        with pytest.raises(DecodeError):
            bm.decode(b'\x89PNG\r\n\x1a\n' + b'\x00' * 20)
        with pytest.raises(DecodeError):
            bm.decode(b'')

    def test_png_keeps_alpha(self):
        pixels = np.zeros((2, 2, 4), dtype=np.uint8)
        pixels[0, 0] = (10, 20, 30, 40)
        pixels[1, 1] = (200, 100, 50, 255)
        original = Bitmap(pixels)
        assert bm.decode(bm.encode(original, 'png')).equals(original)

    def test_jpeg_is_opaque(self, solid_bitmap):
        data = bm.encode(solid_bitmap(8, 8, (0, 200, 0, 255)), 'jpeg', quality=90)
        assert data[:3] == b'\xff\xd8\xff'
        assert np.all(bm.decode(data).pixels[:, :, 3] == 255)

    def test_jpeg_exif_orientation_applied(self):
        """A sideways-stored JPEG tagged orientation 6 decodes upright."""
        pixels = np.zeros((20, 40, 4), dtype=np.uint8)
        pixels[:, :20] = (255, 0, 0, 255)
        pixels[:, 20:] = (0, 0, 255, 255)
        stored = bm.encode(Bitmap(pixels), 'jpeg', quality=95)
        b = bm.decode(_with_exif_orientation(stored, 6), 'image/jpeg')
        assert b.size == (20, 40)
        # Stored left edge becomes the top
        assert b.pixels[5, 10, 0] > 200 and b.pixels[5, 10, 2] < 60
        assert b.pixels[35, 10, 2] > 200 and b.pixels[35, 10, 0] < 60

    def test_jpeg_without_orientation_unchanged(self, solid_bitmap):
        data = bm.encode(solid_bitmap(40, 20, (0, 200, 0, 255)), 'jpeg')
        assert bm.decode(data).size == (40, 20)

    def test_unknown_format(self, solid_bitmap):
        with pytest.raises(ValueError):
            bm.encode(solid_bitmap(), 'webp')


class TestCommandLine:
    """Test the pixelboost command."""

    @pytest.fixture
    def source(self, tmp_path, png_bytes):
        path = tmp_path / 'photo.png'
        path.write_bytes(png_bytes(10, 6))
        return path

    def test_default_output(self, source):
        assert main([str(source)]) == 0
        out = source.with_name('pixelboost-enhanced.png')
        assert bm.decode(out.read_bytes()).size == (20, 12)

    def test_rotate_crop_and_values(self, source, tmp_path):
        out = tmp_path / 'result.jpg'
        code = main([str(source), '-o', str(out), '--rotate90', 'cw',
                     '--crop', '0', '0', '10', '10', '--brightness', '20', '--preset', 'vivid'])
        assert code == 0
        assert out.read_bytes()[:3] == b'\xff\xd8\xff'
        assert bm.decode(out.read_bytes()).size == (10, 10)

    def test_free_rotation_expands(self, source, tmp_path):
        out = tmp_path / 'rotated.png'
        assert main([str(source), '-o', str(out), '--rotation', '30']) == 0
        assert bm.decode(out.read_bytes()).size == (23, 20)

    def test_crop_outside_image_fails(self, source, tmp_path):
        out = tmp_path / 'bad.png'
        assert main([str(source), '-o', str(out), '--crop', '15', '0', '10', '10']) == 1
        assert not out.exists()

    def test_corrupt_input_fails(self, tmp_path):
        path = tmp_path / 'broken.png'
        path.write_bytes(b'\x89PNG\r\n\x1a\n' + b'\x00' * 20)
        assert main([str(path)]) == 1

    def test_unsupported_input_fails(self, tmp_path):
        path = tmp_path / 'anim.gif'
        path.write_bytes(b'GIF89a' + b'\x00' * 20)
        assert main([str(path)]) == 1

    def test_missing_file_fails(self, tmp_path):
        assert main([str(tmp_path / 'nope.png')]) == 1

    def test_parser_does_not_touch_storage(self, tmp_path, monkeypatch):
        db = tmp_path / 'home' / 'settings.db'
        monkeypatch.setattr(storage, 'DB_FILE', db)
        storage.set_storage(None)
        build_parser()
        with pytest.raises(SystemExit):
            main(['--help'])
        assert not db.exists()

    def test_unknown_preset_fails(self, source, tmp_path):
        out = tmp_path / 'preset.png'
        assert main([str(source), '-o', str(out), '--preset', 'no-such-look']) == 1
        assert not out.exists()

    def test_user_preset_accepted(self, source, tmp_path):
        key = create_user_preset('Warm', '', EnhancementValues(brightness=10))
        out = tmp_path / 'user.png'
        assert main([str(source), '-o', str(out), '--preset', key]) == 0
        assert out.exists()
