"""
Tests for the editing session: loads, commits, reset and export.
"""
import numpy as np
import pytest

import bitmap as bm
from bitmap import DecodeError, PixelboostError
from services import EditingSession
from state import CropRect, EnhancementValues


@pytest.fixture
def session():
    return EditingSession()


@pytest.fixture
def loaded_session(session, random_bitmap):
    """Session with a 200x200 base shown at 100x100."""
    session.load_bitmap(random_bitmap(200, 200, seed=1))
    session.set_display_size(100, 100)
    return session


def _select(session, start, end):
    session.activate_crop()
    session.pointer_press(*start)
    session.pointer_move(*end)
    session.pointer_release()


class TestLoading:
    """Test base replacement and generation handling."""

    def test_empty_session(self, session):
        assert session.base is None
        assert not session.has_image
        assert session.output is None

    def test_load_bytes_upscales(self, session, png_bytes):
        bitmap = session.load_bytes(png_bytes(8, 6), 'image/png')
        assert bitmap.size == (16, 12)
        assert session.base is bitmap

    def test_stale_load_discarded(self, session, solid_bitmap):
        first = session.begin_load()
        second = session.begin_load()
        assert not session.finish_load(first, solid_bitmap(4, 4))
        assert session.base is None
        assert session.finish_load(second, solid_bitmap(6, 6))
        assert session.base.size == (6, 6)

    def test_late_result_does_not_overwrite_newer(self, session, solid_bitmap):
        old = session.begin_load()
        session.load_bitmap(solid_bitmap(8, 8))
        assert not session.finish_load(old, solid_bitmap(2, 2))
        assert session.base.size == (8, 8)

    def test_decode_failure_keeps_state(self, loaded_session):
        errors = []
        loaded_session.loadFailed.connect(lambda msg: errors.append(msg))
        base = loaded_session.base
        loaded_session.update_values(brightness=20)
        with pytest.raises(DecodeError):
            loaded_session.load_bytes(b'not an image at all')
        assert loaded_session.base is base
        assert loaded_session.values.brightness == 20
        assert len(errors) == 1

    def test_new_source_resets_values(self, loaded_session, solid_bitmap):
        loaded_session.update_values(brightness=30, rotation=10)
        loaded_session.load_bitmap(solid_bitmap(10, 10))
        assert loaded_session.values.is_default
        assert loaded_session.pending_crop is None

    def test_clear(self, loaded_session):
        loaded_session.clear()
        assert loaded_session.base is None
        assert loaded_session.values.is_default


class TestControls:
    """Test value changes and the derived output."""

    def test_values_change_output_not_base(self, loaded_session):
        base = loaded_session.base
        before = base.pixels.copy()
        loaded_session.update_values(brightness=40)
        assert loaded_session.base is base
        assert np.array_equal(base.pixels, before)
        assert not loaded_session.output.equals(base)

    def test_output_cached_until_change(self, loaded_session):
        first = loaded_session.output
        assert loaded_session.output is first
        loaded_session.update_values(contrast=10)
        assert loaded_session.output is not first

    def test_signals(self, loaded_session):
        changed = []
        invalidated = []
        loaded_session.valuesChanged.connect(lambda values: changed.append(values))
        loaded_session.outputInvalidated.connect(lambda: invalidated.append(True))
        loaded_session.update_values(saturation=150)
        loaded_session.update_values(saturation=150)
        assert len(changed) == 1
        assert changed[0].saturation == 150
        assert len(invalidated) == 1

    def test_apply_preset_keeps_rotation(self, loaded_session, isolated_storage):
        loaded_session.update_values(rotation=12.0)
        loaded_session.apply_preset('mono')
        assert loaded_session.values.saturation == 0
        assert loaded_session.values.rotation == 12.0
        assert isolated_storage.get_last_preset() == 'mono'

    def test_pending_crop_previewed(self, loaded_session):
        loaded_session.set_pending_crop(CropRect(0, 0, 50, 40))
        assert loaded_session.output.size == (50, 40)
        assert loaded_session.base.size == (200, 200)

    def test_reset_restores_defaults_only(self, loaded_session):
        loaded_session.rotate90()
        base = loaded_session.base
        loaded_session.update_values(brightness=50, noise_reduction=80)
        loaded_session.set_pending_crop(CropRect(0, 0, 10, 10))
        _select(loaded_session, (0, 0), (50, 50))
        loaded_session.reset()
        assert loaded_session.values == EnhancementValues()
        assert loaded_session.pending_crop is None
        assert not loaded_session.crop_state.is_active
        assert loaded_session.base is base


class TestCommits:
    """Test 90° rotation and crop confirmation."""

    def test_rotate90_swaps_base(self, session, random_bitmap):
        session.load_bitmap(random_bitmap(30, 20))
        session.update_values(brightness=10)
        assert session.rotate90()
        assert session.base.size == (20, 30)
        assert session.values.brightness == 10

    def test_rotate90_clears_pending_crop(self, loaded_session):
        loaded_session.set_pending_crop(CropRect(0, 0, 10, 10))
        _select(loaded_session, (0, 0), (50, 50))
        loaded_session.rotate90(clockwise=False)
        assert loaded_session.pending_crop is None
        assert not loaded_session.crop_state.is_active

    def test_rotate90_without_image(self, session):
        assert not session.rotate90()

    def test_four_rotations_restore_base(self, loaded_session):
        original = loaded_session.base
        for _ in range(4):
            loaded_session.rotate90()
        assert loaded_session.base.equals(original)

    def test_confirm_crop_commits(self, loaded_session):
        original = loaded_session.base
        _select(loaded_session, (10, 10), (2, 2))
        rect = loaded_session.confirm_crop()
        assert rect == CropRect(4.0, 4.0, 16.0, 16.0)
        assert loaded_session.base.size == (16, 16)
        assert np.array_equal(loaded_session.base.pixels, original.pixels[4:20, 4:20])
        assert not loaded_session.crop_state.is_active

    def test_confirm_crop_rejects_small(self, loaded_session):
        base = loaded_session.base
        _select(loaded_session, (10, 10), (11, 40))
        state = loaded_session.crop_state
        assert loaded_session.confirm_crop() is None
        assert loaded_session.base is base
        assert loaded_session.crop_state == state

    def test_crop_uses_current_base_size(self, loaded_session):
        """After a crop, the next selection maps against the new base size."""
        _select(loaded_session, (0, 0), (50, 50))
        loaded_session.confirm_crop()
        assert loaded_session.base.size == (100, 100)
        _select(loaded_session, (0, 0), (50, 50))
        assert loaded_session.crop_state.rect == CropRect(0.0, 0.0, 50.0, 50.0)

    def test_activate_crop_without_image(self, session):
        session.activate_crop()
        assert not session.crop_state.is_active

    def test_cancel_crop(self, loaded_session):
        base = loaded_session.base
        _select(loaded_session, (0, 0), (50, 50))
        loaded_session.cancel_crop()
        assert not loaded_session.crop_state.is_active
        assert loaded_session.base is base

    def test_pointer_ignored_when_inactive(self, loaded_session):
        loaded_session.pointer_press(5, 5)
        loaded_session.pointer_move(50, 50)
        assert loaded_session.crop_state.rect is None


class TestExport:
    """Test encoding the current output."""

    def test_export_png(self, loaded_session):
        loaded_session.update_values(brightness=10)
        data = loaded_session.export('png')
        decoded = bm.decode(data, 'image/png')
        assert decoded.equals(loaded_session.output)

    def test_export_uses_stored_format(self, loaded_session, isolated_storage):
        isolated_storage.set_export_format('jpeg')
        data = loaded_session.export()
        assert data[:3] == b'\xff\xd8\xff'

    def test_export_to_infers_format(self, loaded_session, tmp_path):
        path = loaded_session.export_to(tmp_path / 'out.jpeg')
        assert path.read_bytes()[:3] == b'\xff\xd8\xff'
        path = loaded_session.export_to(tmp_path / 'out.png')
        assert path.read_bytes()[:4] == b'\x89PNG'

    def test_export_without_image(self, session):
        with pytest.raises(PixelboostError):
            session.export('png')

    def test_export_quality_clamped(self, loaded_session):
        """Out-of-range JPEG quality is clamped, not replaced by a default."""
        lowest = loaded_session.export('jpeg', quality=1)
        assert loaded_session.export('jpeg', quality=0) == lowest
        assert loaded_session.export('jpeg', quality=-20) == lowest
        assert loaded_session.export('jpeg', quality=500) == loaded_session.export('jpeg', quality=100)
        assert loaded_session.export('jpeg', quality=0) != loaded_session.export('jpeg', quality=95)
