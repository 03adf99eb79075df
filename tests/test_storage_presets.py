"""
Tests for preference storage and enhancement presets.
"""
import pytest

import presets
from state import EnhancementValues
from storage import Storage


class TestStorage:
    """Test SQLite-backed preferences."""

    def test_defaults(self, isolated_storage):
        assert isolated_storage.get_export_format() == 'png'
        assert isolated_storage.get_jpeg_quality() == 95
        assert isolated_storage.get_chunk_size() == 1_572_864
        assert isolated_storage.get_enhancement_mode() == 'standard'
        assert isolated_storage.get_last_preset() == 'none'
        assert isolated_storage.get_user_presets() == {}

    def test_persisted_across_instances(self, tmp_path):
        db = tmp_path / 'prefs' / 'settings.db'
        Storage(db).set_export_format('jpeg')
        Storage(db).set_jpeg_quality(150)
        reopened = Storage(db)
        assert reopened.get_export_format() == 'jpeg'
        assert reopened.get_jpeg_quality() == 100

    def test_invalid_values_rejected(self, isolated_storage):
        with pytest.raises(ValueError):
            isolated_storage.set_export_format('gif')
        with pytest.raises(ValueError):
            isolated_storage.set_enhancement_mode('cartoon')
        with pytest.raises(ValueError):
            isolated_storage.set_chunk_size(0)

    def test_user_presets(self, isolated_storage):
        isolated_storage.save_user_preset('mine', {'name': 'Mine', 'values': {}})
        assert 'mine' in isolated_storage.get_user_presets()
        assert isolated_storage.delete_user_preset('mine')
        assert not isolated_storage.delete_user_preset('mine')

    def test_clear_all(self, isolated_storage):
        isolated_storage.set_enhancement_mode('anime')
        isolated_storage.clear_all()
        assert isolated_storage.get_enhancement_mode() == 'standard'


class TestPresets:
    """Test built-in and user presets."""

    def test_builtin_presets_have_no_rotation(self):
        for key in presets.PRESET_ORDER:
            assert presets.get_preset_values(key).rotation == 0.0

    def test_none_is_default(self):
        assert presets.get_preset_values('none').is_default

    def test_mono_desaturates(self):
        assert presets.get_preset_values('mono').saturation == 0

    def test_unknown_falls_back_to_none(self):
        assert presets.get_preset_values('does-not-exist').is_default

    def test_preset_list_order(self):
        keys = [key for key, _, _ in presets.get_preset_list()]
        assert keys[:len(presets.PRESET_ORDER)] == presets.PRESET_ORDER

    def test_user_preset_lifecycle(self):
        values = EnhancementValues(brightness=12, sharpness=30, rotation=20)
        key = presets.create_user_preset('My Look', 'Warm and sharp', values)
        assert presets.is_user_preset(key)
        assert key in [k for k, _, _ in presets.get_preset_list()]

        loaded = presets.get_preset_values(key)
        assert loaded.brightness == 12
        assert loaded.sharpness == 30
        assert loaded.rotation == 0.0

        assert presets.delete_user_preset(key)
        assert presets.get_preset_values(key).is_default

    def test_builtin_cannot_be_deleted(self):
        assert not presets.delete_user_preset('vivid')
        assert not presets.is_user_preset('vivid')
