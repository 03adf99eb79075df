"""
SQLite-based storage for editor preferences and user presets.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Database location
DB_DIR = Path.home() / ".config" / "pixelboost"
DB_FILE = DB_DIR / "settings.db"

# Preference defaults
DEFAULT_EXPORT_FORMAT = 'png'
DEFAULT_JPEG_QUALITY = 95
DEFAULT_CHUNK_SIZE = 1_572_864  # 1.5 MB per upload chunk
DEFAULT_ENHANCEMENT_MODE = 'standard'
DEFAULT_PRESET = 'none'

VALID_EXPORT_FORMATS = ('png', 'jpeg')
VALID_ENHANCEMENT_MODES = ('standard', 'anime')


class Storage:
    """SQLite storage for app-wide preferences and user-defined presets."""

    def __init__(self, db_path: Path = None):
        self.db_path = Path(db_path) if db_path else DB_FILE
        self._ensure_dir()
        self._init_db()

    def _ensure_dir(self):
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self):
        """Initialize the database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS preferences (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)
            conn.commit()

    def _get_pref(self, key: str, default: Any) -> Any:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT value FROM preferences WHERE key = ?",
                (key,)
            )
            row = cursor.fetchone()
            if row and row[0]:
                return json.loads(row[0])
            return default

    def _set_pref(self, key: str, value: Any):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO preferences (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """, (key, json.dumps(value)))
            conn.commit()

    def get_export_format(self) -> str:
        """Get the export format ('png' or 'jpeg'). Defaults to 'png'."""
        fmt = self._get_pref('export_format', DEFAULT_EXPORT_FORMAT)
        return fmt if fmt in VALID_EXPORT_FORMATS else DEFAULT_EXPORT_FORMAT

    def set_export_format(self, fmt: str):
        if fmt not in VALID_EXPORT_FORMATS:
            raise ValueError(f"Unknown export format: {fmt}")
        self._set_pref('export_format', fmt)

    def get_jpeg_quality(self) -> int:
        """Get JPEG export quality (1-100). Defaults to 95."""
        return max(1, min(100, int(self._get_pref('jpeg_quality', DEFAULT_JPEG_QUALITY))))

    def set_jpeg_quality(self, quality: int):
        self._set_pref('jpeg_quality', max(1, min(100, int(quality))))

    def get_chunk_size(self) -> int:
        """Get the upload chunk size in bytes. Defaults to 1.5 MB."""
        size = int(self._get_pref('chunk_size', DEFAULT_CHUNK_SIZE))
        return size if size > 0 else DEFAULT_CHUNK_SIZE

    def set_chunk_size(self, size: int):
        if size <= 0:
            raise ValueError("Chunk size must be positive")
        self._set_pref('chunk_size', int(size))

    def get_enhancement_mode(self) -> str:
        """Get the remote enhancement mode ('standard' or 'anime')."""
        mode = self._get_pref('enhancement_mode', DEFAULT_ENHANCEMENT_MODE)
        return mode if mode in VALID_ENHANCEMENT_MODES else DEFAULT_ENHANCEMENT_MODE

    def set_enhancement_mode(self, mode: str):
        if mode not in VALID_ENHANCEMENT_MODES:
            raise ValueError(f"Unknown enhancement mode: {mode}")
        self._set_pref('enhancement_mode', mode)

    def get_last_preset(self) -> str:
        """Get the key of the last applied preset. Defaults to 'none'."""
        return self._get_pref('last_preset', DEFAULT_PRESET)

    def set_last_preset(self, key: str):
        self._set_pref('last_preset', key)

    def get_user_presets(self) -> dict:
        """Get all user-defined presets as {key: preset_dict}."""
        return self._get_pref('user_presets', {})

    def save_user_preset(self, key: str, preset: dict):
        """Save or replace a user-defined preset."""
        presets = self.get_user_presets()
        presets[key] = preset
        self._set_pref('user_presets', presets)

    def delete_user_preset(self, key: str) -> bool:
        """Delete a user preset. Returns True if it existed."""
        presets = self.get_user_presets()
        if key not in presets:
            return False
        del presets[key]
        self._set_pref('user_presets', presets)
        return True

    def clear_all(self):
        """Remove every stored preference."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM preferences")
            conn.commit()


# Global storage instance
_storage: Optional[Storage] = None


def get_storage() -> Storage:
    """Get the global storage instance."""
    global _storage
    if _storage is None:
        _storage = Storage()
    return _storage


def set_storage(storage: Optional[Storage]):
    """Replace the global storage instance (None resets to lazy default)."""
    global _storage
    _storage = storage
