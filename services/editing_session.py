"""
PIXELBOOST - Editing Session

Owns the base bitmap of the image being edited and everything layered on
top of it: enhancement values, a pending crop and the crop selection.

The base bitmap is replaced wholesale, and only by loading a new source or
by the two committing actions (90° rotation and confirmed crop). Everything
else is previewed by re-rendering the base through the compositor.
"""

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, Signal

import geometry
import presets
import storage
from bitmap import Bitmap, DecodeError, PixelboostError, EXPORT_FORMATS
from compositor import apply_adjustments
from crop_selection import CropSelectionMapper, CropSelectionState
from state import CropRect, EnhancementValues, DEFAULT_ENHANCEMENT_VALUES
from workers.image_processor import decode_and_upscale, render_and_encode

logger = logging.getLogger(__name__)


class EditingSession(QObject):
    """
    Editing state for one image.

    Loads are tagged with a generation number; a result that arrives for
    anything but the latest generation is dropped so an older, slower load
    can never overwrite a newer base bitmap.
    """

    # Signals for state changes
    baseChanged = Signal(object)             # Bitmap or None
    valuesChanged = Signal(object)           # EnhancementValues
    outputInvalidated = Signal()             # output must be re-read
    cropSelectionChanged = Signal(object)    # CropSelectionState
    loadFailed = Signal(str)                 # error message

    def __init__(self, parent: QObject = None):
        super().__init__(parent)
        self._base: Optional[Bitmap] = None
        self._values = DEFAULT_ENHANCEMENT_VALUES
        self._pending_crop: Optional[CropRect] = None
        self._crop = CropSelectionMapper()
        self._display_size = (0.0, 0.0)
        self._generation = 0
        self._output: Optional[Bitmap] = None

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def base(self) -> Optional[Bitmap]:
        return self._base

    @property
    def has_image(self) -> bool:
        return self._base is not None

    @property
    def values(self) -> EnhancementValues:
        return self._values

    @property
    def pending_crop(self) -> Optional[CropRect]:
        return self._pending_crop

    @property
    def crop_selection(self) -> CropSelectionMapper:
        return self._crop

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def output(self) -> Optional[Bitmap]:
        """Compositor output for the current base and values (cached until a change)."""
        if self._base is None:
            return None
        if self._output is None:
            self._output = apply_adjustments(self._base, self._values, self._pending_crop)
        return self._output

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def begin_load(self) -> int:
        """Start a new load and return its generation. Supersedes any earlier load."""
        self._generation += 1
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def finish_load(self, generation: int, bitmap: Bitmap) -> bool:
        """Install a loaded bitmap as the base. Returns False if the load was superseded."""
        if not self.is_current(generation):
            logger.warning("[EditingSession] Discarding stale load %d (current %d)",
                           generation, self._generation)
            return False
        logger.info("[EditingSession] Loaded %dx%d base", bitmap.width, bitmap.height)
        self._crop.cancel()
        self._pending_crop = None
        self._set_values(DEFAULT_ENHANCEMENT_VALUES)
        self._set_base(bitmap)
        self.cropSelectionChanged.emit(self._crop.state)
        return True

    def fail_load(self, generation: int, message: str) -> bool:
        """Report a failed load. Existing state is left untouched."""
        if not self.is_current(generation):
            logger.warning("[EditingSession] Ignoring failure of stale load %d", generation)
            return False
        logger.error("[EditingSession] Load failed: %s", message)
        self.loadFailed.emit(message)
        return True

    def load_bytes(self, data: bytes, mime_type: str = None) -> Bitmap:
        """
        Decode and upscale source bytes synchronously and make them the base.

        Raises:
            DecodeError: if the bytes cannot be decoded (base is unchanged).
        """
        generation = self.begin_load()
        try:
            bitmap = decode_and_upscale(data, mime_type)
        except DecodeError as e:
            self.fail_load(generation, str(e))
            raise
        self.finish_load(generation, bitmap)
        return bitmap

    def load_bitmap(self, bitmap: Bitmap):
        """Use an already prepared bitmap as the base (no upscaling)."""
        self.finish_load(self.begin_load(), bitmap)

    def clear(self):
        """Drop the current image. Any load in flight is superseded."""
        self.begin_load()
        self._crop.cancel()
        self._pending_crop = None
        self._set_values(DEFAULT_ENHANCEMENT_VALUES)
        self._set_base(None)
        self.cropSelectionChanged.emit(self._crop.state)

    # -------------------------------------------------------------------------
    # Controls
    # -------------------------------------------------------------------------

    def set_values(self, values: EnhancementValues):
        """Replace all enhancement values at once."""
        if self._set_values(values):
            self._invalidate()

    def update_values(self, **changes):
        """Replace some enhancement values (others are kept)."""
        self.set_values(self._values.with_changes(**changes))

    def apply_preset(self, key: str):
        """Replace tonal/detail values with a preset, keeping the current rotation."""
        values = presets.get_preset_values(key).with_changes(rotation=self._values.rotation)
        self.set_values(values)
        storage.get_storage().set_last_preset(key)

    def set_pending_crop(self, rect: Optional[CropRect]):
        """Preview a crop without committing it."""
        if rect != self._pending_crop:
            self._pending_crop = rect
            self._invalidate()

    def reset(self):
        """Restore default values and clear any crop in progress. Commits stay."""
        self._crop.cancel()
        self._pending_crop = None
        self._set_values(DEFAULT_ENHANCEMENT_VALUES)
        self._invalidate()
        self.cropSelectionChanged.emit(self._crop.state)

    # -------------------------------------------------------------------------
    # Committing actions
    # -------------------------------------------------------------------------

    def rotate90(self, clockwise: bool = True) -> bool:
        """Rotate the base a quarter turn. Returns False when there is no image."""
        if self._base is None:
            return False
        logger.info("[EditingSession] Rotate 90° %s", "clockwise" if clockwise else "counter-clockwise")
        # Any crop in progress refers to the old orientation
        self._pending_crop = None
        self._crop.cancel()
        self._set_base(geometry.rotate90(self._base, clockwise))
        self.cropSelectionChanged.emit(self._crop.state)
        return True

    def activate_crop(self):
        if self._base is None:
            return
        self._crop.activate()
        self.cropSelectionChanged.emit(self._crop.state)

    def cancel_crop(self):
        self._crop.cancel()
        self.cropSelectionChanged.emit(self._crop.state)

    def confirm_crop(self) -> Optional[CropRect]:
        """
        Commit the selected rectangle into the base.

        Returns the rectangle, or None (selection left as is) if it is
        missing or too small.
        """
        rect = self._crop.confirm()
        if rect is None or self._base is None:
            return None
        logger.info("[EditingSession] Commit crop %s", rect)
        self._pending_crop = None
        self._set_base(geometry.crop(self._base, rect))
        self.cropSelectionChanged.emit(self._crop.state)
        return rect

    # -------------------------------------------------------------------------
    # Pointer input for crop selection (display coordinates)
    # -------------------------------------------------------------------------

    def set_display_size(self, width: float, height: float):
        """Size at which the image is currently shown."""
        self._display_size = (width, height)
        self._update_crop_transform()

    def pointer_press(self, x: float, y: float):
        self._crop.press(x, y)
        self.cropSelectionChanged.emit(self._crop.state)

    def pointer_move(self, x: float, y: float):
        if self._crop.is_dragging:
            self._crop.drag(x, y)
            self.cropSelectionChanged.emit(self._crop.state)

    def pointer_release(self):
        if self._crop.is_dragging:
            self._crop.release()
            self.cropSelectionChanged.emit(self._crop.state)

    @property
    def crop_state(self) -> CropSelectionState:
        return self._crop.state

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    def export(self, fmt: str = None, quality: int = None) -> bytes:
        """
        Encode the current output.

        Args:
            fmt: 'png' or 'jpeg' (defaults to the stored preference)
            quality: JPEG quality, clamped to 1-100 (defaults to the stored preference)
        """
        if self._base is None:
            raise PixelboostError("No image to export")
        if fmt is None:
            fmt = storage.get_storage().get_export_format()
        if quality is None:
            quality = storage.get_storage().get_jpeg_quality() if fmt == 'jpeg' else storage.DEFAULT_JPEG_QUALITY
        quality = max(1, min(100, int(quality)))

        data = render_and_encode(self._base, self._values, self._pending_crop,
                                 fmt=fmt, quality=quality)
        logger.info("[EditingSession] Exported %s (%d bytes)", fmt, len(data))
        return data

    def export_to(self, path, fmt: str = None, quality: int = None) -> Path:
        """Export to a file. The format is taken from the suffix when not given."""
        path = Path(path)
        if fmt is None:
            suffix = path.suffix.lower()
            fmt = next((key for key, (ext, _) in EXPORT_FORMATS.items() if ext == suffix), None)
            if fmt is None and suffix == '.jpeg':
                fmt = 'jpeg'
        path.write_bytes(self.export(fmt, quality))
        return path

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _set_base(self, bitmap: Optional[Bitmap]):
        self._base = bitmap
        self._update_crop_transform()
        self.baseChanged.emit(bitmap)
        self._invalidate()

    def _set_values(self, values: EnhancementValues) -> bool:
        if values == self._values:
            return False
        self._values = values
        self.valuesChanged.emit(values)
        return True

    def _invalidate(self):
        self._output = None
        self.outputInvalidated.emit()

    def _update_crop_transform(self):
        if self._base is None:
            return
        dw, dh = self._display_size
        self._crop.set_sizes(dw, dh, self._base.width, self._base.height)
