"""
PIXELBOOST - Crop Selection

Translates pointer drags in display space into a crop rectangle in the base
bitmap's native pixel space.

The selection is a small state machine:

    Inert -> Active(rect=None) -> Dragging -> Active(rect frozen) -> Inert

Transitions are pure functions over CropSelectionState so they can be
exercised without any input events; CropSelectionMapper wraps them for
callers that want a stateful object.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from state import CropRect

logger = logging.getLogger(__name__)

# Selections smaller than this (native pixels, either axis) are rejected on confirm
MIN_CROP_SIZE = 4.0


@dataclass(frozen=True)
class CoordinateTransform:
    """Scale factors between display space and native pixel space.

    Recomputed whenever the display or native size changes and shared by
    every conversion, in both directions.
    """
    scale_x: float = 1.0
    scale_y: float = 1.0
    display_width: float = 0.0
    display_height: float = 0.0

    @classmethod
    def from_sizes(cls, display_width: float, display_height: float,
                   native_width: float, native_height: float) -> 'CoordinateTransform':
        # A zero display dimension is treated as 1 to avoid dividing by zero
        return cls(
            scale_x=native_width / (display_width or 1),
            scale_y=native_height / (display_height or 1),
            display_width=display_width,
            display_height=display_height,
        )

    def clamp_display(self, x: float, y: float) -> Tuple[float, float]:
        """Clamp a pointer position to the visible display area."""
        return (max(0.0, min(self.display_width, x)),
                max(0.0, min(self.display_height, y)))

    def to_native(self, x: float, y: float) -> Tuple[float, float]:
        return (x * self.scale_x, y * self.scale_y)

    def rect_to_native(self, x: float, y: float, w: float, h: float) -> CropRect:
        return CropRect(x * self.scale_x, y * self.scale_y, w * self.scale_x, h * self.scale_y)

    def rect_to_display(self, rect: CropRect) -> CropRect:
        return CropRect(rect.x / self.scale_x, rect.y / self.scale_y,
                        rect.w / self.scale_x, rect.h / self.scale_y)


@dataclass(frozen=True)
class CropSelectionState:
    """Snapshot of the crop selection. ``anchor`` is in display coordinates."""
    is_active: bool = False
    rect: Optional[CropRect] = None
    is_dragging: bool = False
    anchor: Optional[Tuple[float, float]] = None


INERT = CropSelectionState()


# =============================================================================
# TRANSITIONS
# =============================================================================

def activate(state: CropSelectionState) -> CropSelectionState:
    """Enter (or restart) selection mode with no rectangle."""
    return CropSelectionState(is_active=True)


def press(state: CropSelectionState, transform: CoordinateTransform,
          x: float, y: float) -> CropSelectionState:
    """Pointer down: anchor a zero-size rectangle. Ignored unless active."""
    if not state.is_active:
        return state
    anchor = transform.clamp_display(x, y)
    nx, ny = transform.to_native(*anchor)
    return replace(state, rect=CropRect(nx, ny, 0.0, 0.0), is_dragging=True, anchor=anchor)


def drag(state: CropSelectionState, transform: CoordinateTransform,
         x: float, y: float) -> CropSelectionState:
    """Pointer move: span the rectangle between the anchor and the pointer."""
    if not state.is_dragging or state.anchor is None:
        return state
    cx, cy = transform.clamp_display(x, y)
    ax, ay = state.anchor
    rect = transform.rect_to_native(min(ax, cx), min(ay, cy), abs(cx - ax), abs(cy - ay))
    return replace(state, rect=rect)


def release(state: CropSelectionState) -> CropSelectionState:
    """Pointer up: freeze the rectangle, stay active."""
    if not state.is_dragging:
        return state
    return replace(state, is_dragging=False)


def confirm(state: CropSelectionState) -> Tuple[CropSelectionState, Optional[CropRect]]:
    """
    Accept the selection.

    Returns (new_state, rect). A missing rectangle, or one narrower or
    shorter than MIN_CROP_SIZE native pixels, gives (state, None) with the
    state unchanged.
    """
    rect = state.rect
    if rect is None or rect.w < MIN_CROP_SIZE or rect.h < MIN_CROP_SIZE:
        return state, None
    return INERT, rect


def cancel(state: CropSelectionState) -> CropSelectionState:
    return INERT


# =============================================================================
# STATEFUL WRAPPER
# =============================================================================

class CropSelectionMapper:
    """Holds the current selection state and coordinate transform."""

    def __init__(self):
        self._state = INERT
        self._transform = CoordinateTransform()

    @property
    def state(self) -> CropSelectionState:
        return self._state

    @property
    def transform(self) -> CoordinateTransform:
        return self._transform

    @property
    def is_active(self) -> bool:
        return self._state.is_active

    @property
    def is_dragging(self) -> bool:
        return self._state.is_dragging

    @property
    def rect(self) -> Optional[CropRect]:
        """Selection in native pixel coordinates."""
        return self._state.rect

    @property
    def display_rect(self) -> Optional[CropRect]:
        """Selection in display coordinates, for drawing the overlay."""
        if self._state.rect is None:
            return None
        return self._transform.rect_to_display(self._state.rect)

    def set_sizes(self, display_width: float, display_height: float,
                  native_width: float, native_height: float):
        """Update the transform after the display or the base bitmap changes size."""
        self._transform = CoordinateTransform.from_sizes(
            display_width, display_height, native_width, native_height)

    def activate(self):
        self._state = activate(self._state)

    def press(self, x: float, y: float):
        self._state = press(self._state, self._transform, x, y)

    def drag(self, x: float, y: float):
        self._state = drag(self._state, self._transform, x, y)

    def release(self):
        self._state = release(self._state)

    def confirm(self) -> Optional[CropRect]:
        self._state, rect = confirm(self._state)
        if rect is None:
            logger.debug("[CropSelection] Rejected selection %s", self._state.rect)
        return rect

    def cancel(self):
        self._state = cancel(self._state)
