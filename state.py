"""
PIXELBOOST - Shared State

Immutable value records shared between the editing session, the compositor
and the crop selection: the enhancement control values and crop rectangles.
"""

import math
from dataclasses import dataclass, fields, replace, asdict


def _clamp(value, lo, hi):
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class CropRect:
    """Axis-aligned rectangle in the base bitmap's native pixel coordinates."""
    x: float
    y: float
    w: float
    h: float

    @property
    def is_empty(self) -> bool:
        return self.w <= 0 or self.h <= 0

    def fits_within(self, width: float, height: float) -> bool:
        """True if the rectangle lies inside a width x height image."""
        return (self.x >= 0 and self.y >= 0
                and self.x + self.w <= width and self.y + self.h <= height)

    def as_tuple(self) -> tuple:
        return (self.x, self.y, self.w, self.h)


@dataclass(frozen=True)
class EnhancementValues:
    """Values of the enhancement controls.

    Each field is clamped to its range on construction, so an instance is
    never partially invalid. Change values by building a new instance with
    ``with_changes``.
    """
    brightness: int = 0         # -100 to +100
    contrast: int = 0           # -100 to +100
    saturation: int = 100       # 0 to 200, 100 = unchanged
    sharpness: int = 0          # 0 to 100
    noise_reduction: int = 0    # 0 to 100
    rotation: float = 0.0       # -45.0 to +45.0 degrees

    # field -> (min, max, type)
    RANGES = {
        'brightness': (-100, 100, int),
        'contrast': (-100, 100, int),
        'saturation': (0, 200, int),
        'sharpness': (0, 100, int),
        'noise_reduction': (0, 100, int),
        'rotation': (-45.0, 45.0, float),
    }

    # Accepted spellings of field names when loading from dicts
    ALIASES = {
        'noiseReduction': 'noise_reduction',
    }

    def __post_init__(self):
        for name, (lo, hi, kind) in self.RANGES.items():
            value = float(getattr(self, name))
            if kind is int:
                value = int(math.floor(value + 0.5))
            object.__setattr__(self, name, _clamp(value, lo, hi))

    def with_changes(self, **changes) -> 'EnhancementValues':
        """Return a new instance with some fields replaced (and clamped)."""
        return replace(self, **changes)

    @property
    def is_default(self) -> bool:
        return self == EnhancementValues()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'EnhancementValues':
        """Build from a dict, ignoring unknown keys and accepting camelCase aliases."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            key = cls.ALIASES.get(key, key)
            if key in known and value is not None:
                values[key] = value
        return cls(**values)


DEFAULT_ENHANCEMENT_VALUES = EnhancementValues()
