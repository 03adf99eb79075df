"""
Enhancement Presets for PIXELBOOST

Presets are named sets of enhancement values. Each preset is a dictionary
with 'name', 'description' and 'values' keys; 'values' holds the same fields
as EnhancementValues.to_dict(). Rotation is never part of a preset.
"""

import re

import storage
from state import EnhancementValues


def _make_preset(name: str, description: str, values: dict = None) -> dict:
    """Helper to create a preset with neutral values filled in."""
    vals = EnhancementValues().to_dict()
    if values:
        vals.update(values)
    vals['rotation'] = 0.0
    return {
        'name': name,
        'description': description,
        'values': vals,
    }


# ============================================================================
# BUILT-IN PRESETS
# ============================================================================

PRESETS = {
    # None preset - restores to default
    'none': _make_preset(
        'None',
        'No preset applied - neutral settings',
    ),

    # Vivid - stronger color and a little punch
    'vivid': _make_preset(
        'Vivid',
        'Boosted saturation and contrast for colorful scenes',
        values={
            'contrast': 15,
            'saturation': 140,
            'sharpness': 20,
        }
    ),

    # Crisp - detail first, colors left alone
    'crisp': _make_preset(
        'Crisp',
        'Clean up noise, then sharpen fine detail',
        values={
            'noise_reduction': 50,
            'contrast': 10,
            'sharpness': 45,
        }
    ),

    # Soft - low contrast, gentle colors
    'soft': _make_preset(
        'Soft',
        'Lifted brightness, low contrast, muted colors',
        values={
            'brightness': 8,
            'contrast': -20,
            'saturation': 85,
            'noise_reduction': 50,
        }
    ),

    # Mono - black and white
    'mono': _make_preset(
        'Mono',
        'Black and white with a touch of contrast',
        values={
            'contrast': 20,
            'saturation': 0,
            'sharpness': 15,
        }
    ),

    # Punch - anime/illustration friendly
    'punch': _make_preset(
        'Punch',
        'Bold flat colors and hard edges for illustrations',
        values={
            'contrast': 25,
            'saturation': 160,
            'sharpness': 60,
        }
    ),
}

# Ordered list for display
PRESET_ORDER = [
    'none',
    'vivid',
    'crisp',
    'soft',
    'mono',
    'punch',
]


# ============================================================================
# LOOKUP
# ============================================================================

def _user_presets() -> dict:
    return storage.get_storage().get_user_presets()


def get_preset(key: str) -> dict:
    """Built-in or user preset by key; unknown keys give the 'none' preset."""
    return PRESETS.get(key) or _user_presets().get(key, PRESETS['none'])


def get_preset_values(key: str) -> EnhancementValues:
    """A preset's values as an EnhancementValues instance."""
    return EnhancementValues.from_dict(get_preset(key).get('values', {}))


def get_preset_list() -> list:
    """(key, name, description) for every preset.

    Built-ins come first in PRESET_ORDER, then user presets sorted by name.
    """
    builtin = [(key, PRESETS[key]['name'], PRESETS[key]['description']) for key in PRESET_ORDER]
    user = sorted(
        ((key, p['name'], p.get('description', '')) for key, p in _user_presets().items()),
        key=lambda item: item[1].lower(),
    )
    return builtin + user


def is_user_preset(key: str) -> bool:
    return key not in PRESETS


# ============================================================================
# USER PRESETS
# ============================================================================

def _unique_key(name: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '_', name.lower()).strip('_') or 'preset'
    key = f"user_{slug}"
    taken = set(PRESETS) | set(_user_presets())
    suffix = 2
    while key in taken:
        key = f"user_{slug}_{suffix}"
        suffix += 1
    return key


def create_user_preset(name: str, description: str, values: EnhancementValues) -> str:
    """Save values (minus rotation) as a new user preset and return its key."""
    key = _unique_key(name)
    storage.get_storage().save_user_preset(key, _make_preset(name, description, values.to_dict()))
    return key


def delete_user_preset(key: str) -> bool:
    """Remove a user preset. Built-ins cannot be deleted (returns False)."""
    if key in PRESETS:
        return False
    return storage.get_storage().delete_user_preset(key)
