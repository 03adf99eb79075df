#!/usr/bin/env python3
"""
PIXELBOOST - Command Line

Headless editing: send an image through the enhancement backend, upscale
it, apply 90° rotations, a crop and enhancement values, and export.
"""

import argparse
import logging
import sqlite3
import sys
from pathlib import Path

import presets
import storage
from bitmap import ACCEPTED_TYPES, EXPORT_FORMATS, PixelboostError
from services import EditingSession, EnhancementMode, InMemoryBackend, UploadClient
from services.upload_client import detect_mime_type
from state import CropRect, EnhancementValues

logger = logging.getLogger("pixelboost")

SUFFIX_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
}


def _guess_file_type(path: Path, data: bytes) -> str:
    """Declared MIME type of an input file, from its suffix or magic bytes."""
    return SUFFIX_TYPES.get(path.suffix.lower()) or detect_mime_type(data) or 'application/octet-stream'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='pixelboost', description='PixelBoost image enhancer')
    parser.add_argument('input', help='JPEG or PNG image to enhance')
    parser.add_argument('-o', '--output', help='Output file (default: pixelboost-enhanced.png next to input)')
    parser.add_argument('--brightness', type=int, help='-100 to 100 (default 0)')
    parser.add_argument('--contrast', type=int, help='-100 to 100 (default 0)')
    parser.add_argument('--saturation', type=int, help='0 to 200 (default 100)')
    parser.add_argument('--sharpness', type=int, help='0 to 100 (default 0)')
    parser.add_argument('--noise-reduction', type=int, dest='noise_reduction', help='0 to 100 (default 0)')
    parser.add_argument('--rotation', type=float, help='Free rotation in degrees, -45 to 45 (default 0)')
    parser.add_argument('--rotate90', action='append', choices=['cw', 'ccw'], default=[],
                        help='Quarter turn committed before cropping (repeatable)')
    parser.add_argument('--crop', type=float, nargs=4, metavar=('X', 'Y', 'W', 'H'),
                        help='Crop rectangle in upscaled pixel coordinates')
    parser.add_argument('--preset', metavar='KEY',
                        help='Start from a preset before applying individual values '
                             f'(built-in: {", ".join(presets.PRESET_ORDER)}, or a saved user preset)')
    parser.add_argument('--mode', choices=[m.value for m in EnhancementMode],
                        help='Enhancement mode (default from preferences)')
    parser.add_argument('--format', choices=list(EXPORT_FORMATS.keys()), dest='fmt',
                        help='Export format (default from preferences or output suffix)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def run(args) -> Path:
    """Execute one edit. Returns the written output path."""
    store = storage.get_storage()
    # User presets live in storage, so they are only known once it is open
    if args.preset and args.preset not in {key for key, _, _ in presets.get_preset_list()}:
        raise PixelboostError(f"Unknown preset: {args.preset}")

    input_path = Path(args.input)
    data = input_path.read_bytes()
    file_type = _guess_file_type(input_path, data)
    if file_type not in ACCEPTED_TYPES:
        raise PixelboostError("Only JPEG and PNG images are supported.")

    mode = EnhancementMode(args.mode or store.get_enhancement_mode())
    client = UploadClient(InMemoryBackend(), chunk_size=store.get_chunk_size())
    enhanced = client.process_image(
        data, file_type, mode,
        on_progress=lambda p: logger.debug("%s %.0f%%", p.phase, p.fraction * 100),
    )

    session = EditingSession()
    session.load_bytes(enhanced.data, enhanced.mime_type)

    for direction in args.rotate90:
        session.rotate90(clockwise=(direction == 'cw'))

    if args.crop:
        rect = CropRect(*args.crop)
        base = session.base
        if not rect.fits_within(base.width, base.height):
            raise PixelboostError(f"Crop {rect.as_tuple()} is outside the {base.width}x{base.height} image")
        # Select at native scale: display size equals base size
        session.set_display_size(base.width, base.height)
        session.activate_crop()
        session.pointer_press(rect.x, rect.y)
        session.pointer_move(rect.x + rect.w, rect.y + rect.h)
        session.pointer_release()
        if session.confirm_crop() is None:
            raise PixelboostError("Crop selection is too small")

    values = presets.get_preset_values(args.preset) if args.preset else EnhancementValues()
    overrides = {
        name: getattr(args, name)
        for name in ('brightness', 'contrast', 'saturation', 'sharpness', 'noise_reduction', 'rotation')
        if getattr(args, name) is not None
    }
    session.set_values(values.with_changes(**overrides))

    output = Path(args.output) if args.output else input_path.with_name('pixelboost-enhanced.png')
    fmt = args.fmt
    if fmt is None and output.suffix.lower() not in ('.png', '.jpg', '.jpeg'):
        fmt = store.get_export_format()
    return session.export_to(output, fmt)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    try:
        output = run(args)
    except (PixelboostError, OSError, sqlite3.Error) as e:
        logger.error("%s", e)
        return 1

    logger.info("Saved %s", output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
