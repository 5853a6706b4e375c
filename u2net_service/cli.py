"""
Command-line entry point: removes the background from a local image and
writes the cutout (and optionally the mask heatmap) next to it.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from . import config
from .compositing import RemovalOptions
from .errors import OutputWriteError, RembgError
from .model_loader import get_model_session
from .pipeline import remove_background
from .preprocessing import load_image_from_path

logger = logging.getLogger(__name__)


def _threshold(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid threshold: {value!r}") from exc
    if not 0 <= parsed <= 255:
        raise argparse.ArgumentTypeError("threshold must be within 0..255")
    return parsed


def _ensure_parent(output_path: Path) -> None:
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputWriteError(f"Cannot create output directory {output_path.parent}: {exc}") from exc


def mask_path_for(output_path: Path) -> Path:
    """`<dir>/<stem>_mask.<ext>` beside the output, defaulting to mask/png."""
    stem = output_path.stem or "mask"
    extension = output_path.suffix.lstrip(".") or "png"
    return output_path.parent / f"{stem}_mask.{extension}"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = config.get_settings()
    parser = argparse.ArgumentParser(description="Remove the background from an image")
    parser.add_argument("-i", "--input", required=True, help="Path to the input image")
    parser.add_argument("-o", "--output", required=True, help="Path to write the RGBA PNG")
    parser.add_argument(
        "-m",
        "--model",
        default=str(settings.u2net_model_path),
        help="Path to the ONNX model (default: %(default)s)",
    )
    parser.add_argument(
        "-t",
        "--threshold",
        type=_threshold,
        default=settings.default_threshold,
        help="Mask threshold 0-255 (default: %(default)s)",
    )
    parser.add_argument("--binary", action="store_true", help="Hard 0/255 alpha instead of a smooth ramp")
    parser.add_argument("--sticker", action="store_true", help="Clean the cutout border for sticker use")
    parser.add_argument("--save-mask", action="store_true", help="Also write the mask heatmap")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = config.get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    output_path = Path(args.output)
    options = RemovalOptions(threshold=args.threshold, binary=args.binary, sticker=args.sticker)
    logger.info("Input: %s Output: %s Model: %s", args.input, output_path, args.model)

    try:
        session = get_model_session(args.model)
        image = load_image_from_path(args.input)
        result = remove_background(session, image, options, settings=settings)
        _ensure_parent(output_path)
        result.save_image(output_path, compress=settings.compress_output, settings=settings)
    except RembgError as exc:
        logger.error("Background removal failed: %s", exc)
        return 1

    if args.save_mask:
        try:
            result.save_mask(mask_path_for(output_path))
        except OutputWriteError as exc:
            logger.warning("Failed to save mask: %s", exc)

    logger.info("Background removed, output saved to %s", output_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
