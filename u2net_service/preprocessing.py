"""
Image loading and preprocessing for U2-Net style saliency models.

The preprocessing normalizes images into the fixed (1, 3, 320, 320) float
layout the ONNX model expects, using ImageNet channel statistics.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError, PreprocessingError

logger = logging.getLogger(__name__)

MODEL_INPUT_SIZE = 320
CHANNEL_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
CHANNEL_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


@dataclass
class PreprocessResult:
    tensor: np.ndarray  # (1, 3, H, W) float32
    original_image: Image.Image
    orig_size: Tuple[int, int]  # (width, height)


def load_image_from_bytes(image_bytes: bytes) -> Image.Image:
    """Decode an encoded image held in memory."""
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise ImageDecodeError(f"Invalid image data: {exc}") from exc
    return image


def load_image_from_path(path: Union[str, Path]) -> Image.Image:
    """Open an image file and force decoding so errors surface here."""
    path = Path(path)
    if not path.is_file():
        raise ImageDecodeError(f"Input file not found: {path}")
    try:
        with Image.open(path) as image:
            image.load()
            return image.copy()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise ImageDecodeError(f"Cannot open image {path}: {exc}") from exc


def preprocess_image(image: Image.Image, size: int = MODEL_INPUT_SIZE) -> PreprocessResult:
    """
    Convert to RGB, resample to `size` x `size` and normalize per channel.

    Alpha is dropped rather than composited; the model only sees color.
    """
    orig_w, orig_h = image.size
    if orig_w <= 0 or orig_h <= 0:
        raise PreprocessingError(f"Image has no pixels: {orig_w}x{orig_h}")

    rgb = image.convert("RGB")
    resized = rgb.resize((size, size), Image.LANCZOS)

    im_np = np.asarray(resized, dtype=np.float32) / 255.0
    im_np = (im_np - CHANNEL_MEAN) / CHANNEL_STD
    im_np = np.transpose(im_np, (2, 0, 1))  # HWC -> CHW
    tensor = np.ascontiguousarray(im_np[np.newaxis, ...], dtype=np.float32)

    logger.debug("preprocess: %dx%d -> tensor %s", orig_w, orig_h, tensor.shape)
    return PreprocessResult(
        tensor=tensor,
        original_image=image,
        orig_size=(orig_w, orig_h),
    )
