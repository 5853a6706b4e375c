"""Alpha compositing of the probability mask against the source pixels."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Optional, Union

import numpy as np
from PIL import Image

from .errors import InvalidOptionsError, TensorShapeError
from .sticker import clean_sticker_border

logger = logging.getLogger(__name__)

BorderCleaner = Callable[[Image.Image], Image.Image]


@dataclass(frozen=True)
class RemovalOptions:
    threshold: int = 128
    binary: bool = False
    sticker: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, np.integer)):
            raise InvalidOptionsError(f"threshold must be an integer, got {self.threshold!r}")
        if not 0 <= self.threshold <= 255:
            raise InvalidOptionsError(f"threshold must be within 0..255, got {self.threshold}")


def compute_alpha(mask: np.ndarray, threshold: int, binary: bool) -> np.ndarray:
    """
    Derive the alpha plane from an 8-bit mask.

    Binary mode cuts at `threshold`. Smooth mode stretches [threshold, 255]
    onto [0, 255]: scale first, then clamp, then round half up. A threshold
    of 255 keeps only fully saturated mask pixels.
    """
    m = np.asarray(mask, dtype=np.uint8)
    if binary:
        return np.where(m >= threshold, 255, 0).astype(np.uint8)

    if threshold < 255:
        thr = np.float32(threshold)
        scale = np.float32(255.0) / (np.float32(255.0) - thr)
        stretched = np.clip((m.astype(np.float32) - thr) * scale, 0.0, 255.0)
        return np.floor(stretched + 0.5).astype(np.uint8)

    return np.where(m == 255, 255, 0).astype(np.uint8)


def composite(
    image: Image.Image,
    mask: Union[Image.Image, np.ndarray],
    options: RemovalOptions,
    border_cleaner: Optional[BorderCleaner] = None,
) -> Image.Image:
    """
    Build a new RGBA image: source RGB untouched, alpha from the mask.

    With `options.sticker` the result goes through `border_cleaner`
    (the cv2 sticker cleanup by default).
    """
    mask_np = np.asarray(mask.convert("L") if isinstance(mask, Image.Image) else mask)
    width, height = image.size
    if mask_np.shape != (height, width):
        raise TensorShapeError(
            f"Mask shape {mask_np.shape} does not match image size {width}x{height}"
        )

    rgba = np.array(image.convert("RGBA"), dtype=np.uint8)
    alpha = compute_alpha(mask_np, options.threshold, options.binary)
    rgba[..., 3] = alpha
    logger.debug(
        "composite: threshold=%d binary=%s opaque=%.2f%% transparent=%.2f%%",
        options.threshold,
        options.binary,
        float(np.mean(alpha == 255)) * 100.0,
        float(np.mean(alpha == 0)) * 100.0,
    )
    result = Image.fromarray(rgba)

    if options.sticker:
        cleaner = border_cleaner or clean_sticker_border
        result = cleaner(result)
    return result
