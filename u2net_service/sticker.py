"""Sticker border cleanup: drop stray alpha islands and soft outline haze."""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np
from PIL import Image

from . import config

logger = logging.getLogger(__name__)

_KERNEL = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))


def _keep_major_islands(alpha: np.ndarray, min_ratio: float) -> np.ndarray:
    """Boolean mask of visible components at least `min_ratio` of the largest."""
    solid = (alpha > 0).astype(np.uint8)
    num_labels, labels, stats, _ = cv2.connectedComponentsWithStats(solid, connectivity=8)
    if num_labels <= 1:
        return solid.astype(bool)

    areas = stats[1:, cv2.CC_STAT_AREA]
    keep_labels = 1 + np.flatnonzero(areas >= areas.max() * min_ratio)
    logger.debug("sticker: kept %d of %d components", keep_labels.size, num_labels - 1)
    return np.isin(labels, keep_labels)


def clean_sticker_border(
    image: Image.Image,
    min_island_ratio: Optional[float] = None,
    fringe_alpha: Optional[int] = None,
) -> Image.Image:
    """
    Tidy a cutout for use as a sticker.

    Small detached islands are removed, the silhouette is opened with a 3x3
    kernel to shave one-pixel spurs, outline pixels fainter than
    `fringe_alpha` are cleared and fully transparent pixels get black RGB.
    The output has the same size as the input.
    """
    settings = config.get_settings()
    if min_island_ratio is None:
        min_island_ratio = settings.sticker_min_island_ratio
    if fringe_alpha is None:
        fringe_alpha = settings.sticker_fringe_alpha

    rgba = np.array(image.convert("RGBA"), dtype=np.uint8)
    alpha = rgba[..., 3]

    keep = _keep_major_islands(alpha, min_island_ratio).astype(np.uint8)
    opened = cv2.morphologyEx(keep, cv2.MORPH_OPEN, _KERNEL)
    eroded = cv2.erode(opened, _KERNEL, iterations=1)
    outline = (opened > 0) & (eroded == 0)

    alpha = np.where(opened > 0, alpha, 0).astype(np.uint8)
    alpha[outline & (alpha < fringe_alpha)] = 0

    rgba[..., 3] = alpha
    rgba[alpha == 0, :3] = 0
    return Image.fromarray(rgba)
