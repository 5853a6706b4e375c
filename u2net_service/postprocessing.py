"""Post-processing for raw saliency logits: probability mask and heatmap."""

from __future__ import annotations

from functools import lru_cache
import logging
import math
from pathlib import Path
from typing import Sequence, Tuple, Union

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

DEFAULT_GAMMA = 0.5
GAMMA_MIN = 0.2
GAMMA_MAX = 5.0

# black -> navy -> blue -> purple -> red -> orange -> yellow -> white
COLORMAP_STOPS: Tuple[Tuple[float, RGB], ...] = (
    (0.00, (0, 0, 0)),
    (0.15, (0, 0, 64)),
    (0.30, (0, 0, 255)),
    (0.45, (128, 0, 192)),
    (0.60, (255, 0, 0)),
    (0.75, (255, 128, 0)),
    (0.90, (255, 255, 0)),
    (1.00, (255, 255, 255)),
)


def sigmoid(values: Union[float, np.ndarray]) -> np.ndarray:
    """Elementwise logistic function that never overflows for large |v|."""
    v = np.asarray(values, dtype=np.float32)
    flat = v.reshape(-1)
    out = np.empty_like(flat)
    pos = flat >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-flat[pos]))
    exp_neg = np.exp(flat[~pos])
    out[~pos] = exp_neg / (1.0 + exp_neg)
    return out.reshape(v.shape)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _lerp(a: RGB, b: RGB, t: float) -> RGB:
    return tuple(_round_half_up(ca + (cb - ca) * t) for ca, cb in zip(a, b))  # type: ignore[return-value]


def colormap(t: float) -> RGB:
    """Map t in [0, 1] through the fixed 8-stop heatmap ramp."""
    t = min(max(float(t), 0.0), 1.0)
    for (t0, c0), (t1, c1) in zip(COLORMAP_STOPS, COLORMAP_STOPS[1:]):
        if t <= t1:
            local = (t - t0) / (t1 - t0) if t1 > t0 else 0.0
            return _lerp(c0, c1, local)
    return COLORMAP_STOPS[-1][1]


@lru_cache(maxsize=8)
def _build_lut(gamma: float) -> np.ndarray:
    lut = np.zeros((256, 3), dtype=np.uint8)
    for i in range(256):
        lut[i] = colormap((i / 255.0) ** gamma)
    lut.setflags(write=False)
    return lut


def colormap_lut(gamma: float = DEFAULT_GAMMA) -> np.ndarray:
    """
    Return the read-only 256-entry RGB lookup table for `gamma`.

    Gamma is clamped to [0.2, 5.0]; each table is built once and shared.
    """
    return _build_lut(float(np.clip(gamma, GAMMA_MIN, GAMMA_MAX)))


HEATMAP_LUT = colormap_lut(DEFAULT_GAMMA)


def mask_plane(raw_output: np.ndarray) -> np.ndarray:
    """Select the first batch / first channel plane of a 4D model output."""
    return raw_output[0, 0]


def probability_mask(raw_output: np.ndarray, size: Tuple[int, int]) -> Image.Image:
    """
    Turn raw logits into an 8-bit 'L' mask at `size` (width, height).

    Probabilities are scaled by 255 and truncated, then Lanczos-resampled
    from the model resolution.
    """
    probs = sigmoid(mask_plane(raw_output))
    mask_u8 = np.clip(probs * 255.0, 0.0, 255.0).astype(np.uint8)
    mask = Image.fromarray(mask_u8)
    if mask.size != tuple(size):
        mask = mask.resize(tuple(size), Image.LANCZOS)
    logger.debug(
        "postprocess: mask %dx%d -> %dx%d mean=%.2f",
        mask_u8.shape[1],
        mask_u8.shape[0],
        size[0],
        size[1],
        float(mask_u8.mean()),
    )
    return mask


def render_heatmap(
    raw_output: np.ndarray,
    size: Tuple[int, int],
    gamma: float = DEFAULT_GAMMA,
) -> Image.Image:
    """False-color visualization of the saliency probabilities."""
    lut = HEATMAP_LUT if gamma == DEFAULT_GAMMA else colormap_lut(gamma)
    probs = sigmoid(mask_plane(raw_output))
    idx = np.clip(np.floor(probs * 255.0 + 0.5), 0, 255).astype(np.intp)
    heat = Image.fromarray(lut[idx])
    if heat.size != tuple(size):
        heat = heat.resize(tuple(size), Image.LANCZOS)
    return heat


def maybe_dump_debug(images: Sequence[Tuple[str, Image.Image]], debug_dir: Path) -> None:
    """Optionally write intermediate images when DEBUG is enabled."""
    try:
        debug_dir.mkdir(parents=True, exist_ok=True)
        for name, image in images:
            image.save(debug_dir / f"{name}.png")
        logger.debug("postprocess: wrote debug outputs to %s", debug_dir)
    except Exception as exc:  # noqa: BLE001
        logger.warning("postprocess: failed to write debug outputs: %s", exc)
