"""
High-level background-removal pipeline.

`remove_background` is the main entry point used by the CLI and by embedding
applications. It keeps orchestration simple:
image -> preprocessing -> model -> mask post-processing -> compositing.
`process_image_bytes` wraps it for encoded bytes in / PNG bytes out.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

from . import config
from .compositing import BorderCleaner, RemovalOptions, composite
from .compress import compress_png
from .errors import InferenceError, OutputWriteError, RembgError
from .model_loader import InferenceBackend, get_model_session, normalize_output_rank
from .postprocessing import maybe_dump_debug, probability_mask, render_heatmap
from .preprocessing import load_image_from_bytes, preprocess_image

logger = logging.getLogger(__name__)


@dataclass
class RemovalResult:
    image: Image.Image  # RGBA cutout
    mask: Image.Image  # RGB heatmap visualization

    def to_png_bytes(self, compress: bool = True, settings: Optional[config.Settings] = None) -> bytes:
        if compress:
            return compress_png(self.image, settings=settings)
        buf = BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()

    def save_image(
        self,
        path: Union[str, Path],
        compress: bool = True,
        settings: Optional[config.Settings] = None,
    ) -> Path:
        """Persist the cutout; compressed output is always PNG."""
        path = Path(path)
        try:
            if compress:
                path.write_bytes(compress_png(self.image, settings=settings))
            else:
                self.image.save(path)
        except (OSError, ValueError) as exc:
            raise OutputWriteError(f"Failed to save result to {path}: {exc}") from exc
        logger.info("Saved cutout to %s", path)
        return path

    def save_mask(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        try:
            self.mask.save(path)
        except (OSError, ValueError) as exc:
            raise OutputWriteError(f"Failed to save mask to {path}: {exc}") from exc
        logger.info("Saved mask to %s", path)
        return path


def _run_inference(backend: InferenceBackend, tensor: np.ndarray) -> np.ndarray:
    try:
        raw = backend.run(tensor)
    except RembgError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise InferenceError(f"Inference backend failed: {exc}") from exc
    return normalize_output_rank(raw)


def remove_background(
    backend: InferenceBackend,
    image: Image.Image,
    options: Optional[RemovalOptions] = None,
    border_cleaner: Optional[BorderCleaner] = None,
    settings: Optional[config.Settings] = None,
) -> RemovalResult:
    """
    Cut the foreground out of `image`.

    Raises:
        RembgError: any stage failure, with the foreign cause chained.
    """
    settings = settings or config.get_settings()
    options = options or RemovalOptions(threshold=settings.default_threshold)

    preprocessed = preprocess_image(image, size=settings.u2net_input_size)
    raw = _run_inference(backend, preprocessed.tensor)
    logger.debug("pipeline: raw output shape=%s", raw.shape)

    mask = probability_mask(raw, preprocessed.orig_size)
    heatmap = render_heatmap(raw, preprocessed.orig_size, gamma=settings.mask_gamma)

    if settings.debug:
        maybe_dump_debug([("mask", mask), ("heatmap", heatmap)], Path(settings.debug_output_dir))

    cutout = composite(image, mask, options, border_cleaner=border_cleaner)
    return RemovalResult(image=cutout, mask=heatmap)


def process_image_bytes(
    image_bytes: bytes,
    options: Optional[RemovalOptions] = None,
    model_path: Optional[Union[str, Path]] = None,
) -> bytes:
    """Full pipeline from encoded bytes to PNG bytes using the shared model session."""
    settings = config.get_settings()
    image = load_image_from_bytes(image_bytes)
    session = get_model_session(model_path)
    result = remove_background(session, image, options, settings=settings)
    return result.to_png_bytes(compress=settings.compress_output, settings=settings)
