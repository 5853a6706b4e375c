"""
Palette compression for RGBA cutouts.

The RGBA result is quantized to at most 256 RGBA colors with libimagequant,
written as an 8-bit indexed PNG (PLTE + tRNS) with Pillow, then recompressed
losslessly with oxipng.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
import logging
from typing import List, Optional, Tuple

import imagequant
import numpy as np
import oxipng
from PIL import Image

from . import config
from .errors import PngEncodingError, PngOptimizationError, QuantizationError

logger = logging.getLogger(__name__)

RGBAColor = Tuple[int, int, int, int]
Palette = List[RGBAColor]


@dataclass
class QuantizedImage:
    width: int
    height: int
    indices: bytes  # one palette index per pixel, row-major
    palette: Palette = field(default_factory=list)


def quantize_rgba(
    image: Image.Image,
    min_quality: int = 60,
    max_quality: int = 100,
    dithering_level: float = 1.0,
    max_colors: int = 256,
) -> QuantizedImage:
    """Reduce an image to a palette of at most `max_colors` RGBA entries."""
    rgba = np.ascontiguousarray(np.asarray(image.convert("RGBA"), dtype=np.uint8))
    height, width = rgba.shape[:2]
    try:
        indices, flat_palette = imagequant.quantize_raw_rgba_bytes(
            rgba.tobytes(),
            width,
            height,
            dithering_level=dithering_level,
            max_colors=max_colors,
            min_quality=min_quality,
            max_quality=max_quality,
        )
    except Exception as exc:  # noqa: BLE001
        raise QuantizationError(f"Palette quantization failed: {exc}") from exc

    palette = [tuple(flat_palette[i : i + 4]) for i in range(0, len(flat_palette), 4)]
    # the binding pads the palette to 256 entries; keep the ones indices reach
    if indices:
        palette = palette[: max(indices) + 1]
    if not palette or len(palette) > 256:
        raise QuantizationError(f"Quantizer returned {len(palette)} palette entries")
    if len(indices) != width * height:
        raise QuantizationError(
            f"Quantizer returned {len(indices)} indices for {width}x{height} pixels"
        )
    logger.debug("quantize: %dx%d -> %d colors", width, height, len(palette))
    return QuantizedImage(width=width, height=height, indices=bytes(indices), palette=palette)


def encode_indexed_png(qimage: QuantizedImage) -> bytes:
    """Write an 8-bit palette PNG: RGB triples in PLTE, alphas in tRNS."""
    try:
        out = Image.frombytes("P", (qimage.width, qimage.height), qimage.indices)
        plte = [channel for r, g, b, _ in qimage.palette for channel in (r, g, b)]
        trns = bytes(a for _, _, _, a in qimage.palette)
        out.putpalette(plte)
        buf = BytesIO()
        out.save(buf, format="PNG", bits=8, transparency=trns)
    except (OSError, ValueError) as exc:
        raise PngEncodingError(f"Failed to write indexed PNG: {exc}") from exc
    return buf.getvalue()


def optimize_png(
    png_bytes: bytes,
    level: int = 4,
    optimize_alpha: bool = True,
    zopfli_iterations: Optional[int] = None,
) -> bytes:
    """
    Lossless recompression: new row filters, safe metadata stripping and a
    stronger deflate pass. Decoded pixels are unchanged.
    Palette and bit-depth reductions stay on; colour-type and grayscale
    reductions are off so the result remains an indexed PNG.
    """
    kwargs = {
        "level": level,
        "strip": oxipng.StripChunks.safe(),
        "optimize_alpha": optimize_alpha,
        "color_type_reduction": False,
        "grayscale_reduction": False,
    }
    if zopfli_iterations:
        kwargs["deflate"] = oxipng.Deflaters.zopfli(zopfli_iterations)
    try:
        return oxipng.optimize_from_memory(png_bytes, **kwargs)
    except oxipng.PngError as exc:
        raise PngOptimizationError(f"PNG optimization failed: {exc}") from exc


def compress_png(image: Image.Image, settings: Optional[config.Settings] = None) -> bytes:
    """Quantize, encode and optimize an RGBA image into compact PNG bytes."""
    settings = settings or config.get_settings()
    qimage = quantize_rgba(
        image,
        min_quality=settings.quant_min_quality,
        max_quality=settings.quant_max_quality,
        dithering_level=settings.quant_dithering_level,
        max_colors=settings.quant_max_colors,
    )
    indexed = encode_indexed_png(qimage)
    optimized = optimize_png(
        indexed,
        level=settings.png_optimize_level,
        optimize_alpha=settings.png_optimize_alpha,
        zopfli_iterations=settings.png_zopfli_iterations,
    )
    logger.debug(
        "compress: %d colors, indexed=%d bytes, optimized=%d bytes",
        len(qimage.palette),
        len(indexed),
        len(optimized),
    )
    return optimized
