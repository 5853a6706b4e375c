"""
U2-Net background removal package.

Exposes reusable primitives for preprocessing images, running the ONNX
model, turning its logits into alpha masks and writing palette PNGs.
"""

from .compositing import RemovalOptions
from .errors import RembgError
from .pipeline import RemovalResult, process_image_bytes, remove_background

__all__ = [
    "RembgError",
    "RemovalOptions",
    "RemovalResult",
    "process_image_bytes",
    "remove_background",
]
