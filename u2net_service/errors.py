"""Exception hierarchy for the u2net cutout pipeline.

Every stage raises one of these; foreign library errors are chained as the
``__cause__`` instead of being re-raised as-is.
"""


class RembgError(Exception):
    """Base exception for all pipeline errors."""


class ImageDecodeError(RembgError):
    """Raised when the source image cannot be opened or decoded.

    Typical causes: missing file, corrupted bytes, unsupported format.
    """


class ModelNotFoundError(RembgError):
    """Raised when the ONNX model file does not exist."""


class InferenceError(RembgError):
    """Raised when the inference engine cannot be created or fails to run.

    Typical causes: unsupported opset, provider error, wrong input shape, OOM.
    """


class TensorShapeError(RembgError):
    """Raised on unexpected tensor rank, batch size or dimension mismatch."""


class PreprocessingError(RembgError):
    """Raised when an input invariant is violated before compositing."""


class InvalidOptionsError(RembgError, ValueError):
    """Raised when removal options are out of range."""


class QuantizationError(RembgError):
    """Raised when the palette quantizer fails."""


class PngEncodingError(RembgError):
    """Raised when the indexed PNG cannot be written."""


class PngOptimizationError(RembgError):
    """Raised when the lossless PNG optimizer rejects its input."""


class OutputWriteError(RembgError):
    """Raised when an output or mask file cannot be persisted."""
