"""
Model loading utilities for the ONNX saliency model.

The loader:
 - opens the ONNX model from `U2NET_MODEL_PATH` with onnxruntime,
 - keeps a single shared session per model path,
 - serializes calls into the session so one caller holds it per inference,
 - normalizes the raw output to a (1, C, H, W) float32 array.
"""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Protocol, Union

import numpy as np
import onnxruntime as ort

from . import config
from .errors import InferenceError, ModelNotFoundError, TensorShapeError

logger = logging.getLogger(__name__)

_SESSIONS: Dict[Path, "ModelSession"] = {}
_LOCK = Lock()


class InferenceBackend(Protocol):
    def run(self, tensor: np.ndarray) -> np.ndarray:
        ...


def normalize_output_rank(output: np.ndarray) -> np.ndarray:
    """
    Bring a raw model output to exactly four axes (batch, channel, row, col).

    Rank 2 gets batch and channel axes, rank 3 gets a batch axis; any other
    rank is rejected rather than guessed at.
    """
    output = np.asarray(output)
    rank = output.ndim
    if rank == 4:
        normalized = output
    elif rank == 3:
        normalized = output[np.newaxis, ...]
    elif rank == 2:
        normalized = output[np.newaxis, np.newaxis, ...]
    else:
        raise TensorShapeError(f"Unexpected output shape: {output.shape}")

    if normalized.shape[0] != 1:
        raise TensorShapeError(f"Expected batch size 1, got output shape {normalized.shape}")
    if normalized.shape[1] < 1 or normalized.shape[2] < 1 or normalized.shape[3] < 1:
        raise TensorShapeError(f"Empty output tensor: {normalized.shape}")
    return normalized.astype(np.float32, copy=False)


class ModelSession:
    """Exclusive-access wrapper around an onnxruntime inference session."""

    def __init__(self, inner_session: ort.InferenceSession):
        self.inner_session = inner_session
        self.input_name = inner_session.get_inputs()[0].name
        self.output_name = inner_session.get_outputs()[0].name
        self._lock = Lock()

    @classmethod
    def from_file(cls, model_path: Union[str, Path], intra_threads: int = 4) -> "ModelSession":
        model_path = Path(model_path)
        if not model_path.is_file():
            raise ModelNotFoundError(f"ONNX model not found at {model_path}")

        sess_opts = ort.SessionOptions()
        sess_opts.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        sess_opts.intra_op_num_threads = intra_threads
        try:
            inner = ort.InferenceSession(
                str(model_path),
                sess_options=sess_opts,
                providers=["CPUExecutionProvider"],
            )
        except Exception as exc:  # noqa: BLE001
            raise InferenceError(f"Failed to load ONNX model {model_path}: {exc}") from exc
        logger.info("Loaded ONNX model from %s (intra threads=%d)", model_path, intra_threads)
        return cls(inner)

    def run(self, tensor: np.ndarray) -> np.ndarray:
        """Run one forward pass and return the first output as a 4D array."""
        with self._lock:
            try:
                outputs = self.inner_session.run([self.output_name], {self.input_name: tensor})
            except Exception as exc:  # noqa: BLE001
                raise InferenceError(f"Inference failed: {exc}") from exc
        if not outputs:
            raise InferenceError("No output from model")
        logger.debug("inference: output %s shape=%s", self.output_name, np.shape(outputs[0]))
        return normalize_output_rank(outputs[0])


def get_model_session(model_path: Optional[Union[str, Path]] = None) -> ModelSession:
    """
    Return the shared session for `model_path` (settings default when None).

    The session is created once on first access and reused across calls to
    avoid re-initialization costs.
    """
    settings = config.get_settings()
    key = Path(model_path or settings.u2net_model_path).resolve()
    session = _SESSIONS.get(key)
    if session is not None:
        return session

    with _LOCK:
        session = _SESSIONS.get(key)
        if session is None:
            session = ModelSession.from_file(key, intra_threads=settings.u2net_intra_threads)
            _SESSIONS[key] = session
    return session
