# tests/conftest.py
from __future__ import annotations

from typing import List

import numpy as np
import pytest
from PIL import Image

from u2net_service import config


class StubBackend:
    """Inference stand-in returning a fixed logits array."""

    def __init__(self, logits: np.ndarray):
        self.logits = np.asarray(logits, dtype=np.float32)
        self.calls: List[tuple] = []

    def run(self, tensor: np.ndarray) -> np.ndarray:
        self.calls.append(tensor.shape)
        return self.logits


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Fresh settings per test, without picking up a developer .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ("DEBUG", "COMPRESS_OUTPUT", "DEFAULT_THRESHOLD", "U2NET_MODEL_PATH", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


@pytest.fixture
def settings():
    return config.get_settings()


@pytest.fixture
def stub_backend_factory():
    def _make(value: float = 10.0, shape=(1, 1, 8, 8)) -> StubBackend:
        return StubBackend(np.full(shape, value, dtype=np.float32))

    return _make


@pytest.fixture
def red_image():
    return Image.new("RGBA", (4, 4), (255, 0, 0, 255))


@pytest.fixture
def photo_image():
    """Small RGB image with a gradient so resampling has something to do."""
    x = np.linspace(0, 255, 24, dtype=np.uint8)
    rgb = np.stack(
        [
            np.tile(x, (16, 1)),
            np.tile(x[::-1], (16, 1)),
            np.full((16, 24), 90, dtype=np.uint8),
        ],
        axis=-1,
    )
    return Image.fromarray(rgb)
