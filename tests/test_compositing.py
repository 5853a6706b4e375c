"""Tests for the alpha rules and RGBA compositing."""

import numpy as np
import pytest
from PIL import Image

from u2net_service import compositing
from u2net_service.compositing import RemovalOptions, composite, compute_alpha
from u2net_service.errors import InvalidOptionsError, TensorShapeError

ALL_VALUES = np.arange(256, dtype=np.uint8)


class TestRemovalOptions:
    def test_defaults(self):
        options = RemovalOptions()
        assert options.threshold == 128
        assert options.binary is False
        assert options.sticker is False

    @pytest.mark.parametrize("threshold", [-1, 256, 1000])
    def test_threshold_out_of_range(self, threshold):
        with pytest.raises(InvalidOptionsError):
            RemovalOptions(threshold=threshold)

    @pytest.mark.parametrize("threshold", [12.5, "100", True])
    def test_threshold_must_be_int(self, threshold):
        with pytest.raises(ValueError):
            RemovalOptions(threshold=threshold)

    def test_immutable(self):
        options = RemovalOptions()
        with pytest.raises(Exception):
            options.threshold = 3  # type: ignore[misc]


class TestComputeAlpha:
    @pytest.mark.parametrize("threshold", [0, 1, 77, 128, 254, 255])
    def test_binary_only_extremes(self, threshold):
        alpha = compute_alpha(ALL_VALUES, threshold, binary=True)
        assert set(np.unique(alpha)) <= {0, 255}
        assert np.array_equal(alpha == 255, ALL_VALUES >= threshold)

    def test_smooth_threshold_255(self):
        alpha = compute_alpha(ALL_VALUES, 255, binary=False)
        assert alpha[255] == 255
        assert np.all(alpha[:255] == 0)

    def test_smooth_threshold_zero_is_identity(self):
        assert np.array_equal(compute_alpha(ALL_VALUES, 0, binary=False), ALL_VALUES)

    def test_smooth_stretch(self):
        # (200 - 150) * 255 / 105 = 121.43
        mask = np.full((3, 5), 200, dtype=np.uint8)
        alpha = compute_alpha(mask, 150, binary=False)
        assert np.all(alpha == 121)

    def test_smooth_clamps_below_threshold(self):
        alpha = compute_alpha(ALL_VALUES, 100, binary=False)
        assert np.all(alpha[:101] == 0)
        assert alpha[255] == 255
        assert np.all(np.diff(alpha.astype(int)) >= 0)

    def test_smooth_rounds_half_up(self):
        # threshold 1: scale = 255 / 254; m = 128 -> 127.5 rounds to 128
        assert compute_alpha(np.array([128], dtype=np.uint8), 1, binary=False)[0] == 128


class TestComposite:
    def test_opaque_red_binary(self, red_image):
        mask = np.full((4, 4), 255, dtype=np.uint8)
        result = composite(red_image, mask, RemovalOptions(threshold=128, binary=True))
        rgba = np.asarray(result)
        assert result.mode == "RGBA"
        assert np.all(rgba[..., 3] == 255)
        assert np.all(rgba[..., :3] == (255, 0, 0))

    def test_gradient_mask_threshold_255(self):
        image = Image.new("RGB", (256, 3), (10, 20, 30))
        mask = np.tile(ALL_VALUES, (3, 1))
        alpha = np.asarray(composite(image, mask, RemovalOptions(threshold=255)))[..., 3]
        assert np.all(alpha[:, :255] == 0)
        assert np.all(alpha[:, 255] == 255)

    def test_rgb_copied_from_source(self, photo_image):
        mask = Image.new("L", photo_image.size, 0)
        result = composite(photo_image, mask, RemovalOptions(threshold=10))
        rgba = np.asarray(result)
        assert np.array_equal(rgba[..., :3], np.asarray(photo_image))
        assert np.all(rgba[..., 3] == 0)

    def test_rgba_source_keeps_rgb_and_is_not_mutated(self, photo_image):
        source = photo_image.convert("RGBA")
        source.putalpha(17)
        before = np.asarray(source).copy()
        mask = np.full((16, 24), 255, dtype=np.uint8)
        result = composite(source, mask, RemovalOptions(threshold=0))
        assert np.array_equal(np.asarray(result)[..., :3], before[..., :3])
        assert np.array_equal(np.asarray(source), before)
        assert result is not source

    def test_mask_size_mismatch(self, red_image):
        with pytest.raises(TensorShapeError):
            composite(red_image, np.zeros((5, 4), dtype=np.uint8), RemovalOptions())

    def test_sticker_uses_given_cleaner(self, red_image):
        calls = []

        def cleaner(image):
            calls.append(image.size)
            return image.transpose(Image.FLIP_LEFT_RIGHT)

        mask = np.full((4, 4), 255, dtype=np.uint8)
        composite(red_image, mask, RemovalOptions(sticker=True), border_cleaner=cleaner)
        composite(red_image, mask, RemovalOptions(sticker=False), border_cleaner=cleaner)
        assert calls == [(4, 4)]

    def test_sticker_defaults_to_builtin_cleanup(self, monkeypatch, red_image):
        calls = []

        def fake_cleanup(image):
            calls.append(image.mode)
            return image

        monkeypatch.setattr(compositing, "clean_sticker_border", fake_cleanup)
        composite(red_image, np.full((4, 4), 255, dtype=np.uint8), RemovalOptions(sticker=True))
        assert calls == ["RGBA"]
