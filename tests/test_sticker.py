"""Tests for the sticker border cleanup transform."""

import numpy as np
from PIL import Image

from u2net_service.sticker import clean_sticker_border


def _sticker(size=(20, 20)):
    rgba = np.zeros((size[1], size[0], 4), dtype=np.uint8)
    rgba[..., :3] = (40, 200, 90)
    rgba[5:15, 5:15, 3] = 255
    return rgba


class TestCleanStickerBorder:
    def test_preserves_size_and_mode(self):
        result = clean_sticker_border(Image.fromarray(_sticker((31, 20))))
        assert result.size == (31, 20)
        assert result.mode == "RGBA"

    def test_removes_small_islands(self):
        rgba = _sticker()
        rgba[0, 0, 3] = 255
        rgba[18:20, 18:20, 3] = 255
        alpha = np.asarray(clean_sticker_border(Image.fromarray(rgba)))[..., 3]
        assert alpha[0, 0] == 0
        assert np.all(alpha[18:20, 18:20] == 0)
        assert np.all(alpha[5:15, 5:15] == 255)

    def test_clears_faint_outline(self):
        rgba = _sticker()
        rgba[5, 5:15, 3] = 40
        alpha = np.asarray(clean_sticker_border(Image.fromarray(rgba)))[..., 3]
        assert np.all(alpha[5, 5:15] == 0)
        assert np.all(alpha[6:15, 5:15] == 255)

    def test_transparent_pixels_get_black_rgb(self):
        result = np.asarray(clean_sticker_border(Image.fromarray(_sticker())))
        assert np.all(result[0:5, :, :3] == 0)
        assert np.all(result[5:15, 5:15, :3] == (40, 200, 90))

    def test_idempotent(self):
        rgba = _sticker()
        rgba[0, 0, 3] = 255
        once = clean_sticker_border(Image.fromarray(rgba))
        twice = clean_sticker_border(once)
        assert np.array_equal(np.asarray(once), np.asarray(twice))

    def test_fully_transparent_image(self):
        rgba = np.zeros((6, 6, 4), dtype=np.uint8)
        result = np.asarray(clean_sticker_border(Image.fromarray(rgba)))
        assert np.all(result == 0)
