"""
Ordered Dithering Tests
=======================
"""

import numpy as np
import pytest

from dither_cam.processing.dither import Ditherer
from dither_cam.processing.threshold import MatrixSizeError, generate_threshold_matrix


class TestDitherer:
    """Tests for binary ordered dithering."""

    def test_output_is_binary(self, bayer4, random_pixels):
        out = Ditherer(bayer4).apply(random_pixels)
        assert set(np.unique(out[..., :3]).tolist()) <= {0, 255}

    def test_out_of_range_float_input(self, bayer4):
        rng = np.random.default_rng(7)
        pixels = rng.uniform(-300, 600, size=(9, 9, 4))
        out = Ditherer(bayer4).apply(pixels)
        assert out.dtype == np.uint8
        assert set(np.unique(out[..., :3]).tolist()) <= {0, 255}

    def test_alpha_forced_opaque(self, bayer4, random_pixels):
        random_pixels[..., 3] = 0
        out = Ditherer(bayer4).apply(random_pixels)
        assert np.all(out[..., 3] == 255)

    def test_extremes(self, bayer4):
        black = np.zeros((4, 4, 4), dtype=np.uint8)
        white = np.full((4, 4, 4), 255, dtype=np.uint8)
        ditherer = Ditherer(bayer4)
        assert np.all(ditherer.apply(black)[..., :3] == 0)
        # 255 exceeds every threshold (max rank 15/16 * 255)
        assert np.all(ditherer.apply(white)[..., :3] == 255)

    @pytest.mark.parametrize("size", [2, 4, 8])
    def test_periodic_for_flat_input(self, size):
        pixels = np.full((3 * size + 1, 2 * size + 3, 4), 100, dtype=np.uint8)
        out = Ditherer(generate_threshold_matrix(size)).apply(pixels)
        assert np.array_equal(out[size:, :], out[:-size, :])
        assert np.array_equal(out[:, size:], out[:, :-size])

    def test_matches_threshold_rule(self, bayer4, random_pixels):
        out = Ditherer(bayer4).apply(random_pixels)
        height, width = random_pixels.shape[:2]
        for y in range(height):
            for x in range(width):
                threshold = bayer4[y % 4][x % 4] * 255
                for c in range(3):
                    expected = 255 if random_pixels[y, x, c] > threshold else 0
                    assert out[y, x, c] == expected

    def test_channels_thresholded_independently(self, bayer4):
        # Same cell threshold (rank 8 -> 127.5), different channel values
        pixels = np.zeros((1, 2, 4), dtype=np.uint8)
        pixels[0, 1] = (200, 100, 128, 255)
        out = Ditherer(bayer4).apply(pixels)
        assert out[0, 1, :3].tolist() == [255, 0, 255]

    def test_strict_comparison(self, bayer4):
        # Cell (0, 0) has threshold 0: value 0 is not above it
        pixels = np.zeros((1, 1, 4), dtype=np.uint8)
        pixels[0, 0, :3] = (0, 1, 0)
        out = Ditherer(bayer4).apply(pixels)
        assert out[0, 0, :3].tolist() == [0, 255, 0]

    def test_tiled_thresholds_cached(self, bayer4):
        ditherer = Ditherer(bayer4)
        first = ditherer.tiled_thresholds(5, 7)
        assert first.shape == (5, 7)
        assert ditherer.tiled_thresholds(5, 7) is first


class TestDithererLevels:
    """Tests for the N-level generalization."""

    def test_four_levels_values(self, bayer4, random_pixels):
        out = Ditherer(bayer4, levels=4).apply(random_pixels)
        assert set(np.unique(out[..., :3]).tolist()) <= {0, 85, 170, 255}

    def test_flat_value_on_a_level_is_stable(self, bayer4):
        pixels = np.full((4, 4, 4), 170, dtype=np.uint8)
        out = Ditherer(bayer4, levels=4).apply(pixels)
        assert np.all(out[..., :3] == 170)

    def test_levels_must_be_at_least_two(self, bayer4):
        with pytest.raises(ValueError):
            Ditherer(bayer4, levels=1)


class TestDithererValidation:

    def test_non_square_matrix(self):
        with pytest.raises(ValueError):
            Ditherer(np.zeros((2, 4)))

    def test_bad_matrix_size(self):
        with pytest.raises(MatrixSizeError):
            Ditherer(np.zeros((3, 3)))
