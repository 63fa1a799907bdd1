"""
Threshold Matrix Tests
======================
"""

import numpy as np
import pytest

from dither_cam.processing.threshold import (
    MatrixSizeError,
    bayer_ranks,
    generate_threshold_matrix,
    validate_matrix_size,
)


class TestBayerRanks:
    """Tests for the integer rank construction."""

    def test_base_case(self):
        assert bayer_ranks(2).tolist() == [[0, 2], [3, 1]]

    def test_canonical_4x4(self):
        assert bayer_ranks(4).tolist() == [
            [0, 8, 2, 10],
            [12, 4, 14, 6],
            [3, 11, 1, 9],
            [15, 7, 13, 5],
        ]

    @pytest.mark.parametrize("size", [2, 4, 8, 16])
    def test_is_permutation(self, size):
        ranks = bayer_ranks(size)
        assert ranks.shape == (size, size)
        assert sorted(ranks.ravel().tolist()) == list(range(size * size))

    def test_quadrant_recurrence(self):
        smaller = bayer_ranks(4)
        full = bayer_ranks(8)
        assert np.array_equal(full[:4, :4], 4 * smaller)
        assert np.array_equal(full[:4, 4:], 4 * smaller + 2)
        assert np.array_equal(full[4:, :4], 4 * smaller + 3)
        assert np.array_equal(full[4:, 4:], 4 * smaller + 1)


class TestGenerateThresholdMatrix:
    """Tests for the normalized, memoized matrix."""

    @pytest.mark.parametrize("size", [2, 4, 8, 16])
    def test_normalized_range(self, size):
        matrix = generate_threshold_matrix(size)
        assert matrix.min() == 0.0
        assert matrix.max() < 1.0
        assert np.array_equal(matrix * size * size, bayer_ranks(size))

    def test_default_size_is_4(self):
        assert generate_threshold_matrix().shape == (4, 4)

    def test_memoized(self):
        assert generate_threshold_matrix(8) is generate_threshold_matrix(8)

    def test_read_only(self):
        matrix = generate_threshold_matrix(4)
        with pytest.raises(ValueError):
            matrix[0, 0] = 0.5


class TestMatrixSizeValidation:
    """Invalid sizes are rejected with MatrixSizeError."""

    @pytest.mark.parametrize("size", [0, 1, 3, 6, 12, -4])
    def test_invalid_sizes(self, size):
        with pytest.raises(MatrixSizeError):
            generate_threshold_matrix(size)

    @pytest.mark.parametrize("size", [4.0, "4", True, None])
    def test_non_integer_sizes(self, size):
        with pytest.raises(MatrixSizeError):
            validate_matrix_size(size)

    def test_is_value_error(self):
        assert issubclass(MatrixSizeError, ValueError)

    def test_numpy_integer_accepted(self):
        assert validate_matrix_size(np.int64(8)) == 8
