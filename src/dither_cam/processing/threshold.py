"""
Threshold Matrix Generator
==========================

Recursive Bayer matrix construction for ordered dithering.

Recurrence:
    M(2)  = [[0, 2],
             [3, 1]]
    M(2n) = [[4*M(n) + 0, 4*M(n) + 2],
             [4*M(n) + 3, 4*M(n) + 1]]

Every rank in [0, n^2 - 1] appears exactly once. The normalized matrix
divides ranks by n^2, giving thresholds in [0, 1).

The matrix depends only on its size, so results are memoized and handed
out read-only.
"""

import logging
from functools import lru_cache

import numpy as np


logger = logging.getLogger(__name__)


BASE_MATRIX = np.array([[0, 2], [3, 1]], dtype=np.int64)


class MatrixSizeError(ValueError):
    """Raised when a threshold matrix size is not a power of two >= 2."""
    pass


def validate_matrix_size(size: int) -> int:
    """
    Check that size is an integer power of two and at least 2.

    Returns:
        The size, unchanged

    Raises:
        MatrixSizeError: If size is invalid
    """
    if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
        raise MatrixSizeError(f"Matrix size must be an integer, got {size!r}")
    size = int(size)
    if size < 2:
        raise MatrixSizeError(f"Matrix size must be >= 2, got {size}")
    if size & (size - 1):
        raise MatrixSizeError(f"Matrix size must be a power of two, got {size}")
    return size


def bayer_ranks(size: int) -> np.ndarray:
    """
    Build the integer rank matrix of the given size.

    Args:
        size: Side length, power of two >= 2

    Returns:
        (size, size) int64 array, a permutation of 0..size^2-1

    Raises:
        MatrixSizeError: If size is invalid
    """
    size = validate_matrix_size(size)
    if size == 2:
        return BASE_MATRIX.copy()

    smaller = bayer_ranks(size // 2)
    return np.block([
        [4 * smaller + 0, 4 * smaller + 2],
        [4 * smaller + 3, 4 * smaller + 1],
    ])


@lru_cache(maxsize=None)
def _normalized(size: int) -> np.ndarray:
    matrix = bayer_ranks(size).astype(np.float64) / float(size * size)
    matrix.setflags(write=False)
    logger.debug(f"Generated {size}x{size} threshold matrix")
    return matrix


def generate_threshold_matrix(size: int = 4) -> np.ndarray:
    """
    Generate the normalized ordered-dither threshold matrix.

    Args:
        size: Side length, power of two >= 2 (typically 4)

    Returns:
        Read-only (size, size) float64 array with entries rank / size^2

    Raises:
        MatrixSizeError: If size is invalid
    """
    return _normalized(validate_matrix_size(size))
