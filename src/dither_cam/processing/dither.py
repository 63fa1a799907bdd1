"""
Ordered Dithering
=================

Quantizes every colour channel against a tiled threshold matrix.

For pixel (x, y) and each of R, G, B independently:

    threshold = matrix[y mod N][x mod N] * 255
    out = 255 if value > threshold else 0

Channels share the same threshold cell but are compared independently,
so a pixel can land on any of the eight RGB corners. Correlated (luma)
thresholding is NOT done here; independent thresholding is the intended
look and its chromatic noise is part of the style.

The N-level generalization spreads L evenly spaced output values over
[0, 255] and uses the matrix as the rounding offset:

    level = floor(value / 255 * (L - 1) + threshold_normalized)

L = 2 always uses the binary rule above.
"""

import logging
from typing import Dict, Tuple

import numpy as np

from dither_cam.processing.threshold import validate_matrix_size


logger = logging.getLogger(__name__)


OPAQUE = 255


class Ditherer:
    """
    Ordered (Bayer) ditherer.

    Attributes:
        matrix: Normalized (N, N) threshold matrix
        levels: Output levels per channel (2 = binary)

    Example:
        ditherer = Ditherer(generate_threshold_matrix(4))
        out = ditherer.apply(pixels)  # values in {0, 255}, alpha 255
    """

    def __init__(self, matrix: np.ndarray, levels: int = 2) -> None:
        """
        Initialize ditherer.

        Args:
            matrix: Square normalized threshold matrix, side a power of two
            levels: Output levels per channel, >= 2

        Raises:
            MatrixSizeError: If the matrix side is invalid
            ValueError: If the matrix is not square or levels < 2
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise ValueError(f"Threshold matrix must be square, got {matrix.shape}")
        validate_matrix_size(matrix.shape[0])
        if levels < 2:
            raise ValueError("levels must be >= 2")

        self.matrix = matrix
        self.levels = int(levels)
        self._tile_cache: Dict[Tuple[int, int], np.ndarray] = {}

        logger.info(
            f"Ditherer initialized: matrix={matrix.shape[0]}x{matrix.shape[1]}, "
            f"levels={self.levels}"
        )

    @property
    def size(self) -> int:
        """Matrix side length N."""
        return int(self.matrix.shape[0])

    def tiled_thresholds(self, height: int, width: int) -> np.ndarray:
        """
        Normalized matrix tiled to cover (height, width).

        Cached per shape; the working size only changes when the
        resolution divisor does.
        """
        key = (height, width)
        tiled = self._tile_cache.get(key)
        if tiled is None:
            n = self.size
            reps_y = (height + n - 1) // n
            reps_x = (width + n - 1) // n
            tiled = np.tile(self.matrix, (reps_y, reps_x))[:height, :width]
            tiled.setflags(write=False)
            self._tile_cache[key] = tiled
        return tiled

    def apply(self, pixels: np.ndarray) -> np.ndarray:
        """
        Dither an RGBA buffer.

        Args:
            pixels: (H, W, 4) buffer, uint8 or float (out-of-range tolerated)

        Returns:
            New (H, W, 4) uint8 buffer with quantized RGB and alpha 255
        """
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) buffer, got {pixels.shape}")

        height, width = pixels.shape[:2]
        thresholds = self.tiled_thresholds(height, width)[..., np.newaxis]
        rgb = pixels[..., :3].astype(np.float64, copy=False)

        out = np.empty((height, width, 4), dtype=np.uint8)
        if self.levels == 2:
            out[..., :3] = np.where(rgb > thresholds * 255.0, 255, 0)
        else:
            steps = self.levels - 1
            level = np.floor(rgb * steps / 255.0 + thresholds)
            level = np.clip(level, 0, steps)
            out[..., :3] = np.rint(level * (255.0 / steps)).astype(np.uint8)
        out[..., 3] = OPAQUE
        return out
