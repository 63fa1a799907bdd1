"""
Resampling
==========

Working-size computation and nearest-neighbour scaling.

Both directions use OpenCV nearest-neighbour interpolation. Smoothing is
never applied: the blocky look after upsampling is the point of the
pixelation effect.
"""

import logging
import math
from typing import Tuple

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class DegenerateResolutionError(ValueError):
    """
    Raised for resolution inputs that cannot describe a working buffer.

    A divisor large enough to floor a dimension to zero is NOT an error;
    that case is clamped to 1.
    """
    pass


def working_size(
    display_width: int,
    display_height: int,
    resolution: float,
) -> Tuple[int, int]:
    """
    Compute the downscaled working size.

    Args:
        display_width: Display surface width (>= 1)
        display_height: Display surface height (>= 1)
        resolution: Downsampling divisor (>= 1)

    Returns:
        (width, height), each floor(display / resolution) clamped to >= 1

    Raises:
        DegenerateResolutionError: If the display size or divisor is invalid
    """
    if display_width < 1 or display_height < 1:
        raise DegenerateResolutionError(
            f"Display size must be at least 1x1, got {display_width}x{display_height}"
        )
    if not math.isfinite(resolution) or resolution < 1:
        raise DegenerateResolutionError(
            f"Resolution divisor must be a finite number >= 1, got {resolution}"
        )

    width = math.floor(display_width / resolution)
    height = math.floor(display_height / resolution)

    if width < 1 or height < 1:
        logger.debug(
            f"Resolution {resolution} floors {display_width}x{display_height} "
            f"to {width}x{height}, clamping to 1"
        )
        width = max(1, width)
        height = max(1, height)

    return width, height


def resize_nearest(pixels: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """
    Nearest-neighbour resize.

    Args:
        pixels: (H, W, C) buffer
        size: Target (width, height)

    Returns:
        Resized buffer of the same dtype; the input itself when the size
        already matches.
    """
    width, height = size
    if pixels.shape[1] == width and pixels.shape[0] == height:
        return pixels
    return cv2.resize(
        np.ascontiguousarray(pixels),
        (width, height),
        interpolation=cv2.INTER_NEAREST,
    )


def downsample(pixels: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Scale a source buffer down (or to any size) to the working size."""
    return resize_nearest(pixels, size)


def upsample(pixels: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Scale the processed working buffer back up to display size."""
    return resize_nearest(pixels, size)
