"""
Colour Adjustment
=================

Brightness, contrast, saturation and hue rotation over an RGBA buffer.

Per-pixel sequence (order is significant):
    1. Brightness:  c = c * brightness
    2. Contrast:    c = (c - 128) * contrast + 128
    3. Saturation:  avg = (R + G + B) / 3;  c = avg + (c - avg) * saturation
    4. Hue:         [R G B] = M(angle) @ [R G B],  angle = hue * pi / 180

Hue Rotation Matrix:
    Rotation of the RGB vector around the gray (1, 1, 1) axis.

        d = cos + (1 - cos) / 3
        a = (1 - cos) / 3 - sqrt(1/3) * sin
        b = (1 - cos) / 3 + sqrt(1/3) * sin

        M = [[d, a, b],
             [b, d, a],
             [a, b, d]]

No clamping happens here. Results may leave [0, 255]; callers clamp on
write-back with clamp_to_uint8(). Alpha is never touched.
"""

import logging
import math
from functools import lru_cache

import numpy as np

from dither_cam.models.params import AdjustmentParameters


logger = logging.getLogger(__name__)


MID_GRAY = 128.0
SQRT_THIRD = math.sqrt(1.0 / 3.0)


@lru_cache(maxsize=64)
def _rotation(hue_degrees: float) -> np.ndarray:
    angle = hue_degrees * math.pi / 180.0
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)

    d = cos_a + (1.0 - cos_a) / 3.0
    a = (1.0 - cos_a) / 3.0 - SQRT_THIRD * sin_a
    b = (1.0 - cos_a) / 3.0 + SQRT_THIRD * sin_a

    matrix = np.array([
        [d, a, b],
        [b, d, a],
        [a, b, d],
    ], dtype=np.float64)
    matrix.setflags(write=False)
    return matrix


def hue_rotation_matrix(hue_degrees: float) -> np.ndarray:
    """
    3x3 hue rotation matrix for the given angle in degrees.

    Cached per angle; the returned array is read-only.
    """
    return _rotation(float(hue_degrees))


def clamp_to_uint8(pixels: np.ndarray) -> np.ndarray:
    """
    Write-back conversion from float intermediates to a storable buffer.

    Clips to [0, 255] and rounds half to even, the same conversion a
    clamped 8-bit canvas buffer performs on assignment.
    """
    return np.rint(np.clip(pixels, 0.0, 255.0)).astype(np.uint8)


class ColorAdjuster:
    """
    Applies AdjustmentParameters to RGBA pixel buffers.

    Stateless apart from the cached hue matrices, so one instance can be
    shared across ticks.

    Example:
        adjuster = ColorAdjuster()
        adjusted = adjuster.apply(frame.pixels, AdjustmentParameters(hue=90))
        pixels = clamp_to_uint8(adjusted)
    """

    def apply(
        self,
        pixels: np.ndarray,
        params: AdjustmentParameters,
    ) -> np.ndarray:
        """
        Adjust colours of an RGBA buffer.

        Args:
            pixels: (H, W, 4) buffer, any numeric dtype
            params: Adjustment parameters read at call time

        Returns:
            New (H, W, 4) float64 buffer; values may exceed [0, 255].
            The input buffer is never modified.
        """
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) buffer, got {pixels.shape}")

        out = pixels.astype(np.float64, copy=True)
        rgb = out[..., :3]

        # Brightness
        if params.brightness != 1.0:
            rgb *= params.brightness

        # Contrast around mid-gray
        if params.contrast != 1.0:
            rgb -= MID_GRAY
            rgb *= params.contrast
            rgb += MID_GRAY

        # Saturation relative to per-pixel average
        if params.saturation != 1.0:
            avg = rgb.mean(axis=2, keepdims=True)
            rgb -= avg
            rgb *= params.saturation
            rgb += avg

        # Hue rotation around the gray axis
        if params.hue != 0.0:
            matrix = hue_rotation_matrix(params.hue)
            out[..., :3] = rgb @ matrix.T

        return out
