"""
Processing Module
=================

The per-frame pixel pipeline.

This module provides:
    - Threshold matrix generation (recursive Bayer construction)
    - Colour adjustment (brightness, contrast, saturation, hue rotation)
    - Ordered dithering (tiled matrix, per-channel thresholds)
    - Nearest-neighbour resampling
    - FrameProcessor orchestrating all of the above

Pure numpy/OpenCV; no I/O, no event loop.
"""

from dither_cam.processing.threshold import (
    MatrixSizeError,
    bayer_ranks,
    generate_threshold_matrix,
    validate_matrix_size,
)
from dither_cam.processing.color import (
    ColorAdjuster,
    clamp_to_uint8,
    hue_rotation_matrix,
)
from dither_cam.processing.dither import Ditherer
from dither_cam.processing.resample import (
    DegenerateResolutionError,
    downsample,
    upsample,
    working_size,
)
from dither_cam.processing.frame_processor import FrameProcessor

__all__ = [
    # Threshold matrix
    "MatrixSizeError",
    "bayer_ranks",
    "generate_threshold_matrix",
    "validate_matrix_size",
    # Colour
    "ColorAdjuster",
    "clamp_to_uint8",
    "hue_rotation_matrix",
    # Dithering
    "Ditherer",
    # Resampling
    "DegenerateResolutionError",
    "downsample",
    "upsample",
    "working_size",
    # Orchestration
    "FrameProcessor",
]
