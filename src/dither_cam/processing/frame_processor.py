"""
Frame Processor
===============

Runs the full stylization pipeline for one frame.

Pipeline:
    source frame
      -> downsample to floor(display / resolution), nearest-neighbour
      -> ColorAdjuster.apply        (float, unclamped)
      -> clamp_to_uint8             (write-back to an 8-bit buffer)
         (both skipped when the adjustments are the identity)
      -> Ditherer.apply             (0/255 per channel, alpha 255)
      -> upsample to display size, nearest-neighbour

The processor holds no per-frame state beyond counters. Parameters are
read from the PipelineConfig passed into every call, so updates made
between ticks take effect on the next call.
"""

import logging
import time
from typing import Optional, Tuple

import numpy as np

from dither_cam.models.frame import Frame
from dither_cam.models.params import PipelineConfig
from dither_cam.processing.color import ColorAdjuster, clamp_to_uint8
from dither_cam.processing.dither import Ditherer
from dither_cam.processing.resample import downsample, upsample, working_size


logger = logging.getLogger(__name__)


class FrameProcessor:
    """
    Orchestrates downsample, adjust, dither and upsample.

    Attributes:
        display_size: Output (width, height)
        ditherer: Ditherer bound to the startup threshold matrix
        adjuster: Colour adjuster

    Example:
        processor = FrameProcessor(display_size=(640, 480), matrix=matrix)
        out = processor.process_frame(frame, config)
    """

    def __init__(
        self,
        display_size: Tuple[int, int],
        matrix: np.ndarray,
        levels: int = 2,
        log_every_n_frames: int = 300,
    ) -> None:
        """
        Initialize frame processor.

        Args:
            display_size: Display (width, height), each >= 1
            matrix: Normalized threshold matrix
            levels: Output levels per channel (2 = binary)
            log_every_n_frames: Log timing every N frames
        """
        width, height = display_size
        if width < 1 or height < 1:
            raise ValueError(f"display_size must be at least 1x1, got {display_size}")

        self.display_size = (int(width), int(height))
        self.adjuster = ColorAdjuster()
        self.ditherer = Ditherer(matrix, levels=levels)
        self.log_every_n_frames = log_every_n_frames

        self._frames_processed: int = 0
        self._last_working_size: Optional[Tuple[int, int]] = None
        self._last_duration_ms: float = 0.0

        logger.info(
            f"FrameProcessor initialized: display={width}x{height}, "
            f"matrix={self.ditherer.size}x{self.ditherer.size}"
        )

    def working_size(self, resolution: float) -> Tuple[int, int]:
        """Working buffer size for the given divisor."""
        return working_size(self.display_size[0], self.display_size[1], resolution)

    def process_pixels(self, pixels: np.ndarray, config: PipelineConfig) -> np.ndarray:
        """
        Run the pipeline on a raw RGBA buffer.

        Args:
            pixels: Source (H, W, 4) uint8 buffer of any size
            config: Pipeline configuration read at call time

        Returns:
            Display-size (H, W, 4) uint8 buffer
        """
        size = self.working_size(config.resolution)
        self._last_working_size = size

        small = downsample(pixels, size)
        if not config.adjustments.is_identity:
            small = clamp_to_uint8(self.adjuster.apply(small, config.adjustments))
        dithered = self.ditherer.apply(small)
        return upsample(dithered, self.display_size)

    def process_frame(self, source: Frame, config: PipelineConfig) -> Frame:
        """
        Stylize one frame for display.

        Args:
            source: Frame from the active source
            config: Pipeline configuration read at call time

        Returns:
            Display-size Frame carrying the source frame_id and timestamp
        """
        start = time.perf_counter()
        pixels = self.process_pixels(source.pixels, config)
        self._last_duration_ms = (time.perf_counter() - start) * 1000.0
        self._frames_processed += 1

        if self._frames_processed % self.log_every_n_frames == 0:
            logger.info(
                f"FrameProcessor [frame {self._frames_processed}]: "
                f"working={self._last_working_size}, "
                f"took={self._last_duration_ms:.2f}ms"
            )

        return Frame(
            pixels=pixels,
            frame_id=source.frame_id,
            timestamp=source.timestamp,
        )

    @property
    def frames_processed(self) -> int:
        """Number of frames processed."""
        return self._frames_processed

    def get_metrics(self) -> dict:
        """Get processor metrics for observability."""
        return {
            "frames_processed": self._frames_processed,
            "display_size": list(self.display_size),
            "last_working_size": list(self._last_working_size) if self._last_working_size else None,
            "last_duration_ms": round(self._last_duration_ms, 3),
            "matrix_size": self.ditherer.size,
            "levels": self.ditherer.levels,
        }
