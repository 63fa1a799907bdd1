"""
Frame Data Model
=================

Internal frame representation for the stylization pipeline.

A Frame wraps a single RGBA pixel buffer together with the metadata of the
source it came from. It is the only pixel format passed between sources,
the frame processor and the display surface.

Design Rules:
    - Pixels are always (H, W, 4) uint8 in RGBA channel order
    - Float intermediates never leave the processing package
    - Frames are created fresh every tick and never retained as history
"""

from dataclasses import dataclass, field

import numpy as np


CHANNELS = 4


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Validated RGBA frame.

    Immutable (frozen) so a frame handed to the display surface cannot be
    rebound by the producer afterwards.

    Attributes:
        pixels: Pixel buffer, shape (height, width, 4), dtype uint8
        frame_id: Monotonically increasing counter assigned by the source
        timestamp: UNIX timestamp at which the source produced the frame
    """

    pixels: np.ndarray
    frame_id: int = 0
    timestamp: float = field(default=0.0)

    def __post_init__(self) -> None:
        """Validate buffer shape and dtype."""
        if not isinstance(self.pixels, np.ndarray):
            raise TypeError(f"pixels must be a numpy array, got {type(self.pixels)!r}")
        if self.pixels.ndim != 3 or self.pixels.shape[2] != CHANNELS:
            raise ValueError(f"pixels must have shape (H, W, 4), got {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"pixels must be uint8, got {self.pixels.dtype}")
        if self.pixels.shape[0] < 1 or self.pixels.shape[1] < 1:
            raise ValueError(f"frame must be at least 1x1, got {self.pixels.shape[:2]}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """(width, height), the order OpenCV resize expects."""
        return self.width, self.height

    @classmethod
    def filled(
        cls,
        width: int,
        height: int,
        rgba: tuple[int, int, int, int],
        frame_id: int = 0,
        timestamp: float = 0.0,
    ) -> "Frame":
        """Build a flat-colour frame."""
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[...] = np.asarray(rgba, dtype=np.uint8)
        return cls(pixels=pixels, frame_id=frame_id, timestamp=timestamp)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel buffer."""
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"size={self.width}x{self.height}, "
            f"timestamp={self.timestamp:.3f})"
        )
