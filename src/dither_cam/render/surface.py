"""
Display Surface
===============

Fixed-size writable RGBA surface that receives every rendered frame.

Design Rules:
    - Size is fixed at construction
    - blit() fully overwrites the surface; partial draws do not exist
    - clear() resets to transparent black so no stale frame survives a
      source switch
"""

import logging
from typing import Optional

import numpy as np

from dither_cam.models.frame import Frame
from dither_cam.source.image_decoder import encode_png


logger = logging.getLogger(__name__)


class DisplaySurface:
    """
    In-memory display surface.

    Attributes:
        width: Surface width in pixels
        height: Surface height in pixels
        has_content: Whether a frame has been blitted since the last clear
        version: Incremented on every blit and clear
    """

    def __init__(self, width: int, height: int) -> None:
        if width < 1 or height < 1:
            raise ValueError(f"Surface must be at least 1x1, got {width}x{height}")

        self.width = int(width)
        self.height = int(height)
        self._pixels = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        self._frame_id: int = 0
        self._timestamp: float = 0.0
        self._has_content: bool = False
        self._version: int = 0

    @property
    def has_content(self) -> bool:
        return self._has_content

    @property
    def version(self) -> int:
        return self._version

    def clear(self) -> None:
        """Reset every pixel to transparent black."""
        self._pixels.fill(0)
        self._has_content = False
        self._version += 1

    def blit(self, frame: Frame) -> None:
        """
        Replace the surface contents with a display-size frame.

        Raises:
            ValueError: If the frame size differs from the surface
        """
        if frame.width != self.width or frame.height != self.height:
            raise ValueError(
                f"Frame {frame.width}x{frame.height} does not match "
                f"surface {self.width}x{self.height}"
            )
        np.copyto(self._pixels, frame.pixels)
        self._frame_id = frame.frame_id
        self._timestamp = frame.timestamp
        self._has_content = True
        self._version += 1

    def snapshot(self) -> Optional[Frame]:
        """Copy of the current contents, or None if nothing is drawn."""
        if not self._has_content:
            return None
        return Frame(
            pixels=self._pixels.copy(),
            frame_id=self._frame_id,
            timestamp=self._timestamp,
        )

    def encode_png(self) -> Optional[bytes]:
        """Current contents as PNG bytes, or None if nothing is drawn."""
        frame = self.snapshot()
        return encode_png(frame) if frame is not None else None
