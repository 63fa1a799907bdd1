"""
Static Image Source
===================

Holds the most recently uploaded still image.

The image is decoded once on upload and returned on every tick until it is
replaced. A failed upload leaves the previously held image in place.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from dither_cam.models.frame import Frame
from dither_cam.source.image_decoder import (
    DecodeError,
    decode_image_base64,
    decode_image_bytes,
    decode_image_file,
)


logger = logging.getLogger(__name__)


class StaticImageSource:
    """
    Frame source backed by a single decoded still.

    Attributes:
        loaded: Whether an image is currently held
        uploads: Number of successful loads
    """

    def __init__(self) -> None:
        self._frame: Optional[Frame] = None
        self._uploads: int = 0
        self._decode_errors: int = 0

    @property
    def loaded(self) -> bool:
        return self._frame is not None

    @property
    def uploads(self) -> int:
        return self._uploads

    def read(self) -> Optional[Frame]:
        """Return the held still, or None if nothing was loaded yet."""
        return self._frame

    def load_frame(self, frame: Frame) -> Frame:
        """Replace the held still with an already decoded frame."""
        self._uploads += 1
        self._frame = Frame(
            pixels=frame.pixels,
            frame_id=self._uploads,
            timestamp=frame.timestamp,
        )
        logger.info(
            f"Static image loaded: {frame.width}x{frame.height} "
            f"(upload {self._uploads})"
        )
        return self._frame

    def load_bytes(self, data: bytes) -> Frame:
        """
        Decode and hold an encoded image.

        Raises:
            DecodeError: Image invalid; the held image is unchanged
        """
        return self.load_frame(self._decode(decode_image_bytes, data))

    def load_base64(self, text: str) -> Frame:
        """
        Decode and hold a base64-encoded image.

        Raises:
            DecodeError: Image invalid; the held image is unchanged
        """
        return self.load_frame(self._decode(decode_image_base64, text))

    def load_path(self, path: Union[str, Path]) -> Frame:
        """
        Decode and hold an image file from disk.

        Raises:
            DecodeError: Image invalid; the held image is unchanged
        """
        return self.load_frame(self._decode(decode_image_file, path))

    def _decode(self, decoder, payload) -> Frame:
        try:
            return decoder(payload)
        except DecodeError as e:
            self._decode_errors += 1
            logger.warning(f"Rejected image upload: {e}")
            raise

    def get_metrics(self) -> dict:
        return {
            "loaded": self.loaded,
            "uploads": self._uploads,
            "decode_errors": self._decode_errors,
        }
