"""
Capture Source
==============

Live frames from a capture device via OpenCV.

Contract:
    - open() suspends until the first frame is ready, or raises
      AcquisitionError (device missing, permission denied, no frames),
      then starts a background reader task
    - read() returns the latest frame without touching the device; after
      a failed grab the previous frame stays current
    - close() stops the reader and releases the device

Design Rules:
    - cv2.VideoCapture.read() blocks until the device delivers, so it only
      ever runs in a worker thread (asyncio.to_thread), never on the loop
    - Capture buffers are converted to RGBA Frames here and nowhere else
    - No processing happens in the capture layer
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional, Union

import cv2

from dither_cam.models.frame import Frame
from dither_cam.source.image_decoder import DecodeError, frame_from_capture


logger = logging.getLogger(__name__)


class AcquisitionError(RuntimeError):
    """Raised when the capture device is unavailable or denied."""
    pass


class CaptureSource:
    """
    Live capture source backed by cv2.VideoCapture.

    Attributes:
        device: Device index or stream URL passed to OpenCV
        is_open: Whether the device is acquired and produced a frame

    Example:
        capture = CaptureSource(device=0)
        await capture.open()
        frame = capture.read()
        await capture.close()
    """

    def __init__(
        self,
        device: Union[int, str] = 0,
        first_frame_timeout: float = 5.0,
        poll_interval: float = 0.05,
        capture_factory: Callable[[Union[int, str]], Any] = cv2.VideoCapture,
    ) -> None:
        """
        Initialize capture source.

        Args:
            device: Camera index or URL understood by cv2.VideoCapture
            first_frame_timeout: Seconds to wait for the first frame
            poll_interval: Seconds to back off after a failed grab
            capture_factory: Callable creating the capture object
        """
        self.device = device
        self.first_frame_timeout = first_frame_timeout
        self.poll_interval = poll_interval
        self._capture_factory = capture_factory

        self._capture: Optional[Any] = None
        self._latest: Optional[Frame] = None
        self._reader: Optional[asyncio.Task] = None
        self._stopping: bool = False
        self._frame_counter: int = 0
        self._read_failures: int = 0
        self._failure_streak: int = 0

    @property
    def is_open(self) -> bool:
        return self._capture is not None and self._latest is not None

    @property
    def frames_captured(self) -> int:
        return self._frame_counter

    async def open(self) -> Frame:
        """
        Acquire the device, wait for its first frame and start reading.

        Returns:
            The first captured frame

        Raises:
            AcquisitionError: Device cannot be opened or stays silent
        """
        logger.info(f"Opening capture device: {self.device!r}")
        try:
            capture = await asyncio.to_thread(self._capture_factory, self.device)
        except cv2.error as e:
            raise AcquisitionError(f"Cannot open capture device {self.device!r}: {e}") from e

        if capture is None:
            raise AcquisitionError(f"Capture device {self.device!r} unavailable")
        if not capture.isOpened():
            capture.release()
            raise AcquisitionError(f"Capture device {self.device!r} unavailable or access denied")

        self._capture = capture
        self._stopping = False
        deadline = time.monotonic() + self.first_frame_timeout

        while True:
            frame = await asyncio.to_thread(self._grab)
            if frame is not None:
                break
            if time.monotonic() >= deadline:
                await self.close()
                raise AcquisitionError(
                    f"No frame from capture device {self.device!r} "
                    f"within {self.first_frame_timeout:.1f}s"
                )
            await asyncio.sleep(self.poll_interval)

        self._reader = asyncio.create_task(self._read_loop(), name="capture_reader")
        logger.info(
            f"Capture device {self.device!r} ready: "
            f"{frame.width}x{frame.height}"
        )
        return frame

    def read(self) -> Optional[Frame]:
        """
        Return the latest frame.

        Never blocks. None only before the device produced anything or
        after close().
        """
        return self._latest

    async def close(self) -> None:
        """Stop the reader and release the capture device."""
        self._stopping = True
        if self._reader is not None:
            # The reader exits after its in-flight grab returns
            await self._reader
            self._reader = None

        if self._capture is not None:
            try:
                self._capture.release()
            except cv2.error as e:
                logger.warning(f"Error releasing capture device: {e}")
            logger.info(f"Capture device {self.device!r} released")
        self._capture = None
        self._latest = None

    async def _read_loop(self) -> None:
        while not self._stopping:
            frame = await asyncio.to_thread(self._grab)
            if frame is None:
                await asyncio.sleep(self.poll_interval)

    def _grab(self) -> Optional[Frame]:
        """Blocking grab; runs in a worker thread."""
        try:
            ok, bgr = self._capture.read()
        except cv2.error as e:
            ok, bgr = False, None
            logger.warning(f"Capture read raised: {e}")

        if not ok or bgr is None:
            self._record_failure("no frame")
            return None

        try:
            frame = frame_from_capture(bgr, frame_id=self._frame_counter + 1)
        except (DecodeError, ValueError) as e:
            self._record_failure(f"unusable buffer: {e}")
            return None

        self._frame_counter += 1
        self._failure_streak = 0
        self._latest = frame
        return frame

    def _record_failure(self, reason: str) -> None:
        self._read_failures += 1
        self._failure_streak += 1
        if self._latest is not None and self._failure_streak == 1:
            logger.warning(
                f"Capture read failed ({reason}), holding frame "
                f"{self._latest.frame_id} (failures: {self._read_failures})"
            )

    def get_metrics(self) -> dict:
        return {
            "device": str(self.device),
            "open": self.is_open,
            "frames_captured": self._frame_counter,
            "read_failures": self._read_failures,
        }
