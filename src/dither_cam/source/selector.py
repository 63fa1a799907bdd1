"""
Source Selector
===============

Chooses between the live capture source and the static image source
according to PipelineConfig.source_mode.

Fallback Rule:
    If the capture device cannot be acquired, the failure is logged and
    the selector drops to STATIC_IMAGE mode, where the system waits for an
    uploaded still. The pipeline stays usable either way.
"""

import logging
from typing import Optional

from dither_cam.models.frame import Frame
from dither_cam.models.params import PipelineConfig, SourceMode
from dither_cam.source.capture import AcquisitionError, CaptureSource
from dither_cam.source.static import StaticImageSource


logger = logging.getLogger(__name__)


class SourceSelector:
    """
    Mode-driven frame source.

    The mode is stored on the shared PipelineConfig so the control surface
    and the render loop always agree on it.

    Example:
        selector = SourceSelector(config, static=StaticImageSource(), capture=capture)
        await selector.start()
        frame = selector.current_frame()
    """

    def __init__(
        self,
        config: PipelineConfig,
        static: StaticImageSource,
        capture: Optional[CaptureSource] = None,
    ) -> None:
        self.config = config
        self.static = static
        self.capture = capture
        self._acquisition_errors: int = 0
        self._last_acquisition_error: Optional[str] = None

    @property
    def mode(self) -> SourceMode:
        return self.config.source_mode

    @property
    def capture_available(self) -> bool:
        return self.capture is not None and self.capture.is_open

    async def start(self) -> None:
        """Acquire the capture device if the config starts in live mode."""
        if self.mode == SourceMode.LIVE_CAPTURE:
            await self._acquire_or_fallback()

    async def switch(self, mode: SourceMode) -> SourceMode:
        """
        Switch the active source.

        Args:
            mode: Requested source mode

        Returns:
            The mode actually in effect

        Raises:
            AcquisitionError: Live mode requested but the device is
                unavailable; the selector is left in STATIC_IMAGE mode
        """
        mode = SourceMode(mode)
        if mode == SourceMode.LIVE_CAPTURE:
            if not await self._acquire_or_fallback():
                raise AcquisitionError(
                    self._last_acquisition_error or "Capture device unavailable"
                )
        else:
            self.config.source_mode = SourceMode.STATIC_IMAGE

        logger.info(f"Source mode: {self.mode.value}")
        return self.mode

    def current_frame(self) -> Optional[Frame]:
        """
        Frame from the active source.

        Returns:
            Latest frame, or None when the active source has nothing yet
        """
        if self.mode == SourceMode.LIVE_CAPTURE:
            return self.capture.read() if self.capture is not None else None
        return self.static.read()

    async def close(self) -> None:
        """Release the capture device, if any."""
        if self.capture is not None:
            await self.capture.close()

    async def _acquire_or_fallback(self) -> bool:
        if self.capture is None:
            self._record_failure("No capture device configured")
            return False

        if not self.capture.is_open:
            try:
                await self.capture.open()
            except AcquisitionError as e:
                self._record_failure(str(e))
                return False

        self.config.source_mode = SourceMode.LIVE_CAPTURE
        return True

    def _record_failure(self, message: str) -> None:
        self._acquisition_errors += 1
        self._last_acquisition_error = message
        self.config.source_mode = SourceMode.STATIC_IMAGE
        logger.error(f"Capture unavailable, waiting for a static image: {message}")

    def get_metrics(self) -> dict:
        metrics = {
            "source_mode": self.mode.value,
            "capture_available": self.capture_available,
            "acquisition_errors": self._acquisition_errors,
            "last_acquisition_error": self._last_acquisition_error,
            "static": self.static.get_metrics(),
        }
        if self.capture is not None:
            metrics["capture"] = self.capture.get_metrics()
        return metrics
