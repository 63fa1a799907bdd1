"""
Render Loop
===========

Cooperative scheduler driving the frame processor.

This module provides the RenderLoop class which:
    - Calls tick() once per frame slot at the target FPS
    - Pulls the current frame from the SourceSelector
    - Runs FrameProcessor.process_frame and blits the result
    - Pushes every rendered frame to subscriber FrameBuffers
    - Re-renders on demand when a parameter, source or image changes

Design Rules:
    - One logical thread: ticks and parameter updates interleave only at
      await points, so no locking is needed
    - A failing tick is logged, counted and skipped; it never stops the loop
    - tick() is independent of timing so it can be driven directly in tests
"""

import asyncio
import logging
import time
from typing import List, Optional, Set

from dither_cam.models.frame import Frame
from dither_cam.models.params import PipelineConfig
from dither_cam.processing.frame_processor import FrameProcessor
from dither_cam.render.buffer import FrameBuffer
from dither_cam.render.surface import DisplaySurface
from dither_cam.source.selector import SourceSelector


logger = logging.getLogger(__name__)


class RenderMetrics:
    """Metrics for RenderLoop observability."""

    __slots__ = (
        "ticks",
        "frames_rendered",
        "on_demand_renders",
        "idle_ticks",
        "frame_errors",
        "last_frame_id",
        "last_render_time",
    )

    def __init__(self) -> None:
        self.ticks: int = 0
        self.frames_rendered: int = 0
        self.on_demand_renders: int = 0
        self.idle_ticks: int = 0
        self.frame_errors: int = 0
        self.last_frame_id: int = -1
        self.last_render_time: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "ticks": self.ticks,
            "frames_rendered": self.frames_rendered,
            "on_demand_renders": self.on_demand_renders,
            "idle_ticks": self.idle_ticks,
            "frame_errors": self.frame_errors,
            "last_frame_id": self.last_frame_id,
            "last_render_time": self.last_render_time,
        }


class RenderLoop:
    """
    Frame-slot scheduler for the stylization pipeline.

    Attributes:
        config: Shared pipeline configuration, read at every tick
        selector: Active frame source
        processor: Frame processor
        surface: Display surface receiving every rendered frame
        target_fps: Ticks per second in run()
        metrics: Operational metrics

    Example:
        loop = RenderLoop(config, selector, processor, surface, target_fps=30)
        task = asyncio.create_task(loop.run())

        # Parameter change from the control surface
        config.update(hue=45)
        loop.request_render()

        # Later, stop gracefully
        await loop.stop()
        await task
    """

    def __init__(
        self,
        config: PipelineConfig,
        selector: SourceSelector,
        processor: FrameProcessor,
        surface: DisplaySurface,
        target_fps: float = 30.0,
        log_every_n_frames: int = 300,
    ) -> None:
        if target_fps <= 0:
            raise ValueError("target_fps must be positive")

        self.config = config
        self.selector = selector
        self.processor = processor
        self.surface = surface
        self.target_fps = target_fps
        self.log_every_n_frames = log_every_n_frames

        self.metrics = RenderMetrics()

        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()
        self._subscribers: Set[FrameBuffer] = set()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def frame_interval(self) -> float:
        """Seconds per frame slot."""
        return 1.0 / self.target_fps

    def tick(self) -> Optional[Frame]:
        """
        Render one frame from the active source.

        Returns:
            The rendered frame, or None when the source had nothing or
            the frame failed and was skipped
        """
        self.metrics.ticks += 1

        try:
            source_frame = self.selector.current_frame()
            if source_frame is None:
                self.metrics.idle_ticks += 1
                return None

            rendered = self.processor.process_frame(source_frame, self.config)
            self.surface.blit(rendered)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.metrics.frame_errors += 1
            logger.error(f"Render error, frame skipped: {e}")
            return None

        self.metrics.frames_rendered += 1
        self.metrics.last_frame_id = rendered.frame_id
        self.metrics.last_render_time = time.time()
        self._publish(rendered)

        if self.metrics.frames_rendered % self.log_every_n_frames == 0:
            logger.info(
                f"RenderLoop [frame {self.metrics.frames_rendered}]: "
                f"errors={self.metrics.frame_errors}, "
                f"idle={self.metrics.idle_ticks}, "
                f"subscribers={len(self._subscribers)}"
            )

        return rendered

    def request_render(self, clear: bool = False) -> Optional[Frame]:
        """
        Re-render immediately instead of waiting for the next slot.

        Args:
            clear: Clear the surface first (source switch or new upload)

        Returns:
            The rendered frame, or None
        """
        if clear:
            self.surface.clear()
        self.metrics.on_demand_renders += 1
        return self.tick()

    async def run(self) -> None:
        """
        Tick once per frame slot until stop() is called.
        """
        self._running = True
        self._stop_event.clear()
        logger.info(f"RenderLoop starting at {self.target_fps:g} fps")

        try:
            while self._running:
                started = time.perf_counter()
                self.tick()

                remaining = self.frame_interval - (time.perf_counter() - started)
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=max(remaining, 0.0),
                    )
                    # Stop event was set, exit
                    break
                except asyncio.TimeoutError:
                    # Next frame slot
                    pass
        finally:
            self._running = False
            logger.info("RenderLoop stopped")

    def request_stop(self) -> None:
        """Signal the run loop to exit (safe from signal handlers)."""
        self._running = False
        self._stop_event.set()

    async def stop(self) -> None:
        """Signal the run loop to exit."""
        logger.info("RenderLoop stopping...")
        self.request_stop()

    def subscribe(self, maxsize: int = 2) -> FrameBuffer:
        """Register a subscriber buffer receiving every rendered frame."""
        buffer = FrameBuffer(maxsize=maxsize)
        self._subscribers.add(buffer)
        return buffer

    def unsubscribe(self, buffer: FrameBuffer) -> None:
        self._subscribers.discard(buffer)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscriber_metrics(self) -> List[dict]:
        return [buffer.metrics() for buffer in self._subscribers]

    def _publish(self, frame: Frame) -> None:
        for buffer in self._subscribers:
            buffer.put(frame)
