"""
Subscriber Frame Buffer
=======================

Per-subscriber mailbox between the render loop and one stream client.

The render loop publishes every rendered frame to each subscriber. A
client that falls behind loses its oldest pending frames; the loop itself
never waits on a client.

Design Rules:
    - Bounded; overflow evicts the oldest pending frame
    - put() is synchronous and never blocks the render loop
    - Frames are passed through untouched
"""

import asyncio
import logging
from typing import Optional

from dither_cam.models.frame import Frame


logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    Bounded drop-oldest frame mailbox.

    Attributes:
        maxsize: Pending frames kept for the subscriber
        dropped_count: Frames evicted because the subscriber was slow
        total_put: Frames published to this subscriber

    Example:
        buffer = render_loop.subscribe(maxsize=2)
        frame = await buffer.get(timeout=1.0)
    """

    def __init__(self, maxsize: int = 2) -> None:
        if maxsize < 1:
            raise ValueError(f"maxsize must be >= 1, got {maxsize}")

        self.maxsize = maxsize
        self.dropped_count: int = 0
        self.total_put: int = 0
        self._pending: asyncio.Queue[Frame] = asyncio.Queue(maxsize=maxsize)

    @property
    def size(self) -> int:
        """Frames waiting to be read."""
        return self._pending.qsize()

    def put(self, frame: Frame) -> bool:
        """
        Publish a frame to the subscriber.

        Returns:
            False if an older pending frame had to be evicted
        """
        self.total_put += 1
        evicted = self._pending.full() and self.get_nowait() is not None
        if evicted:
            self.dropped_count += 1
            logger.debug(
                f"Slow subscriber, evicted a pending frame "
                f"(dropped so far: {self.dropped_count})"
            )
        self._pending.put_nowait(frame)
        return not evicted

    async def get(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """
        Wait for the next frame.

        Args:
            timeout: Seconds to wait, None to wait indefinitely

        Returns:
            The oldest pending frame, or None on timeout
        """
        if timeout is None:
            return await self._pending.get()
        try:
            return await asyncio.wait_for(self._pending.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def get_nowait(self) -> Optional[Frame]:
        """Oldest pending frame, or None if nothing is waiting."""
        try:
            return self._pending.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def clear(self) -> int:
        """Discard pending frames and return how many were discarded."""
        discarded = 0
        while self.get_nowait() is not None:
            discarded += 1
        return discarded

    def metrics(self) -> dict:
        return {
            "pending": self.size,
            "maxsize": self.maxsize,
            "dropped_count": self.dropped_count,
            "total_put": self.total_put,
        }
