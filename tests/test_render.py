"""
Render Tests
============

Display surface, subscriber buffers and the render loop.
"""

import asyncio

import numpy as np
import pytest

from dither_cam.models.frame import Frame
from dither_cam.models.params import PipelineConfig, SourceMode
from dither_cam.processing.frame_processor import FrameProcessor
from dither_cam.render import DisplaySurface, FrameBuffer, RenderLoop
from dither_cam.source import SourceSelector, StaticImageSource, decode_image_bytes


def make_loop(bayer4, surface_size=(4, 4), display_size=(4, 4), target_fps=30.0):
    config = PipelineConfig(source_mode=SourceMode.STATIC_IMAGE)
    static = StaticImageSource()
    selector = SourceSelector(config, static=static)
    processor = FrameProcessor(display_size=display_size, matrix=bayer4)
    surface = DisplaySurface(*surface_size)
    loop = RenderLoop(config, selector, processor, surface, target_fps=target_fps)
    return loop, static


class TestDisplaySurface:
    """Tests for the fixed-size surface."""

    def test_starts_empty(self):
        surface = DisplaySurface(4, 3)
        assert not surface.has_content
        assert surface.snapshot() is None
        assert surface.encode_png() is None

    def test_blit_overwrites(self, random_pixels):
        surface = DisplaySurface(10, 6)
        surface.blit(Frame(pixels=random_pixels, frame_id=3))

        snap = surface.snapshot()
        assert snap.frame_id == 3
        assert np.array_equal(snap.pixels, random_pixels)
        assert surface.version == 1

    def test_clear_does_not_touch_blitted_source(self, random_pixels):
        surface = DisplaySurface(10, 6)
        surface.blit(Frame(pixels=random_pixels))
        surface.clear()
        # blit copies into the surface buffer
        assert random_pixels.any()

    def test_clear_resets_to_transparent_black(self, random_pixels):
        surface = DisplaySurface(10, 6)
        surface.blit(Frame(pixels=random_pixels))
        surface.clear()
        assert not surface.has_content
        assert surface.snapshot() is None
        assert surface.version == 2

    def test_size_mismatch_rejected(self, gray_frame):
        surface = DisplaySurface(8, 8)
        with pytest.raises(ValueError):
            surface.blit(gray_frame)

    def test_encode_png(self, random_pixels):
        surface = DisplaySurface(10, 6)
        surface.blit(Frame(pixels=random_pixels))
        decoded = decode_image_bytes(surface.encode_png())
        assert np.array_equal(decoded.pixels, random_pixels)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            DisplaySurface(0, 5)


class TestFrameBuffer:
    """Tests for the drop-oldest subscriber queue."""

    def test_drops_oldest_when_full(self):
        buffer = FrameBuffer(maxsize=2)
        frames = [Frame.filled(1, 1, (0, 0, 0, 255), frame_id=i) for i in range(3)]

        assert buffer.put(frames[0])
        assert buffer.put(frames[1])
        assert not buffer.put(frames[2])

        assert buffer.dropped_count == 1
        assert buffer.get_nowait().frame_id == 1
        assert buffer.get_nowait().frame_id == 2
        assert buffer.get_nowait() is None

    def test_get_timeout_returns_none(self):
        buffer = FrameBuffer(maxsize=1)
        assert asyncio.run(buffer.get(timeout=0.01)) is None

    def test_clear(self):
        buffer = FrameBuffer(maxsize=3)
        for i in range(3):
            buffer.put(Frame.filled(1, 1, (0, 0, 0, 255), frame_id=i))
        assert buffer.clear() == 3
        assert buffer.size == 0

    def test_invalid_maxsize(self):
        with pytest.raises(ValueError):
            FrameBuffer(maxsize=0)


class TestRenderLoopTick:
    """tick() driven directly, without timing."""

    def test_idle_without_source_frame(self, bayer4):
        loop, _ = make_loop(bayer4)

        assert loop.tick() is None
        assert loop.metrics.idle_ticks == 1
        assert not loop.surface.has_content

    def test_renders_static_image(self, bayer4, gray_frame):
        loop, static = make_loop(bayer4)
        static.load_frame(gray_frame)

        rendered = loop.tick()

        assert rendered is not None
        assert loop.surface.has_content
        assert np.array_equal(loop.surface.snapshot().pixels, rendered.pixels)
        assert loop.metrics.frames_rendered == 1
        assert loop.metrics.last_frame_id == rendered.frame_id

    def test_failed_frame_is_skipped(self, bayer4, gray_frame):
        # Processor output (4x4) cannot be blitted onto an 8x8 surface
        loop, static = make_loop(bayer4, surface_size=(8, 8), display_size=(4, 4))
        static.load_frame(gray_frame)

        assert loop.tick() is None
        assert loop.tick() is None
        assert loop.metrics.frame_errors == 2
        assert loop.metrics.frames_rendered == 0

    def test_request_render_reads_new_parameters(self, bayer4, gray_frame):
        loop, static = make_loop(bayer4)
        static.load_frame(gray_frame)
        loop.tick()

        loop.config.update(brightness=0)
        rendered = loop.request_render()

        assert np.all(rendered.pixels[..., :3] == 0)
        assert loop.metrics.on_demand_renders == 1

    def test_request_render_clear_leaves_no_stale_frame(self, bayer4, gray_frame):
        loop, static = make_loop(bayer4)
        static.load_frame(gray_frame)
        loop.tick()

        # Switch to live with no device: nothing to render after clearing
        loop.config.source_mode = SourceMode.LIVE_CAPTURE
        assert loop.request_render(clear=True) is None
        assert not loop.surface.has_content

    def test_subscribers_receive_frames(self, bayer4, gray_frame):
        loop, static = make_loop(bayer4)
        static.load_frame(gray_frame)
        buffer = loop.subscribe(maxsize=2)

        loop.tick()
        loop.tick()
        loop.tick()

        assert loop.subscriber_count == 1
        assert buffer.size == 2
        assert buffer.dropped_count == 1

        loop.unsubscribe(buffer)
        loop.tick()
        assert loop.subscriber_count == 0
        assert buffer.total_put == 3


class TestRenderLoopRun:
    """Timed loop with the scheduler."""

    def test_run_ticks_until_stopped(self, bayer4, gray_frame):
        loop, static = make_loop(bayer4, target_fps=200.0)
        static.load_frame(gray_frame)

        async def scenario():
            task = asyncio.create_task(loop.run())
            await asyncio.sleep(0.05)
            assert loop.running
            await loop.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(scenario())

        assert not loop.running
        assert loop.metrics.ticks >= 2
        assert loop.metrics.frames_rendered == loop.metrics.ticks

    def test_invalid_fps(self, bayer4):
        with pytest.raises(ValueError):
            make_loop(bayer4, target_fps=0)
