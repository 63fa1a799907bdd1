"""
Test Configuration
==================

Pytest fixtures and test configuration for DitherCam.

The service settings are loaded on import, so the environment is pinned
here before any dither_cam module is imported: no config file, no capture
device, a small display.
"""

import base64
import os
import time

os.environ["DITHERCAM_CONFIG"] = os.path.join(os.path.dirname(__file__), "no-such-config.yaml")
os.environ["DITHERCAM_CAPTURE_ENABLED"] = "false"
os.environ["DITHERCAM_DISPLAY_WIDTH"] = "8"
os.environ["DITHERCAM_DISPLAY_HEIGHT"] = "8"
os.environ.setdefault("DITHERCAM_LOG_LEVEL", "WARNING")

import cv2
import numpy as np
import pytest


@pytest.fixture
def bayer4():
    """Normalized 4x4 threshold matrix."""
    from dither_cam.processing.threshold import generate_threshold_matrix

    return generate_threshold_matrix(4)


@pytest.fixture
def gray_frame():
    """4x4 flat mid-gray opaque frame."""
    from dither_cam.models.frame import Frame

    return Frame.filled(4, 4, (128, 128, 128, 255), frame_id=7, timestamp=1700000000.0)


@pytest.fixture
def random_pixels():
    """Deterministic random 6x10 RGBA buffer."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(6, 10, 4), dtype=np.uint8)


@pytest.fixture
def png_bytes():
    """Encoded 5x3 PNG whose left column is pure red (BGR in OpenCV)."""
    bgr = np.zeros((3, 5, 3), dtype=np.uint8)
    bgr[:, 0] = (0, 0, 255)
    bgr[:, 1:] = (200, 100, 50)
    ok, buf = cv2.imencode(".png", bgr)
    assert ok
    return buf.tobytes()


@pytest.fixture
def png_base64(png_bytes):
    return base64.b64encode(png_bytes).decode("ascii")


class FakeVideoCapture:
    """
    Stand-in for cv2.VideoCapture.

    Yields the given BGR buffers in order; a None entry simulates a failed
    grab. After the script runs out every read fails. ``delay`` makes each
    read block like a real device waiting for its next frame; ``error``
    is raised from every read instead.
    """

    def __init__(self, frames, opened=True, delay=0.0, error=None):
        self._frames = list(frames)
        self._opened = opened
        self._delay = delay
        self._error = error
        self.released = False

    def isOpened(self):
        return self._opened

    def read(self):
        if self._delay:
            time.sleep(self._delay)
        if self._error is not None:
            raise self._error
        if not self._frames:
            return False, None
        bgr = self._frames.pop(0)
        if bgr is None:
            return False, None
        return True, bgr

    def release(self):
        self.released = True


@pytest.fixture
def fake_capture_factory():
    """Build a capture_factory returning a FakeVideoCapture."""

    def build(frames, opened=True, delay=0.0, error=None):
        capture = FakeVideoCapture(frames, opened=opened, delay=delay, error=error)

        def factory(device):
            return capture

        factory.capture = capture
        return factory

    return build
