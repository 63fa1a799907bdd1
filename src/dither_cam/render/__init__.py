"""
Render Module
=============

Display surface, subscriber buffers and the cooperative render loop.

    - DisplaySurface: Fixed-size RGBA surface, fully overwritten per frame
    - FrameBuffer: Drop-oldest queue feeding one subscriber
    - RenderLoop: Calls tick() once per frame slot, re-renders on demand
"""

from dither_cam.render.surface import DisplaySurface
from dither_cam.render.buffer import FrameBuffer
from dither_cam.render.loop import RenderLoop, RenderMetrics


__all__ = [
    "DisplaySurface",
    "FrameBuffer",
    "RenderLoop",
    "RenderMetrics",
]
