"""
Data Models
===========

Frame and parameter models for DitherCam.

Models:
    Frame:
        - Frame: Validated RGBA pixel buffer with source metadata

    Parameters:
        - SourceMode: Live capture or static image
        - AdjustmentParameters: Brightness, contrast, saturation, hue
        - PipelineConfig: Everything process_frame reads each tick

    API:
        - ConfigPatch, SourceRequest, ImageUpload: Control surface inputs
        - FramePayload: Rendered frame pushed to subscribers
"""

from dither_cam.models.frame import Frame
from dither_cam.models.params import AdjustmentParameters, PipelineConfig, SourceMode
from dither_cam.models.api import ConfigPatch, FramePayload, ImageUpload, SourceRequest

__all__ = [
    # Frame
    "Frame",
    # Parameters
    "SourceMode",
    "AdjustmentParameters",
    "PipelineConfig",
    # API
    "ConfigPatch",
    "SourceRequest",
    "ImageUpload",
    "FramePayload",
]
