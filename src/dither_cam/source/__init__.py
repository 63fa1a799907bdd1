"""
Source Module
=============

Frame acquisition for DitherCam.

This module provides the ingestion layer:
    - CaptureSource: Live frames from a camera or stream URL (OpenCV)
    - StaticImageSource: A decoded still held until replaced
    - SourceSelector: Picks the active source from PipelineConfig.source_mode
    - image_decoder: The only place images are decoded or encoded

Example:
    from dither_cam.source import CaptureSource, SourceSelector, StaticImageSource

    selector = SourceSelector(
        config,
        static=StaticImageSource(),
        capture=CaptureSource(device=0),
    )
    await selector.start()   # falls back to static mode if the camera is denied
    frame = selector.current_frame()
"""

from dither_cam.source.image_decoder import (
    DecodeError,
    decode_image_base64,
    decode_image_bytes,
    decode_image_file,
    encode_png,
)
from dither_cam.source.capture import AcquisitionError, CaptureSource
from dither_cam.source.static import StaticImageSource
from dither_cam.source.selector import SourceSelector


__all__ = [
    "AcquisitionError",
    "CaptureSource",
    "DecodeError",
    "SourceSelector",
    "StaticImageSource",
    "decode_image_base64",
    "decode_image_bytes",
    "decode_image_file",
    "encode_png",
]
