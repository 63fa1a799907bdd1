"""
DitherCam
=========

Real-time ordered-dithering stylization pipeline for camera feeds and stills.

Every frame from the active source is downsampled, colour-adjusted
(brightness, contrast, saturation, hue rotation), Bayer-dithered and
upsampled back to display resolution with nearest-neighbour scaling.

Components:
    - processing: Threshold matrix, colour adjustment, dithering, resampling
    - source: Live capture and static image sources, image decoding
    - render: Display surface and the cooperative render loop
    - models: Frame and pipeline parameter models
    - main: FastAPI control surface and frame delivery

Example:
    from dither_cam.processing import FrameProcessor, generate_threshold_matrix
    from dither_cam.models import PipelineConfig

    processor = FrameProcessor(
        display_size=(640, 480),
        matrix=generate_threshold_matrix(4),
    )
    output = processor.process_frame(frame, PipelineConfig(resolution=4))
"""

__version__ = "0.1.0"
__author__ = "DitherCam Project"

__all__ = [
    "__version__",
]
