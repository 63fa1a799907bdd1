"""
Control Surface Schemas
=======================

Pydantic models for requests accepted and payloads emitted by the
DitherCam service.

Input Contracts:
    PATCH /config   -> ConfigPatch      (any subset of the five controls + mode)
    POST  /source   -> SourceRequest    {"mode": "live" | "static"}
    POST  /upload   -> ImageUpload      {"image": "<base64 PNG/JPEG>"}

Output Contract (WS /ws/frames):
    {
        "frame_id": 1234,
        "timestamp": 1707321234.567,
        "width": 640,
        "height": 480,
        "image": "<base64 PNG>"
    }
"""

from typing import Optional

from pydantic import BaseModel, Field

from dither_cam.models.params import SourceMode


class ConfigPatch(BaseModel):
    """
    Partial update of the pipeline controls.

    Fields left as None are not touched. Range checks are repeated in
    PipelineConfig.update(); these bounds give clients a 422 early.
    """

    resolution: Optional[float] = Field(default=None, ge=1.0, description="Downsampling divisor")
    saturation: Optional[float] = Field(default=None, ge=0)
    contrast: Optional[float] = Field(default=None, ge=0)
    brightness: Optional[float] = Field(default=None, ge=0)
    hue: Optional[float] = Field(default=None, description="Degrees")
    source_mode: Optional[SourceMode] = None

    def changes(self) -> dict:
        """Only the fields the client actually set."""
        return self.model_dump(exclude_none=True)


class SourceRequest(BaseModel):
    """Source-mode toggle."""

    mode: SourceMode


class ImageUpload(BaseModel):
    """
    Still image upload.

    Attributes:
        image: Base64-encoded image file (any format OpenCV decodes)
    """

    image: str = Field(..., min_length=1, description="Base64-encoded image file")

    model_config = {
        "json_schema_extra": {
            "example": {"image": "iVBORw0KGgoAAAANSUhEUgAA..."},
        }
    }


class FramePayload(BaseModel):
    """Rendered frame pushed to WebSocket subscribers."""

    frame_id: int = Field(..., ge=0)
    timestamp: float
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    image: str = Field(..., description="Base64-encoded PNG")
