"""
Pipeline Parameter Models
=========================

Runtime parameters read by the frame processor on every tick.

Core Concepts:
    - SourceMode: Which collaborator supplies frames (live capture or still)
    - AdjustmentParameters: Colour adjustment multipliers and hue angle
    - PipelineConfig: everything process_frame needs, passed by reference

Update Model:
    Parameters are mutated between ticks by the control surface. There is a
    single logical thread of execution, so an update is a plain attribute
    assignment; the next tick sees the latest value of every field. All
    writes go through PipelineConfig.update() so validation happens in one
    place.

Example:
    from dither_cam.models.params import PipelineConfig

    config = PipelineConfig()
    changed = config.update(resolution=4, hue=90)
    # changed == ["resolution", "hue"]
"""

import math
from enum import Enum
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceMode(str, Enum):
    """
    Frame source selector.

    Attributes:
        LIVE_CAPTURE: Frames come from the capture device
        STATIC_IMAGE: Frames come from the most recently uploaded still
    """

    LIVE_CAPTURE = "live"
    STATIC_IMAGE = "static"


class AdjustmentParameters(BaseModel):
    """
    Colour adjustment parameters.

    brightness, contrast and saturation are multipliers around 1.0
    (1.0 = unchanged). hue is a rotation angle in degrees; any finite value
    is accepted, signed or beyond 360.
    """

    model_config = ConfigDict(validate_assignment=True)

    brightness: float = Field(default=1.0, ge=0, description="Channel multiplier")
    contrast: float = Field(default=1.0, ge=0, description="Contrast around mid-gray")
    saturation: float = Field(default=1.0, ge=0, description="0 = grayscale, >1 = oversaturated")
    hue: float = Field(default=0.0, description="Hue rotation in degrees")

    @field_validator("brightness", "contrast", "saturation", "hue")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("value must be finite")
        return value

    @property
    def is_identity(self) -> bool:
        """Whether applying these parameters leaves pixels unchanged."""
        return (
            self.brightness == 1.0
            and self.contrast == 1.0
            and self.saturation == 1.0
            and math.fmod(self.hue, 360.0) == 0.0
        )


ADJUSTMENT_FIELDS = ("brightness", "contrast", "saturation", "hue")


class PipelineConfig(BaseModel):
    """
    Mutable pipeline configuration passed into every process_frame call.

    Attributes:
        resolution: Downsampling divisor applied to display width/height (>= 1)
        adjustments: Colour adjustment parameters
        source_mode: Active frame source
    """

    model_config = ConfigDict(validate_assignment=True)

    resolution: float = Field(default=1.0, ge=1.0, description="Downsampling divisor")
    adjustments: AdjustmentParameters = Field(default_factory=AdjustmentParameters)
    source_mode: SourceMode = Field(default=SourceMode.LIVE_CAPTURE)

    @field_validator("resolution")
    @classmethod
    def _finite_resolution(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("resolution must be finite")
        return value

    def update(self, **changes: Any) -> List[str]:
        """
        Apply a partial update.

        Accepts resolution, source_mode and the adjustment fields
        (brightness, contrast, saturation, hue) as flat keyword arguments.
        The update is validated as a whole before anything is assigned, so
        an invalid value leaves the config untouched.

        Args:
            **changes: Field name to new value

        Returns:
            Names of the fields whose value actually changed

        Raises:
            ValueError: Unknown field name
            pydantic.ValidationError: Invalid value
        """
        unknown = set(changes) - {"resolution", "source_mode", *ADJUSTMENT_FIELDS}
        if unknown:
            raise ValueError(f"Unknown pipeline parameters: {sorted(unknown)}")

        adjustment_changes = {k: v for k, v in changes.items() if k in ADJUSTMENT_FIELDS}
        top_changes = {k: v for k, v in changes.items() if k not in ADJUSTMENT_FIELDS}

        # Validate everything up front
        candidate_adjustments = AdjustmentParameters.model_validate(
            {**self.adjustments.model_dump(), **adjustment_changes}
        )
        candidate = PipelineConfig.model_validate(
            {
                "resolution": top_changes.get("resolution", self.resolution),
                "source_mode": top_changes.get("source_mode", self.source_mode),
                "adjustments": candidate_adjustments,
            }
        )

        changed: List[str] = []
        for name in changes:
            if name in ADJUSTMENT_FIELDS:
                new_value = getattr(candidate.adjustments, name)
                if getattr(self.adjustments, name) != new_value:
                    setattr(self.adjustments, name, new_value)
                    changed.append(name)
            else:
                new_value = getattr(candidate, name)
                if getattr(self, name) != new_value:
                    setattr(self, name, new_value)
                    changed.append(name)
        return changed

    def to_flat_dict(self) -> dict:
        """Flat view used by the control surface."""
        return {
            "resolution": self.resolution,
            "source_mode": self.source_mode.value,
            **self.adjustments.model_dump(),
        }
