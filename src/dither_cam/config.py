"""
DitherCam Configuration
=======================

This module handles configuration loading for the DitherCam service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    DITHERCAM_DISPLAY_WIDTH   -> display.width
    DITHERCAM_DISPLAY_HEIGHT  -> display.height
    DITHERCAM_TARGET_FPS      -> display.target_fps
    DITHERCAM_RESOLUTION      -> pipeline.resolution
    DITHERCAM_MATRIX_SIZE     -> pipeline.matrix_size
    DITHERCAM_CAPTURE_DEVICE  -> capture.device
    DITHERCAM_CAPTURE_ENABLED -> capture.enabled
    DITHERCAM_PORT            -> server.port
    DITHERCAM_LOG_LEVEL       -> logging.level
    PORT                      -> server.port (Cloud Run)

Example:
    from dither_cam.config import settings

    print(settings.display.width)
    print(settings.pipeline.matrix_size)
"""

import os
import logging
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from dither_cam.models.params import AdjustmentParameters, PipelineConfig, SourceMode
from dither_cam.processing.threshold import validate_matrix_size


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="dither-cam", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class DisplayConfig(BaseModel):
    """Display surface configuration."""

    width: int = Field(default=640, ge=1, description="Display width in pixels")
    height: int = Field(default=480, ge=1, description="Display height in pixels")
    target_fps: float = Field(
        default=30.0,
        gt=0,
        le=240,
        description="Render loop ticks per second",
    )


class PipelineSettings(BaseModel):
    """Startup values for the processing pipeline."""

    resolution: float = Field(default=1.0, ge=1.0, description="Downsampling divisor")
    matrix_size: int = Field(
        default=4,
        description="Threshold matrix side length (power of two >= 2)",
    )
    dither_levels: int = Field(
        default=2,
        ge=2,
        le=256,
        description="Output levels per channel (2 = binary)",
    )
    adjustments: AdjustmentParameters = Field(default_factory=AdjustmentParameters)

    @field_validator("matrix_size")
    @classmethod
    def _power_of_two(cls, value: int) -> int:
        # MatrixSizeError is a ValueError, so pydantic reports it
        return validate_matrix_size(value)


class CaptureConfig(BaseModel):
    """Live capture configuration."""

    enabled: bool = Field(default=True, description="Try to open the capture device")
    device: Union[int, str] = Field(
        default=0,
        description="cv2.VideoCapture device index or stream URL",
    )
    first_frame_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for the first captured frame",
    )


class StreamConfig(BaseModel):
    """Rendered frame delivery configuration."""

    subscriber_queue_size: int = Field(
        default=2,
        ge=1,
        description="Per-subscriber frame buffer (drops oldest on overflow)",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for DitherCam.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def initial_pipeline_config(self) -> PipelineConfig:
        """Fresh runtime PipelineConfig seeded from these settings."""
        return PipelineConfig(
            resolution=self.pipeline.resolution,
            adjustments=self.pipeline.adjustments.model_copy(),
            source_mode=(
                SourceMode.LIVE_CAPTURE if self.capture.enabled else SourceMode.STATIC_IMAGE
            ),
        )


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        config_path = os.environ.get("DITHERCAM_CONFIG")
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    # Build settings object
    settings = Settings.model_validate(config_data)

    return settings


def _parse_device(value: str) -> Union[int, str]:
    """Numeric strings are camera indices, anything else a URL or path."""
    return int(value) if value.isdigit() else value


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Display settings
    if env_width := os.environ.get("DITHERCAM_DISPLAY_WIDTH"):
        config_data.setdefault("display", {})["width"] = int(env_width)
    if env_height := os.environ.get("DITHERCAM_DISPLAY_HEIGHT"):
        config_data.setdefault("display", {})["height"] = int(env_height)
    if env_fps := os.environ.get("DITHERCAM_TARGET_FPS"):
        config_data.setdefault("display", {})["target_fps"] = float(env_fps)

    # Pipeline settings
    if env_res := os.environ.get("DITHERCAM_RESOLUTION"):
        config_data.setdefault("pipeline", {})["resolution"] = float(env_res)
    if env_matrix := os.environ.get("DITHERCAM_MATRIX_SIZE"):
        config_data.setdefault("pipeline", {})["matrix_size"] = int(env_matrix)

    # Capture settings
    if env_device := os.environ.get("DITHERCAM_CAPTURE_DEVICE"):
        config_data.setdefault("capture", {})["device"] = _parse_device(env_device)
    if env_enabled := os.environ.get("DITHERCAM_CAPTURE_ENABLED"):
        config_data.setdefault("capture", {})["enabled"] = _parse_bool(env_enabled)

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("DITHERCAM_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("DITHERCAM_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
