"""
Configuration Tests
===================

YAML loading, environment overrides and runtime parameter updates.
"""

import pytest
from pydantic import ValidationError

from dither_cam.config import Settings, load_config
from dither_cam.models.params import AdjustmentParameters, PipelineConfig, SourceMode


@pytest.fixture
def clean_env(monkeypatch):
    """Drop the DITHERCAM_* overrides pinned by conftest."""
    for name in (
        "DITHERCAM_CONFIG",
        "DITHERCAM_CAPTURE_ENABLED",
        "DITHERCAM_DISPLAY_WIDTH",
        "DITHERCAM_DISPLAY_HEIGHT",
        "DITHERCAM_LOG_LEVEL",
        "PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Tests for settings defaults and loading."""

    def test_defaults(self):
        settings = Settings()
        assert settings.display.width == 640
        assert settings.display.height == 480
        assert settings.pipeline.matrix_size == 4
        assert settings.pipeline.resolution == 1.0
        assert settings.capture.enabled
        assert settings.server.port == 8002

    def test_load_yaml(self, clean_env, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "display:\n"
            "  width: 320\n"
            "  height: 240\n"
            "pipeline:\n"
            "  resolution: 3\n"
            "  matrix_size: 8\n"
            "  adjustments:\n"
            "    hue: 45\n"
            "capture:\n"
            "  enabled: false\n"
        )

        settings = load_config(str(path))

        assert settings.display.width == 320
        assert settings.pipeline.resolution == 3.0
        assert settings.pipeline.matrix_size == 8
        assert settings.pipeline.adjustments.hue == 45.0
        assert not settings.capture.enabled

    def test_missing_file_uses_defaults(self, clean_env, tmp_path):
        settings = load_config(str(tmp_path / "absent.yaml"))
        assert settings.display.width == 640

    def test_env_overrides_yaml(self, clean_env, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("display:\n  width: 320\nserver:\n  port: 9000\n")
        clean_env.setenv("DITHERCAM_DISPLAY_WIDTH", "100")
        clean_env.setenv("DITHERCAM_MATRIX_SIZE", "2")
        clean_env.setenv("DITHERCAM_CAPTURE_DEVICE", "rtsp://camera/stream")
        clean_env.setenv("PORT", "8080")

        settings = load_config(str(path))

        assert settings.display.width == 100
        assert settings.pipeline.matrix_size == 2
        assert settings.capture.device == "rtsp://camera/stream"
        assert settings.server.port == 8080

    def test_numeric_device_is_index(self, clean_env, tmp_path):
        clean_env.setenv("DITHERCAM_CAPTURE_DEVICE", "2")
        clean_env.setenv("DITHERCAM_CAPTURE_ENABLED", "no")

        settings = load_config(str(tmp_path / "absent.yaml"))

        assert settings.capture.device == 2
        assert not settings.capture.enabled

    @pytest.mark.parametrize("size", [0, 3, 6, -4])
    def test_invalid_matrix_size(self, size):
        with pytest.raises(ValidationError):
            Settings.model_validate({"pipeline": {"matrix_size": size}})

    def test_invalid_resolution(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"pipeline": {"resolution": 0.5}})

    def test_initial_pipeline_config(self):
        settings = Settings.model_validate({
            "pipeline": {"resolution": 2, "adjustments": {"contrast": 1.5}},
            "capture": {"enabled": False},
        })

        config = settings.initial_pipeline_config()

        assert config.resolution == 2.0
        assert config.adjustments.contrast == 1.5
        assert config.source_mode == SourceMode.STATIC_IMAGE
        # Runtime updates do not leak back into settings
        config.update(contrast=3)
        assert settings.pipeline.adjustments.contrast == 1.5


class TestAdjustmentParameters:

    def test_defaults_are_identity(self):
        assert AdjustmentParameters().is_identity

    def test_full_turn_hue_is_identity(self):
        assert AdjustmentParameters(hue=-720).is_identity

    def test_rejects_negative_multiplier(self):
        with pytest.raises(ValidationError):
            AdjustmentParameters(saturation=-0.1)

    def test_rejects_non_finite(self):
        with pytest.raises(ValidationError):
            AdjustmentParameters(hue=float("nan"))


class TestPipelineConfigUpdate:
    """Tests for the single write path of runtime parameters."""

    def test_returns_changed_fields(self):
        config = PipelineConfig()
        changed = config.update(resolution=4, hue=90, brightness=1.0)

        assert changed == ["resolution", "hue"]
        assert config.resolution == 4.0
        assert config.adjustments.hue == 90.0

    def test_invalid_value_leaves_config_untouched(self):
        config = PipelineConfig()

        with pytest.raises(ValueError):
            config.update(hue=30, contrast=-1)

        assert config.adjustments.hue == 0.0
        assert config.adjustments.contrast == 1.0

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            PipelineConfig().update(gamma=2.2)

    def test_source_mode_accepts_value(self):
        config = PipelineConfig()
        assert config.update(source_mode="static") == ["source_mode"]
        assert config.source_mode == SourceMode.STATIC_IMAGE

    def test_to_flat_dict(self):
        flat = PipelineConfig(resolution=2).to_flat_dict()
        assert flat == {
            "resolution": 2.0,
            "source_mode": "live",
            "brightness": 1.0,
            "contrast": 1.0,
            "saturation": 1.0,
            "hue": 0.0,
        }
