"""Tests for histopatch.config module."""

from pathlib import Path

import pytest

from histopatch.config import ConfigError, PipelineConfig, Settings


class TestSettings:
    """Tests for the Settings class."""

    def test_default_values(self) -> None:
        """Defaults match the original command-line tool."""
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.SIGMA == 0.5
        assert settings.MIN_SIZE == 100000
        assert settings.K == 20000.0
        assert settings.LEVEL == 1
        assert settings.CONTENT_THRESHOLD == 0.5
        assert settings.PATCH_SIZE == 512
        assert settings.NUMBER_OF_LINES == 100
        assert settings.BORDERS == "1111"
        assert settings.CORNERS == "0000"
        assert settings.MAX_WORKERS == 0
        assert settings.LOG_LEVEL == "INFO"

    def test_env_var_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATCH_SIZE", "256")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("CORNERS", "1001")

        settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.PATCH_SIZE == 256
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.CORNERS == "1001"


class TestPipelineConfig:
    """Tests for run configuration validation."""

    def test_defaults_are_valid(self, tmp_path: Path) -> None:
        config = PipelineConfig(slide_id="s", output_dir=tmp_path)
        assert config.borders == "1111"
        assert config.corners == "0000"
        assert config.save_patches is False

    def test_config_is_frozen(self, tmp_path: Path) -> None:
        config = PipelineConfig(slide_id="s", output_dir=tmp_path)
        with pytest.raises(Exception):  # noqa: B017, PT011
            config.patch_size = 1  # type: ignore[misc]

    def test_borders_and_corners_both_empty_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Exactly one of borders/corners"):
            PipelineConfig(
                slide_id="s", output_dir=tmp_path, borders="0000", corners="0000"
            )

    def test_borders_and_corners_both_active_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Exactly one of borders/corners"):
            PipelineConfig(
                slide_id="s", output_dir=tmp_path, borders="1000", corners="0100"
            )

    def test_corners_only_is_valid(self, tmp_path: Path) -> None:
        config = PipelineConfig(
            slide_id="s", output_dir=tmp_path, borders="0000", corners="1001"
        )
        assert config.corners == "1001"

    @pytest.mark.parametrize("value", ["111", "11111", "1a11", ""])
    def test_malformed_window_spec_rejected(self, tmp_path: Path, value: str) -> None:
        with pytest.raises(ConfigError) as exc_info:
            PipelineConfig(slide_id="s", output_dir=tmp_path, borders=value)
        assert exc_info.value.parameter == "borders"

    @pytest.mark.parametrize("threshold", [-0.1, 1.01, float("nan")])
    def test_threshold_out_of_range_rejected(
        self, tmp_path: Path, threshold: float
    ) -> None:
        with pytest.raises(ConfigError) as exc_info:
            PipelineConfig(
                slide_id="s", output_dir=tmp_path, content_threshold=threshold
            )
        assert exc_info.value.parameter == "content_threshold"

    @pytest.mark.parametrize("threshold", [0.0, 1.0])
    def test_threshold_bounds_accepted(self, tmp_path: Path, threshold: float) -> None:
        config = PipelineConfig(
            slide_id="s", output_dir=tmp_path, content_threshold=threshold
        )
        assert config.content_threshold == threshold

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("patch_size", 0),
            ("patch_size", -512),
            ("number_of_lines", 0),
            ("level", 0),
            ("max_workers", 0),
        ],
    )
    def test_non_positive_values_rejected(
        self, tmp_path: Path, field: str, value: int
    ) -> None:
        with pytest.raises(ConfigError) as exc_info:
            PipelineConfig(slide_id="s", output_dir=tmp_path, **{field: value})
        assert exc_info.value.parameter == field

    def test_empty_slide_id_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Slide identifier"):
            PipelineConfig(slide_id="  ", output_dir=tmp_path)


class TestFromSettings:
    """Tests for PipelineConfig.from_settings."""

    def test_uses_settings_defaults(self, tmp_path: Path) -> None:
        settings = Settings(PATCH_SIZE=256, NUMBER_OF_LINES=7, _env_file=None)  # type: ignore[call-arg]
        config = PipelineConfig.from_settings(settings, slide_id="s", output_dir=tmp_path)
        assert config.patch_size == 256
        assert config.number_of_lines == 7
        assert config.max_workers is None

    def test_none_overrides_are_ignored(self, tmp_path: Path) -> None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        config = PipelineConfig.from_settings(
            settings, slide_id="s", output_dir=tmp_path, patch_size=None, level=2
        )
        assert config.patch_size == 512
        assert config.level == 2

    def test_type_errors_become_config_errors(self, tmp_path: Path) -> None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        with pytest.raises(ConfigError) as exc_info:
            PipelineConfig.from_settings(
                settings, slide_id="s", output_dir=tmp_path, patch_size="large"
            )
        assert exc_info.value.parameter == "patch_size"

    def test_semantic_errors_propagate(self, tmp_path: Path) -> None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        with pytest.raises(ConfigError, match="Exactly one"):
            PipelineConfig.from_settings(
                settings, slide_id="s", output_dir=tmp_path, borders="0000"
            )


class TestConfigError:
    def test_message_with_parameter(self) -> None:
        error = ConfigError("Bad value", parameter="patch_size")
        assert str(error) == "Bad value (parameter: patch_size)"
        assert error.parameter == "patch_size"
        assert error.message == "Bad value"

    def test_message_only(self) -> None:
        error = ConfigError("Bad value")
        assert str(error) == "Bad value"
        assert error.parameter is None
