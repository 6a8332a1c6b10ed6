"""histopatch configuration using pydantic-settings.

Process-wide defaults live in ``Settings`` (environment variables and .env
files). A single run receives a frozen ``PipelineConfig`` built once at
start-up and never mutated afterwards.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_WINDOW_SPEC_LENGTH = 4


class ConfigError(Exception):
    """Raised when run parameters are missing, invalid or contradictory.

    Example:
        >>> PipelineConfig(borders="0000", corners="0000", output_dir=".",
        ...                slide_id="s")  # doctest: +ELLIPSIS
        Traceback (most recent call last):
        ...
        histopatch.config.ConfigError: Exactly one of borders/corners must be active ...
    """

    def __init__(self, message: str, parameter: str | None = None) -> None:
        """Initialize configuration error.

        Args:
            message: Human-readable error description.
            parameter: Name of the offending parameter, if any.
        """
        self.parameter = parameter
        self.message = message
        if parameter:
            super().__init__(f"{message} (parameter: {parameter})")
        else:
            super().__init__(message)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Segmenter parameters (forwarded untouched)
    SIGMA: float = 0.5
    MIN_SIZE: int = 100000
    K: float = 20000.0

    # Patch selection
    LEVEL: int = 1  # Pyramid level used for segmentation (0 = full resolution)
    CONTENT_THRESHOLD: float = 0.5
    PATCH_SIZE: int = 512
    NUMBER_OF_LINES: int = 100
    BORDERS: str = "1111"  # left, bottom, right, top
    CORNERS: str = "0000"  # top_left, bottom_left, bottom_right, top_right

    # Extraction
    MAX_WORKERS: int = 0  # 0 = one worker per CPU
    PATCH_FORMAT: str = "png"
    THUMBNAIL_SIZE: int = 2048  # Long side of the tile-crossed overview


def _check_window_spec(value: str, parameter: str) -> None:
    if len(value) != _WINDOW_SPEC_LENGTH or set(value) - {"0", "1"}:
        raise ConfigError(
            f"Expected a four digit string of 0/1, got {value!r}",
            parameter=parameter,
        )


class PipelineConfig(BaseModel, frozen=True):
    """Parameters of one extraction run.

    Attributes:
        slide_id: Identifier used to name every artifact of the run.
        output_dir: Directory receiving patches and optional artifacts.
        sigma: Gaussian smoothing passed to the segmenter.
        min_size: Minimum segment size passed to the segmenter.
        k: Threshold function scale passed to the segmenter.
        level: Pyramid level segmented (must be >= 1).
        content_threshold: Minimum tissue ratio for a patch to be selected.
        patch_size: Side of the square patches in full-resolution pixels.
        number_of_lines: Width of the border/corner sampling windows.
        borders: Four digits for left, bottom, right, top.
        corners: Four digits for top_left, bottom_left, bottom_right, top_right.
        keep_partial_patches: Emit truncated patches at the right/bottom edge.
        save_patches: Persist full-resolution pixels of selected patches.
        save_overlay: Persist a thumbnail with selected patches crossed out.
        save_mask: Persist the colourised segmentation.
        save_edges: Persist the edge image fed to the segmenter.
        max_workers: Extraction pool size (None = one per CPU).
        patch_format: Image format used for patch files.
        thumbnail_size: Long side of the overview thumbnail.
    """

    slide_id: str
    output_dir: Path
    sigma: float = 0.5
    min_size: int = 100000
    k: float = 20000.0
    level: int = 1
    content_threshold: float = 0.5
    patch_size: int = 512
    number_of_lines: int = 100
    borders: str = "1111"
    corners: str = "0000"
    keep_partial_patches: bool = False
    save_patches: bool = False
    save_overlay: bool = False
    save_mask: bool = False
    save_edges: bool = False
    max_workers: int | None = None
    patch_format: str = "png"
    thumbnail_size: int = 2048

    @model_validator(mode="after")
    def _validate_values(self) -> Self:
        """Reject invalid parameters before any processing starts.

        ConfigError is not a ValueError, so pydantic lets it propagate.
        """
        if not self.slide_id.strip():
            raise ConfigError("Slide identifier must not be empty", "slide_id")
        if self.level < 1:
            raise ConfigError(
                f"Level must be >= 1 (level 0 is full resolution), got {self.level}",
                "level",
            )
        if not 0.0 <= self.content_threshold <= 1.0:
            raise ConfigError(
                f"Content threshold must be in [0, 1], got {self.content_threshold}",
                "content_threshold",
            )
        if self.patch_size <= 0:
            raise ConfigError(
                f"Patch size must be positive, got {self.patch_size}", "patch_size"
            )
        if self.number_of_lines <= 0:
            raise ConfigError(
                f"Number of lines must be positive, got {self.number_of_lines}",
                "number_of_lines",
            )
        if self.max_workers is not None and self.max_workers <= 0:
            raise ConfigError(
                f"max_workers must be positive, got {self.max_workers}",
                "max_workers",
            )
        if self.thumbnail_size <= 0:
            raise ConfigError(
                f"Thumbnail size must be positive, got {self.thumbnail_size}",
                "thumbnail_size",
            )
        if not (math.isfinite(self.sigma) and math.isfinite(self.k)):
            raise ConfigError("Segmenter parameters must be finite numbers", "sigma")

        _check_window_spec(self.borders, "borders")
        _check_window_spec(self.corners, "corners")
        borders_active = "1" in self.borders
        corners_active = "1" in self.corners
        if borders_active == corners_active:
            raise ConfigError(
                "Exactly one of borders/corners must be active "
                f"(borders={self.borders}, corners={self.corners})",
                "borders",
            )
        return self

    @classmethod
    def from_settings(
        cls,
        source: Settings,
        **overrides: Any,
    ) -> PipelineConfig:
        """Build a run configuration from settings defaults plus overrides.

        Overrides whose value is None are ignored so CLI options that were
        not given fall back to the settings.

        Raises:
            ConfigError: If any value is invalid, including type errors.
        """
        values: dict[str, Any] = {
            "sigma": source.SIGMA,
            "min_size": source.MIN_SIZE,
            "k": source.K,
            "level": source.LEVEL,
            "content_threshold": source.CONTENT_THRESHOLD,
            "patch_size": source.PATCH_SIZE,
            "number_of_lines": source.NUMBER_OF_LINES,
            "borders": source.BORDERS,
            "corners": source.CORNERS,
            "max_workers": source.MAX_WORKERS or None,
            "patch_format": source.PATCH_FORMAT,
            "thumbnail_size": source.THUMBNAIL_SIZE,
        }
        values.update({key: val for key, val in overrides.items() if val is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or None
            raise ConfigError(first["msg"], parameter=location) from e


# Singleton instance for import convenience
settings = Settings()
