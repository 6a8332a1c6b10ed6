"""Shared pytest fixtures and configuration."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest
from hypothesis import settings as hypothesis_settings
from PIL import Image

from histopatch.config import PipelineConfig, Settings
from histopatch.utils.logging import clear_correlation_context, configure_logging
from histopatch.vision.labels import LabelMask
from histopatch.wsi.types import PyramidGeometry, WSIMetadata

# Property tests iterate large grids; wall-clock deadlines make them flaky.
hypothesis_settings.register_profile("histopatch", deadline=None)
hypothesis_settings.load_profile("histopatch")


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield


@pytest.fixture
def pipeline_config(tmp_path: Path) -> PipelineConfig:
    """Small-slide configuration writing below tmp_path."""
    return PipelineConfig(
        slide_id="slide",
        output_dir=tmp_path / "out",
        patch_size=100,
        number_of_lines=2,
        content_threshold=0.5,
        max_workers=2,
    )


@pytest.fixture
def island_labels() -> LabelMask:
    """10x10 label map: background 0 with a 4x4 tissue island of label 7."""
    labels = np.zeros((10, 10), dtype=np.int64)
    labels[3:7, 3:7] = 7
    return LabelMask(labels)


@pytest.fixture
def small_metadata() -> WSIMetadata:
    """A 1000x1000 slide whose level 1 is 10x10 (downsample 100)."""
    return WSIMetadata(
        path="/slides/small.svs",
        width=1000,
        height=1000,
        level_count=2,
        level_dimensions=((1000, 1000), (10, 10)),
        level_downsamples=(1.0, 100.0),
        vendor="aperio",
    )


@pytest.fixture
def small_geometry(small_metadata: WSIMetadata) -> PyramidGeometry:
    return PyramidGeometry.from_metadata(small_metadata, level=1)


@pytest.fixture
def mock_reader(small_metadata: WSIMetadata) -> MagicMock:
    """Reader stub returning solid images of the requested size."""
    reader = MagicMock()
    reader.get_metadata.return_value = small_metadata

    def read_region(
        location: tuple[int, int],
        level: int,
        size: tuple[int, int],
    ) -> Image.Image:
        return Image.new("RGB", size, color=(200, 120, 180))

    def read_level(level: int) -> Image.Image:
        return Image.new("RGB", small_metadata.level_dimensions[level], (255, 255, 255))

    reader.read_region.side_effect = read_region
    reader.read_level.side_effect = read_level
    reader.get_thumbnail.side_effect = lambda max_size: Image.new(
        "RGB", (100, 100), (255, 255, 255)
    )
    return reader
