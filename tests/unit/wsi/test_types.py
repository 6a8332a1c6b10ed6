"""Tests for WSI metadata and pyramid geometry."""

from __future__ import annotations

import pytest

from histopatch.wsi.exceptions import GeometryError
from histopatch.wsi.types import PyramidGeometry, WSIMetadata


@pytest.fixture
def metadata() -> WSIMetadata:
    return WSIMetadata(
        path="/slides/a.svs",
        width=46000,
        height=32914,
        level_count=3,
        level_dimensions=((46000, 32914), (11500, 8228), (2875, 2057)),
        level_downsamples=(1.0, 4.0, 16.0),
    )


class TestWSIMetadata:
    def test_dimensions(self, metadata: WSIMetadata) -> None:
        assert metadata.dimensions == (46000, 32914)
        assert metadata.vendor == "unknown"

    def test_get_level_dimensions(self, metadata: WSIMetadata) -> None:
        assert metadata.get_level_dimensions(2) == (2875, 2057)

    @pytest.mark.parametrize("level", [-1, 3])
    def test_get_level_dimensions_out_of_range(
        self, metadata: WSIMetadata, level: int
    ) -> None:
        with pytest.raises(GeometryError, match="out of range") as exc_info:
            metadata.get_level_dimensions(level)
        assert exc_info.value.level == level


class TestPyramidGeometry:
    def test_downsample_is_ratio_of_dimensions(self, metadata: WSIMetadata) -> None:
        geometry = PyramidGeometry.from_metadata(metadata, level=1)

        assert geometry.downsample_x == 46000 / 11500
        assert geometry.downsample_y == 32914 / 8228
        assert geometry.coarse_shape == (8228, 11500)

    def test_non_power_of_two_ratio(self) -> None:
        geometry = PyramidGeometry.from_dimensions(1, (1000, 900), (300, 300))
        assert geometry.downsample_x == pytest.approx(3.3333, rel=1e-4)
        assert geometry.downsample_y == 3.0

    def test_missing_level(self, metadata: WSIMetadata) -> None:
        with pytest.raises(GeometryError):
            PyramidGeometry.from_metadata(metadata, level=5)

    def test_zero_dimension_rejected(self) -> None:
        with pytest.raises(GeometryError, match="must be positive"):
            PyramidGeometry.from_dimensions(1, (1000, 1000), (0, 10))

    @pytest.mark.parametrize("shape", [(10, 10), (9, 10), (10, 11), (11, 9)])
    def test_check_mask_shape_within_tolerance(self, shape: tuple[int, int]) -> None:
        geometry = PyramidGeometry.from_dimensions(1, (1000, 1000), (10, 10))
        geometry.check_mask_shape(shape)

    @pytest.mark.parametrize("shape", [(8, 10), (10, 12), (10,), (10, 10, 3)])
    def test_check_mask_shape_mismatch(self, shape: tuple[int, ...]) -> None:
        geometry = PyramidGeometry.from_dimensions(1, (1000, 1000), (10, 10))
        with pytest.raises(GeometryError):
            geometry.check_mask_shape(shape)
