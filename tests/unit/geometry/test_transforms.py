"""Unit tests for coordinate transforms between pyramid levels."""

from __future__ import annotations

import numpy as np
import pytest
from hypothesis import given
from hypothesis import strategies as st

from histopatch.geometry.primitives import CoarseRect, Region
from histopatch.geometry.transforms import (
    project_to_image,
    to_coarse_bounds,
    to_coarse_rect,
)
from histopatch.wsi.types import PyramidGeometry


@pytest.fixture
def geometry() -> PyramidGeometry:
    """1000x1000 slide segmented at a 10x10 level."""
    return PyramidGeometry.from_dimensions(1, (1000, 1000), (10, 10))


class TestToCoarseRect:
    def test_aligned_region(self, geometry: PyramidGeometry) -> None:
        rect = to_coarse_rect(Region(x=0, y=0, width=512, height=512), geometry)
        # 512 / 100 = 5.12 -> far edge ceiled to 6
        assert rect == CoarseRect(row0=0, col0=0, row1=6, col1=6)

    def test_origin_floored(self, geometry: PyramidGeometry) -> None:
        rect = to_coarse_rect(Region(x=150, y=250, width=100, height=100), geometry)
        assert rect == CoarseRect(row0=2, col0=1, row1=4, col1=3)

    def test_rows_follow_y_and_cols_follow_x(self) -> None:
        geometry = PyramidGeometry.from_dimensions(1, (2000, 1000), (20, 10))
        rect = to_coarse_rect(Region(x=1000, y=0, width=100, height=100), geometry)
        assert (rect.row0, rect.col0) == (0, 10)

    def test_non_power_of_two_downsample(self) -> None:
        # 3000 / 7 is not an integer; exact arithmetic keeps the edges stable
        geometry = PyramidGeometry.from_dimensions(1, (3000, 3000), (7, 7))
        rect = to_coarse_rect(Region(x=0, y=0, width=3000, height=3000), geometry)
        assert rect == CoarseRect(0, 0, 7, 7)

    @given(
        x=st.integers(min_value=0, max_value=5000),
        y=st.integers(min_value=0, max_value=5000),
        w=st.integers(min_value=1, max_value=2000),
        h=st.integers(min_value=1, max_value=2000),
        coarse=st.integers(min_value=1, max_value=400),
    )
    def test_coarse_rect_covers_projection(
        self, x: int, y: int, w: int, h: int, coarse: int
    ) -> None:
        full = 7000
        geometry = PyramidGeometry.from_dimensions(1, (full, full), (coarse, coarse))
        rect = to_coarse_rect(Region(x=x, y=y, width=w, height=h), geometry)

        scale = coarse / full
        assert rect.col0 <= x * scale + 1e-9
        assert rect.row0 <= y * scale + 1e-9
        assert rect.col1 >= (x + w) * scale - 1e-9
        assert rect.row1 >= (y + h) * scale - 1e-9
        # Over-cover by less than one coarse pixel per side
        assert x * scale - rect.col0 < 1
        assert rect.col1 - (x + w) * scale < 1
        assert not rect.is_empty


class TestToCoarseBounds:
    def test_matches_scalar_mapping(self) -> None:
        geometry = PyramidGeometry.from_dimensions(1, (46000, 32914), (11500, 8228))
        regions = [
            Region(x=0, y=0, width=512, height=512),
            Region(x=45568, y=32256, width=432, height=658),
            Region(x=1023, y=4097, width=17, height=3),
        ]
        boxes = np.array([r.to_tuple() for r in regions], dtype=np.int64)

        bounds = to_coarse_bounds(boxes, geometry)

        expected = [tuple(to_coarse_rect(r, geometry)) for r in regions]
        assert [tuple(int(v) for v in row) for row in bounds] == expected

    def test_empty_input(self, geometry: PyramidGeometry) -> None:
        bounds = to_coarse_bounds(np.empty((0, 4), dtype=np.int64), geometry)
        assert bounds.shape == (0, 4)


class TestProjectToImage:
    def test_scales_to_thumbnail(self) -> None:
        box = project_to_image(
            Region(x=500, y=250, width=500, height=250),
            full_size=(1000, 500),
            image_size=(100, 50),
        )
        assert box == pytest.approx((50.0, 25.0, 100.0, 50.0))

    def test_non_positive_size_rejected(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            project_to_image(Region(x=0, y=0, width=1, height=1), (0, 10), (10, 10))
