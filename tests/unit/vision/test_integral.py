"""Tests for the summed-area table."""

from __future__ import annotations

import numpy as np
import pytest
from hypothesis import given
from hypothesis import strategies as st
from hypothesis.extra.numpy import arrays

from histopatch.geometry.primitives import CoarseRect
from histopatch.vision.integral import IntegralImage


@pytest.fixture
def checker() -> np.ndarray:
    mask = np.zeros((4, 6), dtype=bool)
    mask[::2, ::2] = True
    mask[1::2, 1::2] = True
    return mask


class TestIntegralImage:
    def test_shape_and_total(self, checker: np.ndarray) -> None:
        integral = IntegralImage.build(checker)
        assert integral.shape == (4, 6)
        assert integral.total == 12

    def test_full_query_equals_total(self, checker: np.ndarray) -> None:
        integral = IntegralImage.build(checker)
        assert integral.query(CoarseRect(0, 0, 4, 6)) == integral.total

    def test_single_pixel_queries(self, checker: np.ndarray) -> None:
        integral = IntegralImage.build(checker)
        assert integral.query(CoarseRect(0, 0, 1, 1)) == 1
        assert integral.query(CoarseRect(0, 1, 1, 2)) == 0

    def test_query_is_clamped(self, checker: np.ndarray) -> None:
        integral = IntegralImage.build(checker)
        assert integral.query(CoarseRect(-5, -5, 50, 50)) == 12
        assert integral.query(CoarseRect(10, 10, 20, 20)) == 0

    def test_empty_rect_counts_zero(self, checker: np.ndarray) -> None:
        integral = IntegralImage.build(checker)
        assert integral.query(CoarseRect(2, 2, 2, 5)) == 0

    def test_wrapped_table_becomes_read_only(self) -> None:
        table = np.zeros((3, 3), dtype=np.int64)
        IntegralImage(table)
        with pytest.raises(ValueError):
            table[1, 1] = 5

    @pytest.mark.parametrize("mask", [np.zeros((0, 3)), np.zeros(5), np.zeros((2, 2, 2))])
    def test_invalid_mask_rejected(self, mask: np.ndarray) -> None:
        with pytest.raises(ValueError):
            IntegralImage.build(mask)

    def test_too_small_table_rejected(self) -> None:
        with pytest.raises(ValueError, match="at least 2x2"):
            IntegralImage(np.zeros((1, 4), dtype=np.int64))

    def test_query_many_clamps_and_reports_areas(self, checker: np.ndarray) -> None:
        integral = IntegralImage.build(checker)
        bounds = np.array(
            [
                [0, 0, 4, 6],
                [0, 0, 1, 1],
                [3, 5, 9, 9],
                [7, 7, 9, 9],
            ],
            dtype=np.int64,
        )

        counts, areas = integral.query_many(bounds)

        assert counts.tolist() == [12, 1, 1, 0]
        assert areas.tolist() == [24, 1, 1, 0]

    @given(
        mask=arrays(
            np.bool_,
            st.tuples(st.integers(1, 15), st.integers(1, 15)),
        ),
        data=st.data(),
    )
    def test_query_matches_direct_sum(self, mask: np.ndarray, data: st.DataObject) -> None:
        height, width = mask.shape
        r0 = data.draw(st.integers(0, height))
        r1 = data.draw(st.integers(r0, height))
        c0 = data.draw(st.integers(0, width))
        c1 = data.draw(st.integers(c0, width))
        integral = IntegralImage.build(mask)

        expected = int(mask[r0:r1, c0:c1].sum())

        assert integral.query(CoarseRect(r0, c0, r1, c1)) == expected
        counts, _ = integral.query_many(np.array([[r0, c0, r1, c1]]))
        assert int(counts[0]) == expected
