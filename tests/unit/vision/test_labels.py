"""Tests for the coarse label map."""

from __future__ import annotations

import numpy as np
import pytest

from histopatch.vision.labels import LabelMask
from histopatch.wsi.exceptions import GeometryError


class TestLabelMask:
    def test_shape_accessors(self) -> None:
        mask = LabelMask(np.zeros((3, 5), dtype=np.int32))
        assert mask.shape == (3, 5)
        assert mask.height == 3
        assert mask.width == 5
        assert mask.labels.dtype == np.int64

    def test_labels_are_read_only_copy(self) -> None:
        source = np.array([[1, 2], [3, 4]])
        mask = LabelMask(source)
        source[0, 0] = 99

        assert mask.labels[0, 0] == 1
        with pytest.raises(ValueError):
            mask.labels[0, 0] = 7

    def test_labels_present(self) -> None:
        mask = LabelMask([[1, 1, 2, 2], [3, 3, 4, 4]])
        assert mask.labels_present() == frozenset({1, 2, 3, 4})

    @pytest.mark.parametrize(
        "labels",
        [
            np.zeros((4,), dtype=np.int64),
            np.zeros((2, 2, 2), dtype=np.int64),
            np.zeros((0, 4), dtype=np.int64),
            np.zeros((2, 2), dtype=np.float64),
            np.array([[0, -1], [1, 2]]),
        ],
    )
    def test_invalid_arrays_rejected(self, labels: np.ndarray) -> None:
        with pytest.raises(GeometryError):
            LabelMask(labels)

    def test_equality(self) -> None:
        assert LabelMask([[1, 2]]) == LabelMask(np.array([[1, 2]], dtype=np.uint8))
        assert LabelMask([[1, 2]]) != LabelMask([[2, 1]])

    def test_from_rgb_assigns_one_id_per_colour(self) -> None:
        image = np.zeros((2, 3, 3), dtype=np.uint8)
        image[:, 2] = (10, 20, 30)
        image[1, 0] = (255, 0, 0)

        mask = LabelMask.from_rgb(image)

        assert mask.shape == (2, 3)
        assert len(mask.labels_present()) == 3
        assert mask.labels[0, 0] == mask.labels[0, 1] == mask.labels[1, 1]
        assert mask.labels[0, 2] == mask.labels[1, 2]
        assert mask.labels[1, 0] not in {mask.labels[0, 0], mask.labels[0, 2]}

    def test_from_rgb_rejects_2d(self) -> None:
        with pytest.raises(GeometryError):
            LabelMask.from_rgb(np.zeros((4, 4), dtype=np.uint8))

    def test_to_rgb_same_label_same_colour(self) -> None:
        mask = LabelMask([[0, 0, 1], [2, 2, 1]])
        rgb = mask.to_rgb(seed=1)

        assert rgb.shape == (2, 3, 3)
        assert rgb.dtype == np.uint8
        assert np.array_equal(rgb[0, 0], rgb[0, 1])
        assert np.array_equal(rgb[0, 2], rgb[1, 2])
