"""Coarse-resolution label map produced by the segmenter."""

from __future__ import annotations

from typing import Any

import numpy as np
import numpy.typing as npt

from histopatch.wsi.exceptions import GeometryError


class LabelMask:
    """Immutable 2-D grid of segment ids at the coarse resolution.

    The wrapped array is a private int64 copy flagged read-only; every stage
    of a run shares the same mask.

    Attributes:
        labels: Read-only (height, width) int64 array of ids >= 0.
    """

    __slots__ = ("_labels",)

    def __init__(self, labels: npt.ArrayLike) -> None:
        """Wrap a label array.

        Raises:
            GeometryError: If the array is not 2-D, is empty, holds
                non-integer values or negative ids.
        """
        arr = np.asarray(labels)
        if arr.ndim != 2:
            raise GeometryError(f"Label mask must be 2-D, got shape {arr.shape}")
        if arr.size == 0:
            raise GeometryError(f"Label mask is empty, got shape {arr.shape}")
        if arr.dtype.kind not in "iub":
            raise GeometryError(f"Label mask must hold integers, got {arr.dtype}")

        arr = np.array(arr, dtype=np.int64, copy=True)
        if arr.min() < 0:
            raise GeometryError("Label ids must be non-negative")
        arr.setflags(write=False)
        self._labels = arr

    @classmethod
    def from_rgb(cls, image: npt.NDArray[Any]) -> LabelMask:
        """Build a mask from a colour-coded segmentation image.

        Segmenters that write an image instead of a label array paint every
        segment with one colour. Ids are assigned in sorted colour order.

        Args:
            image: (height, width, channels) array.

        Raises:
            GeometryError: If the image is not 3-D.
        """
        arr = np.asarray(image)
        if arr.ndim != 3:
            raise GeometryError(f"Expected an (H, W, C) image, got shape {arr.shape}")
        height, width, channels = arr.shape
        _, inverse = np.unique(
            arr.reshape(-1, channels), axis=0, return_inverse=True
        )
        return cls(inverse.reshape(height, width))

    @property
    def labels(self) -> npt.NDArray[np.int64]:
        return self._labels

    @property
    def shape(self) -> tuple[int, int]:
        """Return (height, width)."""
        height, width = self._labels.shape
        return (height, width)

    @property
    def height(self) -> int:
        return self.shape[0]

    @property
    def width(self) -> int:
        return self.shape[1]

    def labels_present(self) -> frozenset[int]:
        """Return the distinct segment ids in the mask."""
        return frozenset(int(v) for v in np.unique(self._labels))

    def to_rgb(self, seed: int = 0) -> npt.NDArray[np.uint8]:
        """Render each segment with a random but reproducible colour."""
        rng = np.random.default_rng(seed)
        palette = rng.integers(0, 256, size=(int(self._labels.max()) + 1, 3))
        return palette.astype(np.uint8)[self._labels]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LabelMask):
            return NotImplemented
        return np.array_equal(self._labels, other._labels)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"LabelMask(shape={self.shape}, segments={len(self.labels_present())})"
