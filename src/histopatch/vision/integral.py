"""Summed-area table over the tissue mask.

Scoring N patches against an H x W mask by direct summation costs
O(N * patch_area). With the table it costs one O(H * W) build followed by
O(1) per patch:

    I[r, c] = I[r-1, c] + I[r, c-1] - I[r-1, c-1] + mask[r-1, c-1]
    sum([r0, r1) x [c0, c1)) = I[r1, c1] - I[r0, c1] - I[r1, c0] + I[r0, c0]
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from histopatch.geometry.primitives import CoarseRect


class IntegralImage:
    """Immutable (H + 1) x (W + 1) prefix-sum table of tissue pixels."""

    __slots__ = ("_table",)

    def __init__(self, table: npt.NDArray[np.int64]) -> None:
        """Wrap an existing table; use ``build`` to create one from a mask.

        Raises:
            ValueError: If the table is not 2-D with at least 2 x 2 cells.
        """
        if table.ndim != 2 or min(table.shape) < 2:
            raise ValueError(f"Integral table must be at least 2x2, got {table.shape}")
        self._table = table
        self._table.setflags(write=False)

    @classmethod
    def build(cls, tissue_mask: npt.ArrayLike) -> IntegralImage:
        """Build the table from a 2-D boolean (or 0/1) tissue mask.

        Raises:
            ValueError: If the mask is not 2-D or is empty.
        """
        mask = np.asarray(tissue_mask)
        if mask.ndim != 2 or mask.size == 0:
            raise ValueError(f"Tissue mask must be a non-empty 2-D array, got {mask.shape}")
        height, width = mask.shape
        table = np.zeros((height + 1, width + 1), dtype=np.int64)
        np.cumsum(np.cumsum(mask.astype(np.int64), axis=0), axis=1, out=table[1:, 1:])
        return cls(table)

    @property
    def shape(self) -> tuple[int, int]:
        """Return (height, width) of the underlying mask."""
        rows, cols = self._table.shape
        return (rows - 1, cols - 1)

    @property
    def total(self) -> int:
        """Return the number of tissue pixels in the whole mask."""
        return int(self._table[-1, -1])

    def query(self, rect: CoarseRect) -> int:
        """Count tissue pixels in ``rect`` after clamping it to the mask."""
        height, width = self.shape
        r0, c0, r1, c1 = rect.clamp(height, width)
        t = self._table
        return int(t[r1, c1] - t[r0, c1] - t[r1, c0] + t[r0, c0])

    def query_many(
        self,
        bounds: npt.NDArray[np.int64],
    ) -> tuple[npt.NDArray[np.int64], npt.NDArray[np.int64]]:
        """Vectorised ``query`` for an (N, 4) array of (row0, col0, row1, col1).

        Returns:
            (counts, areas): tissue pixel counts and clamped rectangle areas.
        """
        height, width = self.shape
        bounds = np.asarray(bounds, dtype=np.int64).reshape(-1, 4)
        r0 = np.clip(bounds[:, 0], 0, height)
        c0 = np.clip(bounds[:, 1], 0, width)
        r1 = np.clip(bounds[:, 2], r0, height)
        c1 = np.clip(bounds[:, 3], c0, width)
        t = self._table
        counts = t[r1, c1] - t[r0, c1] - t[r1, c0] + t[r0, c0]
        areas = (r1 - r0) * (c1 - c0)
        return counts, areas
