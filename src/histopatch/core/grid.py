"""Full-resolution patch grid.

Patches tile [0, width) x [0, height) in row-major order with a stride of
``patch_size`` (no overlap). Trailing patches at the right and bottom edges
are narrower than ``patch_size``; they are dropped by default because a
tissue ratio over a truncated window is not comparable with full patches.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from histopatch.config import ConfigError
from histopatch.geometry.primitives import Region


@dataclass(frozen=True)
class PatchGrid:
    """Restartable, lazily evaluated grid of Level-0 patch regions.

    Attributes:
        width: Level-0 width in pixels.
        height: Level-0 height in pixels.
        patch_size: Patch side in pixels.
        keep_partial: Emit truncated edge patches instead of dropping them.

    Example:
        >>> grid = PatchGrid(width=1000, height=1000, patch_size=512)
        >>> [r.to_tuple() for r in grid]
        [(0, 0, 512, 512)]
    """

    width: int
    height: int
    patch_size: int
    keep_partial: bool = False

    def __post_init__(self) -> None:
        if self.patch_size <= 0:
            raise ConfigError(
                f"Patch size must be positive, got {self.patch_size}", "patch_size"
            )
        if self.width <= 0 or self.height <= 0:
            raise ConfigError(
                f"Image dimensions must be positive, got {self.width}x{self.height}"
            )

    def _count(self, extent: int) -> int:
        if self.keep_partial:
            return -(-extent // self.patch_size)
        return extent // self.patch_size

    @property
    def shape(self) -> tuple[int, int]:
        """Return (rows, cols) of the grid."""
        return (self._count(self.height), self._count(self.width))

    def __len__(self) -> int:
        rows, cols = self.shape
        return rows * cols

    def __iter__(self) -> Iterator[Region]:
        rows, cols = self.shape
        size = self.patch_size
        for row in range(rows):
            y = row * size
            h = min(size, self.height - y)
            for col in range(cols):
                x = col * size
                yield Region(x=x, y=y, width=min(size, self.width - x), height=h)

    def boxes(self) -> npt.NDArray[np.int64]:
        """Return the grid as an (N, 4) array of (x, y, width, height)."""
        rows, cols = self.shape
        size = self.patch_size
        ys, xs = np.meshgrid(
            np.arange(rows, dtype=np.int64) * size,
            np.arange(cols, dtype=np.int64) * size,
            indexing="ij",
        )
        xs = xs.ravel()
        ys = ys.ravel()
        widths = np.minimum(size, self.width - xs)
        heights = np.minimum(size, self.height - ys)
        return np.stack([xs, ys, widths, heights], axis=1)
