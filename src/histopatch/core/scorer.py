"""Tissue content scoring of full-resolution patches.

A patch's content ratio is the fraction of tissue pixels inside its
footprint on the coarse level:

1. Map the Level-0 region to a covering coarse rectangle.
2. Clamp that rectangle to the mask (rounding can push it past the edge).
3. Divide the tissue count by the clamped area.

An empty clamped rectangle scores 0, i.e. it is treated as background.
Scoring only reads the shared geometry and integral table, so it needs no
locking; the batch path evaluates every patch in one vectorised lookup.
"""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np
import numpy.typing as npt

from histopatch.core.selector import Patch
from histopatch.geometry.primitives import Region
from histopatch.geometry.transforms import to_coarse_bounds, to_coarse_rect
from histopatch.vision.integral import IntegralImage
from histopatch.wsi.types import PyramidGeometry


class ContentScorer:
    """Scores patches against one slide's integral image.

    Attributes:
        geometry: Full-resolution <-> coarse relation of the slide.
        integral: Summed-area table of the coarse tissue mask.
    """

    __slots__ = ("_geometry", "_integral")

    def __init__(self, geometry: PyramidGeometry, integral: IntegralImage) -> None:
        self._geometry = geometry
        self._integral = integral

    @property
    def geometry(self) -> PyramidGeometry:
        return self._geometry

    @property
    def integral(self) -> IntegralImage:
        return self._integral

    def score(self, region: Region) -> float:
        """Return the tissue ratio of ``region`` in [0, 1]."""
        height, width = self._integral.shape
        rect = to_coarse_rect(region, self._geometry).clamp(height, width)
        if rect.is_empty:
            return 0.0
        return self._integral.query(rect) / rect.area

    def score_boxes(self, boxes: npt.NDArray[np.int64]) -> npt.NDArray[np.float64]:
        """Score an (N, 4) array of (x, y, width, height) boxes at once."""
        bounds = to_coarse_bounds(boxes, self._geometry)
        counts, areas = self._integral.query_many(bounds)
        ratios = np.zeros(len(bounds), dtype=np.float64)
        np.divide(counts, areas, out=ratios, where=areas > 0)
        return ratios

    def score_patches(self, regions: Iterable[Region]) -> list[Patch]:
        """Score regions and wrap them as unselected patches, in order."""
        regions = list(regions)
        if not regions:
            return []
        boxes = np.array([r.to_tuple() for r in regions], dtype=np.int64)
        ratios = self.score_boxes(boxes)
        return [
            Patch.from_region(region, float(ratio))
            for region, ratio in zip(regions, ratios, strict=True)
        ]
