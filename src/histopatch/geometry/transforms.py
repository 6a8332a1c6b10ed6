"""Coordinate transformations between pyramid levels.

Coordinate Systems:
    - Full resolution: Level-0 pixel coordinates (x right, y down)
    - Coarse: pixel coordinates of the segmented pyramid level
    - Thumbnail: pixel coordinates of an overview image

Full -> coarse mapping is conservative: origins are floored and far edges
are ceiled, so the coarse rectangle always covers the projection of the
full-resolution rectangle and over-covers by less than one coarse pixel per
side. The arithmetic is done in integers using the level dimensions
directly (x / (full / coarse) == x * coarse / full), which avoids the
floating point drift of non power-of-two downsample factors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from histopatch.geometry.primitives import CoarseRect, Region

if TYPE_CHECKING:
    from histopatch.wsi.types import PyramidGeometry


def _floor_scale(value: int, num: int, den: int) -> int:
    return (value * num) // den


def _ceil_scale(value: int, num: int, den: int) -> int:
    return -((-value * num) // den)


def to_coarse_rect(region: Region, geometry: PyramidGeometry) -> CoarseRect:
    """Map a full-resolution region onto the coarse level.

    Args:
        region: Rectangle in Level-0 coordinates.
        geometry: Pyramid geometry of the coarse level.

    Returns:
        CoarseRect covering the region's projection. It is not clamped to
        the level extent.
    """
    full_w, full_h = geometry.full_width, geometry.full_height
    coarse_w, coarse_h = geometry.coarse_width, geometry.coarse_height
    return CoarseRect(
        row0=_floor_scale(region.y, coarse_h, full_h),
        col0=_floor_scale(region.x, coarse_w, full_w),
        row1=_ceil_scale(region.bottom, coarse_h, full_h),
        col1=_ceil_scale(region.right, coarse_w, full_w),
    )


def to_coarse_bounds(
    boxes: npt.NDArray[np.int64],
    geometry: PyramidGeometry,
) -> npt.NDArray[np.int64]:
    """Vectorised ``to_coarse_rect`` for an (N, 4) array of (x, y, w, h).

    Returns:
        (N, 4) int64 array of (row0, col0, row1, col1).
    """
    boxes = np.asarray(boxes, dtype=np.int64).reshape(-1, 4)
    x, y, w, h = boxes.T
    full_w, full_h = geometry.full_width, geometry.full_height
    coarse_w, coarse_h = geometry.coarse_width, geometry.coarse_height
    return np.stack(
        [
            (y * coarse_h) // full_h,
            (x * coarse_w) // full_w,
            -((-(y + h) * coarse_h) // full_h),
            -((-(x + w) * coarse_w) // full_w),
        ],
        axis=1,
    )


def project_to_image(
    region: Region,
    full_size: tuple[int, int],
    image_size: tuple[int, int],
) -> tuple[float, float, float, float]:
    """Project a Level-0 region into an overview image (e.g. a thumbnail).

    Args:
        region: Rectangle in Level-0 coordinates.
        full_size: (width, height) of Level-0.
        image_size: (width, height) of the overview image.

    Returns:
        (left, top, right, bottom) box in image pixels.

    Raises:
        ValueError: If any size is non-positive.
    """
    if min(*full_size, *image_size) <= 0:
        raise ValueError(
            f"Sizes must be positive, got full={full_size}, image={image_size}"
        )
    scale_x = image_size[0] / full_size[0]
    scale_y = image_size[1] / full_size[1]
    return (
        region.x * scale_x,
        region.y * scale_y,
        region.right * scale_x,
        region.bottom * scale_y,
    )
