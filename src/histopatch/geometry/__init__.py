"""Geometry module for histopatch.

Key Components:
    - Primitives: Region (Level-0) and CoarseRect (segmented level)
    - Transforms: conservative Level-0 -> coarse mapping and projections
    - Overlays: segmentation preview and tile-crossed thumbnails

Example:
    from histopatch.geometry import Region, to_coarse_rect

    rect = to_coarse_rect(Region(x=0, y=0, width=512, height=512), geometry)
"""

from histopatch.geometry.overlay import (
    AxisGuideGenerator,
    OverlayStyle,
    draw_patch_markers,
    render_segmentation_preview,
)
from histopatch.geometry.primitives import CoarseRect, Region
from histopatch.geometry.transforms import (
    project_to_image,
    to_coarse_bounds,
    to_coarse_rect,
)

__all__ = [
    "AxisGuideGenerator",
    "CoarseRect",
    "OverlayStyle",
    "Region",
    "draw_patch_markers",
    "project_to_image",
    "render_segmentation_preview",
    "to_coarse_bounds",
    "to_coarse_rect",
]
