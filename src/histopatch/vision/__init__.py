"""Vision module: segmentation, background classification and tissue masks.

Pipeline at the coarse resolution:
    edge image -> segmenter -> LabelMask -> BackgroundClassifier
    -> tissue mask -> IntegralImage
"""

from __future__ import annotations

from histopatch.vision.background import (
    BackgroundClassifier,
    BorderSpec,
    CornerSpec,
    classify,
    validate_window_specs,
)
from histopatch.vision.edges import produce_edges
from histopatch.vision.integral import IntegralImage
from histopatch.vision.labels import LabelMask
from histopatch.vision.segmentation import FelzenszwalbSegmenter, SegmenterProtocol
from histopatch.vision.tissue import build_tissue_mask

__all__ = [
    "BackgroundClassifier",
    "BorderSpec",
    "CornerSpec",
    "FelzenszwalbSegmenter",
    "IntegralImage",
    "LabelMask",
    "SegmenterProtocol",
    "build_tissue_mask",
    "classify",
    "produce_edges",
    "validate_window_specs",
]
