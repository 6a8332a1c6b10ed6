"""Graph-based segmentation of the coarse slide image.

The segmentation algorithm is consumed as a black box behind
``SegmenterProtocol``: smoothed image in, integer label map out. The
default engine is scikit-image's Felzenszwalb-Huttenlocher implementation,
whose ``scale``/``sigma``/``min_size`` parameters correspond to the
classic ``segment sigma k min`` binary.
"""

from __future__ import annotations

from typing import Any, Protocol

import numpy as np
import numpy.typing as npt
from skimage.segmentation import felzenszwalb

from histopatch.utils.logging import get_logger
from histopatch.vision.labels import LabelMask

logger = get_logger(__name__)


class SegmenterProtocol(Protocol):
    """Interface of segmentation engines.

    Any graph-based region-merging engine can satisfy it; tests inject
    fixed label maps through it.
    """

    def segment(
        self,
        image: npt.NDArray[Any],
        sigma: float,
        k: float,
        min_size: int,
    ) -> LabelMask:
        """Segment an (H, W) or (H, W, C) image into labelled regions.

        Args:
            image: Coarse image, usually the edge image.
            sigma: Gaussian smoothing applied before segmenting.
            k: Threshold function scale; larger values merge more.
            min_size: Minimum segment size enforced by post-processing.

        Returns:
            LabelMask with the same height and width as ``image``.
        """
        ...


class FelzenszwalbSegmenter:
    """SegmenterProtocol implementation backed by scikit-image."""

    def segment(
        self,
        image: npt.NDArray[Any],
        sigma: float,
        k: float,
        min_size: int,
    ) -> LabelMask:
        """Run Felzenszwalb segmentation and wrap the result.

        Raises:
            ValueError: If the image is neither 2-D nor 3-D.
        """
        arr = np.asarray(image)
        if arr.ndim not in (2, 3):
            raise ValueError(f"Expected (H, W) or (H, W, C) image, got shape {arr.shape}")

        channel_axis = -1 if arr.ndim == 3 else None
        labels = felzenszwalb(
            arr,
            scale=k,
            sigma=sigma,
            min_size=min_size,
            channel_axis=channel_axis,
        )
        mask = LabelMask(labels)
        logger.debug(
            "Segmented coarse image",
            shape=mask.shape,
            segments=len(mask.labels_present()),
        )
        return mask

