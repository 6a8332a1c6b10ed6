"""Tissue mask construction from labels and background ids."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np
import numpy.typing as npt

from histopatch.vision.labels import LabelMask


def build_tissue_mask(
    mask: LabelMask,
    background: Iterable[int],
) -> npt.NDArray[np.bool_]:
    """Mark every pixel whose label is not background as tissue.

    Args:
        mask: Coarse label map.
        background: Background label ids.

    Returns:
        Read-only boolean array shaped like ``mask`` (True = tissue).
    """
    ids = np.fromiter(background, dtype=np.int64)
    tissue = ~np.isin(mask.labels, ids)
    tissue.setflags(write=False)
    return tissue
