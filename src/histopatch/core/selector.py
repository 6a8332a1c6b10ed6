"""Patch descriptors and threshold selection.

Selection is a pure decision on ``content_ratio``. Persisting pixels and
drawing markers happen afterwards on the selected patches and never feed
back into the decision.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from histopatch.config import ConfigError
from histopatch.geometry.primitives import Region


@dataclass(frozen=True)
class Patch:
    """A scored full-resolution patch.

    Attributes:
        row: Level-0 y of the top-left corner.
        col: Level-0 x of the top-left corner.
        width: Width in Level-0 pixels.
        height: Height in Level-0 pixels.
        content_ratio: Tissue fraction of the patch footprint, in [0, 1].
        selected: Whether the patch passed the content threshold.
    """

    row: int
    col: int
    width: int
    height: int
    content_ratio: float
    selected: bool = False

    @property
    def size(self) -> tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    @property
    def region(self) -> Region:
        return Region(x=self.col, y=self.row, width=self.width, height=self.height)

    @classmethod
    def from_region(cls, region: Region, content_ratio: float) -> Patch:
        return cls(
            row=region.y,
            col=region.x,
            width=region.width,
            height=region.height,
            content_ratio=content_ratio,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize the descriptor for the run manifest."""
        return {
            "row": self.row,
            "col": self.col,
            "width": self.width,
            "height": self.height,
            "content_ratio": self.content_ratio,
        }


def validate_threshold(threshold: float) -> float:
    """Return ``threshold`` if it lies in [0, 1].

    Raises:
        ConfigError: If the threshold is outside [0, 1] or NaN.
    """
    if math.isnan(threshold) or not 0.0 <= threshold <= 1.0:
        raise ConfigError(
            f"Content threshold must be in [0, 1], got {threshold}",
            "content_threshold",
        )
    return threshold


class PatchSelector:
    """Keeps patches whose content ratio reaches the threshold (inclusive)."""

    __slots__ = ("_threshold",)

    def __init__(self, threshold: float = 0.5) -> None:
        self._threshold = validate_threshold(threshold)

    @property
    def threshold(self) -> float:
        return self._threshold

    def is_selected(self, patch: Patch) -> bool:
        return patch.content_ratio >= self._threshold

    def mark(self, patches: Iterable[Patch]) -> list[Patch]:
        """Return every patch with its ``selected`` flag set."""
        return [replace(p, selected=self.is_selected(p)) for p in patches]

    def select(self, patches: Iterable[Patch]) -> list[Patch]:
        """Return the selected patches, in input order."""
        return [p for p in self.mark(patches) if p.selected]
