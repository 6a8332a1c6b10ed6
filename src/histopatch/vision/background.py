"""Background classification of segmented regions.

Glass is assumed to reach the edges of the slide while tissue sits in the
interior. Every segment that shows up inside a sampling window along the
chosen borders (or in the chosen corners) of the coarse label map is
classified as background.

Window layout for a mask of height H, width W and window width n
(n is clamped to the mask extent):

    left:   rows [0, H),     cols [0, n)
    bottom: rows [H - n, H), cols [0, W)
    right:  rows [0, H),     cols [W - n, W)
    top:    rows [0, n),     cols [0, W)

Corners are n x n squares at top_left, bottom_left, bottom_right and
top_right.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import Self

import numpy as np
import numpy.typing as npt

from histopatch.config import ConfigError
from histopatch.vision.labels import LabelMask


def _parse_flags(value: str, parameter: str) -> tuple[bool, bool, bool, bool]:
    if len(value) != 4 or set(value) - {"0", "1"}:
        raise ConfigError(
            f"Expected a four digit string of 0/1, got {value!r}",
            parameter=parameter,
        )
    a, b, c, d = (digit == "1" for digit in value)
    return (a, b, c, d)


@dataclass(frozen=True)
class BorderSpec:
    """Which image borders are sampled for background."""

    left: bool = False
    bottom: bool = False
    right: bool = False
    top: bool = False

    @classmethod
    def parse(cls, value: str) -> Self:
        """Parse a left/bottom/right/top digit string such as ``"1010"``."""
        return cls(*_parse_flags(value, "borders"))

    @property
    def active(self) -> bool:
        return any(astuple(self))

    def windows(self, height: int, width: int, lines: int) -> list[tuple[slice, slice]]:
        """Return (row, col) slices of the active border bands."""
        n_rows = min(lines, height)
        n_cols = min(lines, width)
        windows = []
        if self.left:
            windows.append((slice(0, height), slice(0, n_cols)))
        if self.bottom:
            windows.append((slice(height - n_rows, height), slice(0, width)))
        if self.right:
            windows.append((slice(0, height), slice(width - n_cols, width)))
        if self.top:
            windows.append((slice(0, n_rows), slice(0, width)))
        return windows


@dataclass(frozen=True)
class CornerSpec:
    """Which image corners are sampled for background."""

    top_left: bool = False
    bottom_left: bool = False
    bottom_right: bool = False
    top_right: bool = False

    @classmethod
    def parse(cls, value: str) -> Self:
        """Parse a top_left/bottom_left/bottom_right/top_right digit string."""
        return cls(*_parse_flags(value, "corners"))

    @property
    def active(self) -> bool:
        return any(astuple(self))

    def windows(self, height: int, width: int, lines: int) -> list[tuple[slice, slice]]:
        """Return (row, col) slices of the active corner squares."""
        top = slice(0, min(lines, height))
        bottom = slice(height - min(lines, height), height)
        left = slice(0, min(lines, width))
        right = slice(width - min(lines, width), width)
        windows = []
        if self.top_left:
            windows.append((top, left))
        if self.bottom_left:
            windows.append((bottom, left))
        if self.bottom_right:
            windows.append((bottom, right))
        if self.top_right:
            windows.append((top, right))
        return windows


WindowSpec = BorderSpec | CornerSpec


def validate_window_specs(borders: BorderSpec, corners: CornerSpec) -> WindowSpec:
    """Return the single active spec.

    Raises:
        ConfigError: If both or neither of the specs are active.
    """
    if borders.active and corners.active:
        raise ConfigError("Borders and corners cannot both be active", "borders")
    if not borders.active and not corners.active:
        raise ConfigError("One of borders or corners must be active", "borders")
    return borders if borders.active else corners


def classify(mask: LabelMask, spec: WindowSpec, lines: int) -> frozenset[int]:
    """Collect every label found inside the sampling windows of ``spec``.

    An inactive spec yields no background at all.

    Args:
        mask: Coarse label map.
        spec: Active border or corner specification.
        lines: Window width in coarse pixels (clamped to the mask).

    Returns:
        Background label ids.

    Raises:
        ConfigError: If lines is not positive.
    """
    if lines <= 0:
        raise ConfigError(f"Number of lines must be positive, got {lines}", "lines")

    labels = mask.labels
    background: set[int] = set()
    for rows, cols in spec.windows(mask.height, mask.width, lines):
        window: npt.NDArray[np.int64] = labels[rows, cols]
        background.update(int(v) for v in np.unique(window))
    return frozenset(background)


class BackgroundClassifier:
    """Validated border/corner configuration applied to label masks.

    Attributes:
        spec: The active border or corner specification.
        lines: Window width in coarse pixels.
    """

    __slots__ = ("_lines", "_spec")

    def __init__(
        self,
        borders: BorderSpec | None = None,
        corners: CornerSpec | None = None,
        lines: int = 100,
    ) -> None:
        """Validate the configuration.

        Raises:
            ConfigError: If borders and corners are both active or both
                empty, or if lines is not positive.
        """
        if lines <= 0:
            raise ConfigError(f"Number of lines must be positive, got {lines}", "lines")
        self._spec = validate_window_specs(borders or BorderSpec(), corners or CornerSpec())
        self._lines = lines

    @classmethod
    def from_strings(cls, borders: str, corners: str, lines: int) -> BackgroundClassifier:
        """Build from digit strings such as ``"1111"`` and ``"0000"``."""
        return cls(BorderSpec.parse(borders), CornerSpec.parse(corners), lines)

    @property
    def spec(self) -> WindowSpec:
        return self._spec

    @property
    def lines(self) -> int:
        return self._lines

    def classify(self, mask: LabelMask) -> frozenset[int]:
        """Return the background label ids of ``mask``."""
        return classify(mask, self._spec, self._lines)
