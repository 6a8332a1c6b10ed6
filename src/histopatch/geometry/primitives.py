"""Geometry primitives for histopatch.

``Region`` is a full-resolution (Level-0) rectangle validated by pydantic;
``CoarseRect`` is a light half-open rectangle in coarse-level pixels that
may be empty. (0, 0) is the top-left corner in both systems.
"""

from __future__ import annotations

from typing import NamedTuple, Self

from pydantic import BaseModel, Field


class Region(BaseModel, frozen=True):
    """A rectangular region in Level-0 coordinates.

    The region spans [x, x + width) horizontally and [y, y + height)
    vertically.

    Attributes:
        x: Left edge X coordinate (>= 0).
        y: Top edge Y coordinate (>= 0).
        width: Horizontal extent in pixels (> 0).
        height: Vertical extent in pixels (> 0).
    """

    x: int = Field(..., ge=0, description="Left edge X coordinate")
    y: int = Field(..., ge=0, description="Top edge Y coordinate")
    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")

    @property
    def area(self) -> int:
        """Calculate the area in square pixels."""
        return self.width * self.height

    @property
    def right(self) -> int:
        """Return the X coordinate of the right edge (exclusive)."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Return the Y coordinate of the bottom edge (exclusive)."""
        return self.y + self.height

    @property
    def location(self) -> tuple[int, int]:
        """Return the top-left corner as (x, y), OpenSlide order."""
        return (self.x, self.y)

    @property
    def size(self) -> tuple[int, int]:
        """Return (width, height), OpenSlide order."""
        return (self.width, self.height)

    def to_tuple(self) -> tuple[int, int, int, int]:
        """Convert to (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    @classmethod
    def from_tuple(cls, bbox: tuple[int, int, int, int]) -> Self:
        """Create Region from (x, y, width, height) tuple."""
        return cls(x=bbox[0], y=bbox[1], width=bbox[2], height=bbox[3])


class CoarseRect(NamedTuple):
    """Half-open rectangle [row0, row1) x [col0, col1) in coarse pixels."""

    row0: int
    col0: int
    row1: int
    col1: int

    @property
    def height(self) -> int:
        return max(0, self.row1 - self.row0)

    @property
    def width(self) -> int:
        return max(0, self.col1 - self.col0)

    @property
    def area(self) -> int:
        return self.height * self.width

    @property
    def is_empty(self) -> bool:
        return self.area == 0

    def clamp(self, height: int, width: int) -> CoarseRect:
        """Clip the rectangle to [0, height] x [0, width].

        A rectangle lying entirely outside collapses to an empty one.
        """
        row0 = min(max(self.row0, 0), height)
        col0 = min(max(self.col0, 0), width)
        row1 = min(max(self.row1, row0), height)
        col1 = min(max(self.col1, col0), width)
        return CoarseRect(row0, col0, row1, col1)
