"""Type definitions for WSI data layer.

Contains data models and protocols for the WSI abstraction layer.
All coordinates follow the OpenSlide convention where Level-0 is the
highest resolution (full magnification).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from PIL import Image

from histopatch.wsi.exceptions import GeometryError

# Segmenters and readers may round level dimensions differently by one pixel
MASK_SHAPE_TOLERANCE: int = 1


@dataclass(frozen=True)
class WSIMetadata:
    """Immutable metadata for a Whole Slide Image.

    Attributes:
        path: Absolute path to the WSI file.
        width: Width of Level-0 (highest resolution) in pixels.
        height: Height of Level-0 (highest resolution) in pixels.
        level_count: Number of pyramid levels available.
        level_dimensions: Tuple of (width, height) for each level.
            Index 0 is Level-0 (highest resolution).
        level_downsamples: Downsample factors reported by the slide.
        vendor: Slide scanner vendor (e.g., "aperio", "hamamatsu").
    """

    path: str
    width: int
    height: int
    level_count: int
    level_dimensions: tuple[tuple[int, int], ...]
    level_downsamples: tuple[float, ...]
    vendor: str = "unknown"

    @property
    def dimensions(self) -> tuple[int, int]:
        """Return Level-0 dimensions as (width, height)."""
        return (self.width, self.height)

    def get_level_dimensions(self, level: int) -> tuple[int, int]:
        """Get dimensions for a specific pyramid level.

        Raises:
            GeometryError: If level is out of range.
        """
        if level < 0 or level >= self.level_count:
            raise GeometryError(
                f"Level {level} out of range [0, {self.level_count - 1}]",
                path=self.path,
                level=level,
            )
        return self.level_dimensions[level]


@dataclass(frozen=True)
class PyramidGeometry:
    """Relation between the full-resolution grid and one coarse level.

    Downsample factors are the ratio of level dimensions rather than the
    nominal factors stored by the scanner: pyramids may use arbitrary,
    non power-of-two ratios and round level sizes.

    Attributes:
        level: Coarse pyramid level index.
        downsample_x: full_width / coarse_width.
        downsample_y: full_height / coarse_height.
        full_width: Level-0 width in pixels.
        full_height: Level-0 height in pixels.
        coarse_width: Width of the coarse level in pixels.
        coarse_height: Height of the coarse level in pixels.
    """

    level: int
    downsample_x: float
    downsample_y: float
    full_width: int
    full_height: int
    coarse_width: int
    coarse_height: int

    @classmethod
    def from_dimensions(
        cls,
        level: int,
        full: tuple[int, int],
        coarse: tuple[int, int],
    ) -> PyramidGeometry:
        """Build geometry from (width, height) pairs of Level-0 and a level.

        Raises:
            GeometryError: If any dimension is non-positive.
        """
        full_w, full_h = full
        coarse_w, coarse_h = coarse
        if min(full_w, full_h, coarse_w, coarse_h) <= 0:
            raise GeometryError(
                f"Level dimensions must be positive, got full={full}, coarse={coarse}",
                level=level,
            )
        return cls(
            level=level,
            downsample_x=full_w / coarse_w,
            downsample_y=full_h / coarse_h,
            full_width=full_w,
            full_height=full_h,
            coarse_width=coarse_w,
            coarse_height=coarse_h,
        )

    @classmethod
    def from_metadata(cls, metadata: WSIMetadata, level: int) -> PyramidGeometry:
        """Build geometry for ``level`` of an opened slide.

        Raises:
            GeometryError: If the level is missing or dimensions are invalid.
        """
        coarse = metadata.get_level_dimensions(level)
        try:
            return cls.from_dimensions(level, metadata.dimensions, coarse)
        except GeometryError as e:
            raise GeometryError(e.message, path=metadata.path, level=level) from e

    @property
    def coarse_shape(self) -> tuple[int, int]:
        """Return (height, width) of the coarse level, numpy order."""
        return (self.coarse_height, self.coarse_width)

    def check_mask_shape(self, shape: tuple[int, ...]) -> None:
        """Verify that a coarse mask of ``shape`` belongs to this level.

        Args:
            shape: numpy shape (height, width) of the mask.

        Raises:
            GeometryError: If the mask is not 2-D or its size differs from
                the level by more than one pixel on either axis.
        """
        if len(shape) != 2:
            raise GeometryError(f"Mask must be 2-D, got shape {shape}", level=self.level)
        height, width = shape
        if (
            abs(height - self.coarse_height) > MASK_SHAPE_TOLERANCE
            or abs(width - self.coarse_width) > MASK_SHAPE_TOLERANCE
        ):
            raise GeometryError(
                f"Mask shape {shape} does not match level size "
                f"{self.coarse_shape} (height, width)",
                level=self.level,
            )


class WSIReaderProtocol(Protocol):
    """Protocol defining the interface for WSI readers.

    This protocol allows for dependency injection and testing with
    mock implementations.
    """

    def get_metadata(self) -> WSIMetadata:
        """Return metadata for the opened WSI."""
        ...

    def read_region(
        self,
        location: tuple[int, int],
        level: int,
        size: tuple[int, int],
    ) -> Image.Image:
        """Read a region from the WSI.

        Args:
            location: (x, y) tuple of top-left corner in LEVEL-0 coordinates.
            level: Pyramid level to read from (0 = highest resolution).
            size: (width, height) of the region AT THE SPECIFIED LEVEL.

        Returns:
            PIL Image in RGB mode.

        Raises:
            WSIReadError: If the read operation fails.
        """
        ...

    def read_level(self, level: int) -> Image.Image:
        """Read an entire pyramid level as one RGB image."""
        ...

    def get_thumbnail(self, max_size: tuple[int, int]) -> Image.Image:
        """Get an RGB thumbnail of the slide fitting within ``max_size``."""
        ...

    def close(self) -> None:
        """Close the WSI file and release resources."""
        ...
