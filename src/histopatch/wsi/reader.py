"""WSI Reader implementation wrapping OpenSlide.

OpenSlide handles are safe to share between threads, so a single reader
serves every extraction worker of a run.
"""

from __future__ import annotations

import ctypes
from pathlib import Path
from typing import TYPE_CHECKING

import openslide
from PIL import Image

from histopatch.wsi.exceptions import WSIOpenError, WSIReadError
from histopatch.wsi.types import WSIMetadata

if TYPE_CHECKING:
    from types import TracebackType

# Supported WSI file extensions (case-insensitive)
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".svs",  # Aperio
        ".ndpi",  # Hamamatsu
        ".tiff",  # Generic tiled TIFF
        ".tif",
        ".mrxs",  # 3DHISTECH MIRAX
        ".vms",  # Hamamatsu VMS
        ".scn",  # Leica SCN
        ".bif",  # Ventana BIF
    }
)

# Glass shows up as white in brightfield slides; empty tiles do the same
_BACKGROUND_RGBA = (255, 255, 255, 255)


def flatten_rgba(image: Image.Image) -> Image.Image:
    """Composite an RGBA image onto white and return it in RGB mode.

    OpenSlide reports pixels outside the scanned area as fully transparent.
    Dropping alpha would render them black, which reads as dense tissue to
    the edge detector.
    """
    if image.mode != "RGBA":
        return image.convert("RGB")
    background = Image.new("RGBA", image.size, _BACKGROUND_RGBA)
    return Image.alpha_composite(background, image).convert("RGB")


class WSIReader:
    """Reader for Whole Slide Images using OpenSlide.

    Usage:
        with WSIReader("/path/to/slide.svs") as reader:
            metadata = reader.get_metadata()
            coarse = reader.read_level(1)
            patch = reader.read_region((1024, 2048), level=0, size=(512, 512))

    Attributes:
        path: Path to the opened WSI file.
    """

    __slots__ = ("_metadata", "_path", "_slide")

    def __init__(self, path: str | Path) -> None:
        """Open a WSI file.

        Raises:
            WSIOpenError: If the file doesn't exist, has unsupported extension,
                or cannot be opened by OpenSlide.
        """
        self._path = Path(path).resolve()
        self._metadata: WSIMetadata | None = None
        self._slide: openslide.OpenSlide | None

        if not self._path.exists():
            raise WSIOpenError("File not found", path=self._path)

        suffix = self._path.suffix.lower()
        if suffix not in SUPPORTED_EXTENSIONS:
            raise WSIOpenError(
                f"Unsupported file extension '{suffix}'. "
                f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}",
                path=self._path,
            )

        try:
            self._slide = openslide.OpenSlide(str(self._path))
        except openslide.OpenSlideError as e:
            raise WSIOpenError(f"Failed to open WSI: {e}", path=self._path) from e

    @property
    def path(self) -> Path:
        """Return the path to the WSI file."""
        return self._path

    def _ensure_open(self) -> openslide.OpenSlide:
        slide = self._slide
        if slide is None:
            raise WSIReadError("WSI is closed", path=self._path)
        return slide

    def get_metadata(self) -> WSIMetadata:
        """Get pyramid metadata for the opened WSI (cached)."""
        if self._metadata is not None:
            return self._metadata

        slide = self._ensure_open()
        self._metadata = WSIMetadata(
            path=str(self._path),
            width=slide.dimensions[0],
            height=slide.dimensions[1],
            level_count=slide.level_count,
            level_dimensions=tuple(slide.level_dimensions),
            level_downsamples=tuple(slide.level_downsamples),
            vendor=slide.properties.get("openslide.vendor", "unknown"),
        )
        return self._metadata

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
            size: (width, height) of the region to read AT THE SPECIFIED LEVEL.

        Returns:
            PIL Image in RGB mode, transparent pixels flattened onto white.

        Raises:
            WSIReadError: If the parameters are invalid or OpenSlide fails.
        """
        slide = self._ensure_open()
        metadata = self.get_metadata()
        context = {"path": self._path, "level": level, "location": location, "size": size}

        if level < 0 or level >= metadata.level_count:
            raise WSIReadError(
                f"Invalid level {level}. "
                f"Must be in range [0, {metadata.level_count - 1}]",
                **context,
            )
        if size[0] <= 0 or size[1] <= 0:
            raise WSIReadError(
                f"Invalid size {size}. Width and height must be positive.",
                **context,
            )
        if location[0] < 0 or location[1] < 0:
            raise WSIReadError(
                f"Invalid location {location}. Coordinates must be non-negative.",
                **context,
            )

        try:
            rgba_image = slide.read_region(location, level, size)
        except (openslide.OpenSlideError, ctypes.ArgumentError) as e:
            raise WSIReadError(f"Failed to read region: {e}", **context) from e
        return flatten_rgba(rgba_image)

    def read_level(self, level: int) -> Image.Image:
        """Read a whole pyramid level, e.g. the coarse image to segment.

        Raises:
            WSIReadError: If the level is invalid or the read fails.
        """
        metadata = self.get_metadata()
        if level < 0 or level >= metadata.level_count:
            raise WSIReadError(
                f"Invalid level {level}. "
                f"Must be in range [0, {metadata.level_count - 1}]",
                path=self._path,
                level=level,
            )
        return self.read_region((0, 0), level, metadata.level_dimensions[level])

    def get_thumbnail(self, max_size: tuple[int, int]) -> Image.Image:
        """Get an RGB thumbnail that keeps the slide's aspect ratio.

        Raises:
            WSIReadError: If max_size is invalid or generation fails.
        """
        slide = self._ensure_open()

        if max_size[0] <= 0 or max_size[1] <= 0:
            raise WSIReadError(
                f"Invalid max_size {max_size}. Dimensions must be positive.",
                path=self._path,
            )

        try:
            thumbnail = slide.get_thumbnail(max_size)
        except openslide.OpenSlideError as e:
            raise WSIReadError(
                f"Failed to generate thumbnail: {e}",
                path=self._path,
            ) from e
        return flatten_rgba(thumbnail)

    def close(self) -> None:
        """Close the WSI file; further reads raise WSIReadError."""
        if self._slide is None:
            return
        self._slide.close()
        self._slide = None

    def __enter__(self) -> WSIReader:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager and close the slide."""
        self.close()

    def __repr__(self) -> str:
        """Return string representation."""
        return f"WSIReader(path={self._path!r})"
