"""WSI data layer for histopatch.

This package wraps OpenSlide to query pyramid metadata, read coarse
levels for segmentation and read full-resolution patches.

Key Components:
    - WSIReader: Main class for opening and reading WSI files
    - WSIMetadata: Immutable dataclass for slide properties
    - PyramidGeometry: Full-resolution <-> coarse-level relation
    - WSIReaderProtocol: Protocol for dependency injection

Example:
    from histopatch.wsi import PyramidGeometry, WSIReader

    with WSIReader("slide.svs") as reader:
        geometry = PyramidGeometry.from_metadata(reader.get_metadata(), level=1)
        coarse = reader.read_level(geometry.level)
"""

from histopatch.wsi.exceptions import (
    GeometryError,
    PatchIOError,
    WSIError,
    WSIOpenError,
    WSIReadError,
)
from histopatch.wsi.reader import SUPPORTED_EXTENSIONS, WSIReader, flatten_rgba
from histopatch.wsi.types import PyramidGeometry, WSIMetadata, WSIReaderProtocol

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "GeometryError",
    "PatchIOError",
    "PyramidGeometry",
    "WSIError",
    "WSIMetadata",
    "WSIOpenError",
    "WSIReadError",
    "WSIReader",
    "WSIReaderProtocol",
    "flatten_rgba",
]
