"""Persistence of run artifacts.

The pipeline decides what to write; writers decide how. The file writer
lays out one run as:

    <output_dir>/
        patches/<slide_id>_<row>_<col>.<format>
        <slide_id>_edges.png
        <slide_id>_segmented.png
        <slide_id>_tilecrossed.png
        <slide_id>_preview.png
        <slide_id>_patches.json
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from PIL import Image

from histopatch.core.selector import Patch
from histopatch.utils.logging import get_logger

logger = get_logger(__name__)


class ArtifactWriterProtocol(Protocol):
    """Interface of artifact writers; calls may come from worker threads."""

    def write_patch(self, patch: Patch, image: Image.Image) -> Path:
        """Persist the pixels of one patch and return where they went."""
        ...

    def write_image(self, name: str, image: Image.Image) -> Path:
        """Persist a named run-level image (edges, mask, overview)."""
        ...

    def write_manifest(self, patches: Sequence[Patch], metadata: dict[str, Any]) -> Path:
        """Persist descriptors of the selected patches."""
        ...


class FileArtifactWriter:
    """Writes artifacts below ``output_dir`` using Pillow encoders.

    Attributes:
        output_dir: Root directory of the run.
        slide_id: Prefix of every file name.
        patch_format: Pillow format name of the patch files.
    """

    __slots__ = ("_output_dir", "_patch_dir", "_patch_format", "_slide_id")

    def __init__(
        self,
        output_dir: str | Path,
        slide_id: str,
        patch_format: str = "png",
    ) -> None:
        self._output_dir = Path(output_dir)
        self._patch_dir = self._output_dir / "patches"
        self._slide_id = slide_id
        self._patch_format = patch_format.lower().lstrip(".")

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @property
    def patch_dir(self) -> Path:
        return self._patch_dir

    def patch_path(self, patch: Patch) -> Path:
        return self._patch_dir / (
            f"{self._slide_id}_{patch.row}_{patch.col}.{self._patch_format}"
        )

    def write_patch(self, patch: Patch, image: Image.Image) -> Path:
        self._patch_dir.mkdir(parents=True, exist_ok=True)
        path = self.patch_path(patch)
        image.save(path)
        return path

    def write_image(self, name: str, image: Image.Image) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        path = self._output_dir / f"{self._slide_id}_{name}.png"
        image.save(path)
        logger.info("Image written", name=name, path=str(path))
        return path

    def write_manifest(self, patches: Sequence[Patch], metadata: dict[str, Any]) -> Path:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        path = self._output_dir / f"{self._slide_id}_patches.json"
        payload = {**metadata, "patches": [p.to_dict() for p in patches]}
        path.write_text(json.dumps(payload, indent=2))
        logger.info("Manifest written", path=str(path), patches=len(patches))
        return path
