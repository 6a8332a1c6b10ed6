"""End-to-end tissue patch extraction for one slide.

Stages:
    1. Segment: read the coarse level, compute the edge image and label it
       with the segmenter.
    2. Evaluate (pure): classify background labels, build the tissue mask
       and its integral image, score the patch grid and apply the threshold.
    3. Emit: write the manifest and, depending on the configuration, the
       selected patches, the tile-crossed overview, the segmentation and
       the edge image.

The integral image is complete before any patch is scored, and the
selection is final before any artifact is written.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image

from histopatch.config import PipelineConfig
from histopatch.core.extractor import (
    ExtractionCancelledError,
    ExtractionResult,
    PatchExtractor,
)
from histopatch.core.grid import PatchGrid
from histopatch.core.scorer import ContentScorer
from histopatch.core.selector import Patch, PatchSelector
from histopatch.core.writer import ArtifactWriterProtocol, FileArtifactWriter
from histopatch.geometry.overlay import draw_patch_markers, render_segmentation_preview
from histopatch.utils.logging import get_logger, set_correlation_context
from histopatch.vision.background import BackgroundClassifier
from histopatch.vision.edges import produce_edges
from histopatch.vision.integral import IntegralImage
from histopatch.vision.labels import LabelMask
from histopatch.vision.segmentation import FelzenszwalbSegmenter, SegmenterProtocol
from histopatch.vision.tissue import build_tissue_mask
from histopatch.wsi.types import PyramidGeometry, WSIReaderProtocol

logger = get_logger(__name__)


@dataclass(frozen=True)
class Segmentation:
    """Coarse-level products of the segmentation stage."""

    geometry: PyramidGeometry
    mask: LabelMask
    edges: npt.NDArray[np.uint8]


@dataclass(frozen=True)
class Evaluation:
    """Pure result of scoring a label mask.

    Attributes:
        background: Background label ids.
        tissue_pixels: Number of tissue pixels in the coarse mask.
        patches: Every grid patch with its score and selection flag.
    """

    background: frozenset[int]
    tissue_pixels: int
    patches: tuple[Patch, ...]

    @property
    def selected(self) -> tuple[Patch, ...]:
        return tuple(p for p in self.patches if p.selected)


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of a full run."""

    slide_id: str
    geometry: PyramidGeometry
    evaluation: Evaluation
    extraction: ExtractionResult | None = None
    artifacts: dict[str, Path] = field(default_factory=dict)

    @property
    def selected(self) -> tuple[Patch, ...]:
        """Selected patches, minus any that failed to extract."""
        if self.extraction is None:
            return self.evaluation.selected
        return tuple(patch for patch, _ in self.extraction.written)


class PatchPipeline:
    """Runs segmentation, scoring, selection and emission for a slide.

    Example:
        >>> config = PipelineConfig(slide_id="CMU-1", output_dir="out")
        >>> with WSIReader("CMU-1.svs") as reader:  # doctest: +SKIP
        ...     result = PatchPipeline(config).run(reader)
        ...     print(len(result.selected))
    """

    __slots__ = ("_classifier", "_config", "_segmenter", "_selector", "_writer")

    def __init__(
        self,
        config: PipelineConfig,
        segmenter: SegmenterProtocol | None = None,
        writer: ArtifactWriterProtocol | None = None,
    ) -> None:
        """Initialize the pipeline.

        Raises:
            ConfigError: If the border/corner or threshold values are invalid.
        """
        self._config = config
        self._segmenter = segmenter or FelzenszwalbSegmenter()
        self._writer = writer or FileArtifactWriter(
            config.output_dir, config.slide_id, config.patch_format
        )
        self._classifier = BackgroundClassifier.from_strings(
            config.borders, config.corners, config.number_of_lines
        )
        self._selector = PatchSelector(config.content_threshold)

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def segment(self, reader: WSIReaderProtocol) -> Segmentation:
        """Segment the configured coarse level of the slide.

        Raises:
            GeometryError: If the level is missing or the label mask does
                not match the level dimensions.
            WSIReadError: If the coarse level cannot be read.
        """
        config = self._config
        set_correlation_context(stage="segment")
        geometry = PyramidGeometry.from_metadata(reader.get_metadata(), config.level)
        logger.info(
            "Reading coarse level",
            level=geometry.level,
            coarse_size=(geometry.coarse_width, geometry.coarse_height),
            downsample=(round(geometry.downsample_x, 3), round(geometry.downsample_y, 3)),
        )

        coarse = reader.read_level(geometry.level)
        edges = produce_edges(coarse)
        mask = self._segmenter.segment(
            edges, sigma=config.sigma, k=config.k, min_size=config.min_size
        )
        geometry.check_mask_shape(mask.shape)
        logger.info("Segmentation finished", segments=len(mask.labels_present()))
        return Segmentation(geometry=geometry, mask=mask, edges=edges)

    def evaluate(self, geometry: PyramidGeometry, mask: LabelMask) -> Evaluation:
        """Classify, score and select patches for a label mask.

        Raises:
            GeometryError: If the mask does not match the level dimensions.
        """
        set_correlation_context(stage="evaluate")
        geometry.check_mask_shape(mask.shape)

        background = self._classifier.classify(mask)
        tissue = build_tissue_mask(mask, background)
        integral = IntegralImage.build(tissue)

        grid = PatchGrid(
            width=geometry.full_width,
            height=geometry.full_height,
            patch_size=self._config.patch_size,
            keep_partial=self._config.keep_partial_patches,
        )
        scorer = ContentScorer(geometry, integral)
        patches = self._selector.mark(scorer.score_patches(grid))
        evaluation = Evaluation(
            background=background,
            tissue_pixels=integral.total,
            patches=tuple(patches),
        )
        logger.info(
            "Scored patches",
            background_labels=sorted(background),
            tissue_fraction=round(integral.total / tissue.size, 4),
            total=len(evaluation.patches),
            selected=len(evaluation.selected),
            threshold=self._selector.threshold,
        )
        return evaluation

    def run(
        self,
        reader: WSIReaderProtocol,
        cancel_event: threading.Event | None = None,
    ) -> PipelineResult:
        """Run every stage on an opened slide.

        Args:
            reader: Opened slide.
            cancel_event: Set by the caller to abort; checked between
                stages and by every extraction task.

        Raises:
            GeometryError: On level or mask problems.
            ExtractionCancelledError: If ``cancel_event`` was set.
            ExtractionError: If every selected patch failed to extract.
        """
        config = self._config
        cancel_event = cancel_event or threading.Event()
        set_correlation_context(slide_id=config.slide_id)

        segmentation = self.segment(reader)
        self._check_cancelled(cancel_event)
        evaluation = self.evaluate(segmentation.geometry, segmentation.mask)
        self._check_cancelled(cancel_event)

        set_correlation_context(stage="emit")
        artifacts: dict[str, Path] = {}
        if config.save_edges:
            artifacts["edges"] = self._writer.write_image(
                "edges", Image.fromarray(segmentation.edges)
            )
        if config.save_mask:
            artifacts["segmented"] = self._writer.write_image(
                "segmented", Image.fromarray(segmentation.mask.to_rgb())
            )

        extraction = None
        if config.save_patches:
            set_correlation_context(stage="extract")
            extractor = PatchExtractor(reader, self._writer, max_workers=config.max_workers)
            extraction = extractor.extract(evaluation.selected, cancel_event=cancel_event)
            set_correlation_context(stage="emit")

        result = PipelineResult(
            slide_id=config.slide_id,
            geometry=segmentation.geometry,
            evaluation=evaluation,
            extraction=extraction,
            artifacts=artifacts,
        )
        # Failed patches are dropped from every output below
        if config.save_overlay:
            thumbnail = reader.get_thumbnail((config.thumbnail_size, config.thumbnail_size))
            full_size = (segmentation.geometry.full_width, segmentation.geometry.full_height)
            artifacts["tilecrossed"] = self._writer.write_image(
                "tilecrossed", draw_patch_markers(thumbnail, result.selected, full_size)
            )

        failed = [
            {"row": f.patch.row, "col": f.patch.col, "error": str(f.error)}
            for f in (extraction.failures if extraction else ())
        ]
        artifacts["manifest"] = self._writer.write_manifest(
            result.selected,
            {
                "slide_id": config.slide_id,
                "level": segmentation.geometry.level,
                "patch_size": config.patch_size,
                "content_threshold": config.content_threshold,
                "background_labels": sorted(evaluation.background),
                "total_patches": len(evaluation.patches),
                "failed_patches": failed,
            },
        )
        return result

    def preview(self, reader: WSIReaderProtocol) -> Path:
        """Test mode: write the segmentation with row/column scales.

        Returns:
            Path of the preview image.
        """
        set_correlation_context(slide_id=self._config.slide_id)
        segmentation = self.segment(reader)
        preview = render_segmentation_preview(segmentation.mask)
        return self._writer.write_image("preview", preview)

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event) -> None:
        if cancel_event.is_set():
            raise ExtractionCancelledError("Run cancelled before extraction")
