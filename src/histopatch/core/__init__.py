"""Core algorithms for histopatch.

Public API:
    - PatchGrid: Full-resolution patch grid.
    - ContentScorer: Tissue ratio of patches via the integral image.
    - PatchSelector / Patch: Threshold selection and patch descriptors.
    - PatchExtractor: Bounded, failure-isolated patch persistence.
    - PatchPipeline: Orchestrates a full run.
"""

from histopatch.core.extractor import (
    ExtractionCancelledError,
    ExtractionError,
    ExtractionResult,
    PatchExtractor,
    PatchFailure,
)
from histopatch.core.grid import PatchGrid
from histopatch.core.pipeline import Evaluation, PatchPipeline, PipelineResult, Segmentation
from histopatch.core.scorer import ContentScorer
from histopatch.core.selector import Patch, PatchSelector, validate_threshold
from histopatch.core.writer import ArtifactWriterProtocol, FileArtifactWriter

__all__ = [
    "ArtifactWriterProtocol",
    "ContentScorer",
    "Evaluation",
    "ExtractionCancelledError",
    "ExtractionError",
    "ExtractionResult",
    "FileArtifactWriter",
    "Patch",
    "PatchExtractor",
    "PatchFailure",
    "PatchGrid",
    "PatchPipeline",
    "PatchSelector",
    "PipelineResult",
    "Segmentation",
    "validate_threshold",
]
