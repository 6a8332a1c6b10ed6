"""CLI runners bridging the command line to the pipeline.

Runners open the slide, build the pipeline and return plain result
objects; the command functions in ``histopatch.cli.main`` own argument
parsing, output formatting and exit codes.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from histopatch.config import PipelineConfig
from histopatch.core.pipeline import PatchPipeline
from histopatch.utils.logging import get_logger, set_correlation_context
from histopatch.wsi.reader import WSIReader

logger = get_logger(__name__)


@dataclass
class ExtractionSummary:
    """Result of `histopatch run`."""

    run_id: str
    slide_id: str
    output_dir: Path
    total_patches: int
    selected_patches: int
    written_patches: int = 0
    failed_patches: int = 0
    background_labels: list[int] = field(default_factory=list)
    artifacts: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "run_id": self.run_id,
            "slide_id": self.slide_id,
            "output_dir": str(self.output_dir),
            "total_patches": self.total_patches,
            "selected_patches": self.selected_patches,
            "written_patches": self.written_patches,
            "failed_patches": self.failed_patches,
            "background_labels": self.background_labels,
            "artifacts": self.artifacts,
        }


def _new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def run_extraction(
    wsi_path: Path,
    config: PipelineConfig,
    cancel_event: threading.Event | None = None,
) -> ExtractionSummary:
    """Run the full pipeline on one slide."""
    run_id = _new_run_id()
    set_correlation_context(run_id=run_id, slide_id=config.slide_id)
    logger.info("Opening slide", path=str(wsi_path))

    with WSIReader(wsi_path) as reader:
        result = PatchPipeline(config).run(reader, cancel_event=cancel_event)

    extraction = result.extraction
    return ExtractionSummary(
        run_id=run_id,
        slide_id=result.slide_id,
        output_dir=config.output_dir,
        total_patches=len(result.evaluation.patches),
        selected_patches=len(result.selected),
        written_patches=len(extraction.written) if extraction else 0,
        failed_patches=len(extraction.failures) if extraction else 0,
        background_labels=sorted(result.evaluation.background),
        artifacts={name: str(path) for name, path in result.artifacts.items()},
    )


def run_preview(wsi_path: Path, config: PipelineConfig) -> Path:
    """Write the test-mode segmentation preview for one slide."""
    set_correlation_context(run_id=_new_run_id(), slide_id=config.slide_id)
    with WSIReader(wsi_path) as reader:
        return PatchPipeline(config).preview(reader)
