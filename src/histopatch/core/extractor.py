"""Bounded, failure-isolated extraction of full-resolution patches.

Each task reads one patch from Level-0, hands it to the writer and drops
it, so at most ``max_workers`` decoded patches are alive at a time. A patch
that fails to read or write is logged and recorded; its siblings carry on.
The run fails only if every attempted patch failed.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path

from histopatch.core.selector import Patch
from histopatch.core.writer import ArtifactWriterProtocol
from histopatch.utils.logging import get_logger
from histopatch.wsi.exceptions import PatchIOError, WSIReadError
from histopatch.wsi.types import WSIReaderProtocol

logger = get_logger(__name__)


class ExtractionError(Exception):
    """Raised when no patch of a run could be extracted."""

    def __init__(self, message: str, failures: tuple[PatchFailure, ...] = ()) -> None:
        self.failures = failures
        super().__init__(message)


class ExtractionCancelledError(Exception):
    """Raised when the caller's cancel event stops an extraction."""


@dataclass(frozen=True)
class PatchFailure:
    """A patch that could not be extracted, with the reason."""

    patch: Patch
    error: PatchIOError


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction.

    Attributes:
        written: (patch, path) pairs, in input order.
        failures: Patches that failed, in input order.
    """

    written: tuple[tuple[Patch, Path], ...]
    failures: tuple[PatchFailure, ...]

    @property
    def attempted(self) -> int:
        return len(self.written) + len(self.failures)


def default_max_workers() -> int:
    """One worker per available CPU."""
    return os.cpu_count() or 1


class PatchExtractor:
    """Reads selected patches from a slide and persists them.

    Attributes:
        max_workers: Size of the thread pool.
    """

    __slots__ = ("_max_workers", "_reader", "_writer")

    def __init__(
        self,
        reader: WSIReaderProtocol,
        writer: ArtifactWriterProtocol,
        max_workers: int | None = None,
    ) -> None:
        """Initialize the extractor.

        Raises:
            ValueError: If max_workers is not positive.
        """
        if max_workers is not None and max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self._reader = reader
        self._writer = writer
        self._max_workers = max_workers or default_max_workers()

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def _extract_one(self, patch: Patch, cancel_event: threading.Event) -> Path | None:
        if cancel_event.is_set():
            return None

        location = (patch.col, patch.row)
        try:
            image = self._reader.read_region(location, 0, patch.size)
        except WSIReadError as e:
            raise PatchIOError(
                f"Failed to read patch: {e.message}",
                path=e.path,
                level=0,
                location=location,
                size=patch.size,
            ) from e

        try:
            return self._writer.write_patch(patch, image)
        except (OSError, ValueError) as e:
            raise PatchIOError(
                f"Failed to write patch: {e}",
                level=0,
                location=location,
                size=patch.size,
            ) from e
        finally:
            image.close()

    def extract(
        self,
        patches: Iterable[Patch],
        cancel_event: threading.Event | None = None,
    ) -> ExtractionResult:
        """Extract ``patches`` on the worker pool.

        Args:
            patches: Patches to read and persist.
            cancel_event: Set by the caller to stop the extraction. Patches
                not yet started are skipped.

        Returns:
            ExtractionResult with written patches and isolated failures.

        Raises:
            ExtractionCancelledError: If ``cancel_event`` was set.
            ExtractionError: If every attempted patch failed.
        """
        patches = list(patches)
        cancel_event = cancel_event or threading.Event()
        if not patches:
            return ExtractionResult(written=(), failures=())

        written: dict[int, tuple[Patch, Path]] = {}
        failures: dict[int, PatchFailure] = {}

        logger.info(
            "Extracting patches", count=len(patches), max_workers=self._max_workers
        )
        with ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="histopatch-extract",
        ) as executor:
            futures: dict[Future[Path | None], int] = {
                executor.submit(self._extract_one, patch, cancel_event): index
                for index, patch in enumerate(patches)
            }
            for future in as_completed(futures):
                index = futures[future]
                patch = patches[index]
                try:
                    path = future.result()
                except PatchIOError as e:
                    logger.warning(
                        "Patch extraction failed",
                        row=patch.row,
                        col=patch.col,
                        error=str(e),
                    )
                    failures[index] = PatchFailure(patch=patch, error=e)
                    continue
                if path is not None:
                    written[index] = (patch, path)
                if cancel_event.is_set():
                    executor.shutdown(wait=True, cancel_futures=True)
                    break

        if cancel_event.is_set():
            raise ExtractionCancelledError(
                f"Extraction cancelled after {len(written)} of {len(patches)} patches"
            )

        result = ExtractionResult(
            written=tuple(written[i] for i in sorted(written)),
            failures=tuple(failures[i] for i in sorted(failures)),
        )
        if result.failures and not result.written:
            raise ExtractionError(
                f"All {len(result.failures)} patches failed to extract",
                failures=result.failures,
            )
        logger.info(
            "Extraction finished",
            written=len(result.written),
            failed=len(result.failures),
        )
        return result
