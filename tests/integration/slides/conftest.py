"""Fixtures for integration tests against a real slide.

These tests require a real WSI file with at least two pyramid levels and
are skipped otherwise. Provide one through the WSI_TEST_FILE environment
variable, e.g. OpenSlide's CMU-1.svs test slide:
    https://openslide.cs.cmu.edu/download/openslide-testdata/Aperio/CMU-1.svs
"""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest

from histopatch.wsi.reader import SUPPORTED_EXTENSIONS

pytestmark = pytest.mark.integration


def get_test_wsi_path() -> Path | None:
    """Return the path of the configured WSI test file, if usable."""
    env_path = os.environ.get("WSI_TEST_FILE")
    if env_path:
        path = Path(env_path)
        if path.exists() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
            return path

    test_data_dir = Path(__file__).parent / "data"
    if test_data_dir.exists():
        for svs_file in sorted(test_data_dir.glob("*.svs")):
            return svs_file

    return None


@pytest.fixture(scope="session")
def wsi_test_file() -> Generator[Path, None, None]:
    """Provide path to a real WSI test file, skipping when unavailable."""
    path = get_test_wsi_path()
    if path is None:
        pytest.skip(
            "No WSI test file available. "
            "Set WSI_TEST_FILE to a multi-level slide. "
            "Example: curl -LO https://openslide.cs.cmu.edu/download/"
            "openslide-testdata/Aperio/CMU-1.svs"
        )
    yield path
