"""histopatch CLI - tissue patch extraction from whole-slide images.

Usage:
    histopatch run SLIDE [OPTIONS]     extract tissue patches
    histopatch test SLIDE [OPTIONS]    write the segmentation preview
    histopatch version
"""

from __future__ import annotations

import json
import signal
import threading
from pathlib import Path
from typing import Annotated

import typer

from histopatch import __version__
from histopatch.config import ConfigError, PipelineConfig, settings
from histopatch.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="histopatch",
    help="Segment tissue from background and extract tissue patches from WSIs.",
    add_completion=False,
)

SlideArgument = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Path to WSI file (.svs, .ndpi, .tiff, ...)",
    ),
]
SigmaOption = Annotated[
    float | None,
    typer.Option("--sigma-f", "-s", help="Segmenter smoothing (default 0.5)"),
]
MinSizeOption = Annotated[
    int | None,
    typer.Option("--min-f", "-m", help="Minimum segment size (default 100000)"),
]
KOption = Annotated[
    float | None,
    typer.Option("--k-f", "-k", help="Segmenter threshold scale (default 20000)"),
]
LevelOption = Annotated[
    int | None,
    typer.Option("--level", "-l", help="Pyramid level to segment, >= 1 (default 1)"),
]
OutputDirOption = Annotated[
    Path, typer.Option("--output-dir", "-o", help="Directory receiving the outputs")
]
SlideIdOption = Annotated[
    str | None,
    typer.Option("--slide-id", help="Identifier used in file names (default: file stem)"),
]
VerboseOption = Annotated[
    int,
    typer.Option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(json_output: JsonOption = False) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"histopatch {__version__}")


@app.command()
def run(  # noqa: PLR0913
    wsi_path: SlideArgument,
    sigma: SigmaOption = None,
    min_size: MinSizeOption = None,
    k: KOption = None,
    level: LevelOption = None,
    save_patches: Annotated[
        bool, typer.Option("--save-patches", "-p", help="Save selected patches")
    ] = False,
    content_threshold: Annotated[
        float | None,
        typer.Option(
            "--content-threshold", "-t", help="Minimum tissue ratio in [0, 1] (default 0.5)"
        ),
    ] = None,
    patch_size: Annotated[
        int | None, typer.Option("--patch-size", "-d", help="Patch side (default 512)")
    ] = None,
    number_of_lines: Annotated[
        int | None,
        typer.Option(
            "--number-of-lines", "-n", help="Border/corner window width (default 100)"
        ),
    ] = None,
    borders: Annotated[
        str | None,
        typer.Option("--borders", "-b", help="left,bottom,right,top digits, e.g. 1111"),
    ] = None,
    corners: Annotated[
        str | None,
        typer.Option(
            "--corners",
            "-c",
            help="top_left,bottom_left,bottom_right,top_right digits, e.g. 0000",
        ),
    ] = None,
    save_tilecrossed: Annotated[
        bool,
        typer.Option(
            "--save-tilecrossed", "-x", help="Save a thumbnail with selected patches crossed"
        ),
    ] = False,
    save_mask: Annotated[
        bool, typer.Option("--save-mask", "-f", help="Save the segmented image")
    ] = False,
    save_edges: Annotated[
        bool, typer.Option("--save-edges", "-e", help="Save the edge image")
    ] = False,
    keep_partial: Annotated[
        bool,
        typer.Option("--keep-partial", help="Keep truncated patches at the right/bottom"),
    ] = False,
    workers: Annotated[
        int | None, typer.Option("--workers", "-w", help="Extraction threads")
    ] = None,
    output_dir: OutputDirOption = Path("histopatch_output"),
    slide_id: SlideIdOption = None,
    verbose: VerboseOption = 0,
    json_output: JsonOption = False,
) -> None:
    """Segment a slide and extract its tissue patches."""
    from histopatch.cli.runners import run_extraction  # noqa: PLC0415

    _configure_logging(verbose)
    logger = get_logger(__name__)

    # Choosing corners alone implies no borders
    if corners is not None and borders is None and "1" in corners:
        borders = "0000"
    config = _build_config(
        json_output,
        slide_id=slide_id or wsi_path.stem,
        output_dir=output_dir,
        sigma=sigma,
        min_size=min_size,
        k=k,
        level=level,
        content_threshold=content_threshold,
        patch_size=patch_size,
        number_of_lines=number_of_lines,
        borders=borders,
        corners=corners,
        keep_partial_patches=keep_partial,
        save_patches=save_patches,
        save_overlay=save_tilecrossed,
        save_mask=save_mask,
        save_edges=save_edges,
        max_workers=workers,
    )

    cancel_event = threading.Event()

    def signal_handler(signum: int, frame: object) -> None:
        logger.warning("Shutdown requested", signal=signum)
        cancel_event.set()

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("Starting extraction", wsi=str(wsi_path), slide_id=config.slide_id)

    try:
        summary = run_extraction(wsi_path, config, cancel_event=cancel_event)

        if json_output:
            typer.echo(json.dumps(summary.to_dict(), indent=2))
        else:
            typer.echo(f"\nSlide: {summary.slide_id}")
            typer.echo(f"Patches: {summary.selected_patches}/{summary.total_patches} selected")
            if save_patches:
                typer.echo(
                    f"Written: {summary.written_patches} "
                    f"(failed: {summary.failed_patches})"
                )
            typer.echo(f"Output: {summary.output_dir}")

        raise typer.Exit(0)

    except typer.Exit:
        raise
    except Exception as e:
        logger.exception("Extraction failed")
        _echo_error(e, json_output)
        raise typer.Exit(1) from None
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)


@app.command("test")
def test_mode(
    wsi_path: SlideArgument,
    sigma: SigmaOption = None,
    min_size: MinSizeOption = None,
    k: KOption = None,
    level: LevelOption = None,
    output_dir: OutputDirOption = Path("."),
    slide_id: SlideIdOption = None,
    verbose: VerboseOption = 0,
    json_output: JsonOption = False,
) -> None:
    """Write the segmented coarse image with row/column scales.

    Use it to check that background and tissue fall in different segments
    and to choose --number-of-lines and --borders/--corners for `run`.
    """
    from histopatch.cli.runners import run_preview  # noqa: PLC0415

    _configure_logging(verbose)
    logger = get_logger(__name__)

    config = _build_config(
        json_output,
        slide_id=slide_id or wsi_path.stem,
        output_dir=output_dir,
        sigma=sigma,
        min_size=min_size,
        k=k,
        level=level,
    )

    try:
        path = run_preview(wsi_path, config)
        if json_output:
            typer.echo(json.dumps({"preview": str(path)}))
        else:
            typer.echo(f"Preview saved to {path}")
        raise typer.Exit(0)

    except typer.Exit:
        raise
    except Exception as e:
        logger.exception("Preview failed")
        _echo_error(e, json_output)
        raise typer.Exit(1) from None


# =============================================================================
# Helpers
# =============================================================================


def _build_config(json_output: bool, **values: object) -> PipelineConfig:
    """Validate CLI values against settings defaults, exiting on error."""
    try:
        return PipelineConfig.from_settings(settings, **values)
    except ConfigError as e:
        _echo_error(e, json_output, prefix="Invalid configuration")
        raise typer.Exit(1) from None


def _echo_error(error: Exception, json_output: bool, prefix: str = "Error") -> None:
    if json_output:
        typer.echo(json.dumps({"error": str(error)}))
    else:
        typer.echo(f"{prefix}: {error}", err=True)


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)
