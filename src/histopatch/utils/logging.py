"""Structured logging configuration using structlog.

Provides correlation IDs for tracing one extraction run and configurable
output formats (JSON for batch jobs, colored console for interactive use).

Every log line of a run carries the CLI-generated ``run_id``, the
``slide_id`` used in output file names, and the pipeline ``stage``:
``segment`` (coarse level read and segmented), ``evaluate`` (background,
tissue mask and patch scoring), ``extract`` (Level-0 patch reads on the
worker pool) or ``emit`` (overlays and the manifest).
"""

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from histopatch.config import settings

# Context variables for correlation IDs
_run_id: ContextVar[str | None] = ContextVar("run_id", default=None)
_slide_id: ContextVar[str | None] = ContextVar("slide_id", default=None)
_stage: ContextVar[str | None] = ContextVar("stage", default=None)


def set_correlation_context(
    run_id: str | None = None,
    slide_id: str | None = None,
    stage: str | None = None,
) -> None:
    """Set correlation IDs for the current context.

    Args:
        run_id: Unique identifier for the extraction run
        slide_id: Identifier of the slide being processed
        stage: One of "segment", "evaluate", "extract" or "emit"
    """
    if run_id is not None:
        _run_id.set(run_id)
    if slide_id is not None:
        _slide_id.set(slide_id)
    if stage is not None:
        _stage.set(stage)


def clear_correlation_context() -> None:
    """Clear all correlation context variables."""
    _run_id.set(None)
    _slide_id.set(None)
    _stage.set(None)


def _add_correlation_ids(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor to add correlation IDs to log events."""
    _ = logger, method_name  # Required by structlog processor signature
    run_id = _run_id.get()
    slide_id = _slide_id.get()
    stage = _stage.get()

    if run_id is not None:
        event_dict["run_id"] = run_id
    if slide_id is not None:
        event_dict["slide_id"] = slide_id
    if stage is not None:
        event_dict["stage"] = stage

    return event_dict


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Configure structlog with the specified settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to settings.LOG_LEVEL.
        log_format: Output format ("console" or "json").
                    Defaults to settings.LOG_FORMAT.
    """
    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_correlation_ids,
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route stdlib logging (overlay module, libraries) through the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A bound structlog logger instance.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
