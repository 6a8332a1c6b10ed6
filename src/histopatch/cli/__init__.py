"""Command-line interface for histopatch."""

from __future__ import annotations

from histopatch.cli.main import app

__all__ = ["app"]
