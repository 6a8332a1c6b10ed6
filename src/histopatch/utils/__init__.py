"""Shared utilities for histopatch."""
