"""Constants for the vision module."""

from __future__ import annotations

# Canny hysteresis thresholds for the coarse edge image
CANNY_LOW_THRESHOLD: int = 40
CANNY_HIGH_THRESHOLD: int = 100
