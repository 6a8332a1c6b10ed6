"""histopatch: tissue patch extraction for whole-slide images."""

__version__ = "0.1.0"
