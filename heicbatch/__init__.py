"""Batch image <-> HEIC converter running on a fixed pool of worker threads."""

__version__ = "1.0.0"
