"""Segment, transcribe and stitch long-form audio."""

__version__ = "0.1.0"
