"""Utility functions."""

from .filenames import FileNamePattern, with_extension

__all__ = ["FileNamePattern", "with_extension"]
