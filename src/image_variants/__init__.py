"""Resize newly stored images and archive the variants next to the source."""

__version__ = "0.1.0"
