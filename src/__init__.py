# src/__init__.py — v1
"""webpexpress — batch image to WebP conversion engine."""

from webpexpress.version import __version__

__all__ = ["__version__"]
