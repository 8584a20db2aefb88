"""PyQt6 viewport client for a canvas shared across several windows."""

from canvas_client.version import __version__  # noqa: F401

__all__ = ["__version__"]
