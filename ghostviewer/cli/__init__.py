"""Command line interface for Ghost Viewer."""

from .main import main

__all__ = ["main"]
