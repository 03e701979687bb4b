"""REST API for Ghost Viewer."""

from .app import create_app

__all__ = ["create_app"]
