"""Application assembly for the flight relay server."""

from .factory import create_app

__all__ = ["create_app"]
