"""Background maintenance of the client registry."""

from .connection_sweeper import ConnectionSweeper

__all__ = ["ConnectionSweeper"]
