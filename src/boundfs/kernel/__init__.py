"""Kernel layer - the boundary every path is confined to."""

from .storage import Directory, File, Filesystem

__all__ = ["Directory", "File", "Filesystem"]
