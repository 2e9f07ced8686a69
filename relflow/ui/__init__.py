"""Console rendering."""

from .console import ConsoleManager

__all__ = ["ConsoleManager"]
