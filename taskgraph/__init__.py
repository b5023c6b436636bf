"""Task dependency graph with progress and schedule analytics."""

__version__ = "0.1.0"
