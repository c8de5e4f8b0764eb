"""Initializes the tools package and imports tool provider classes."""

from .notebook_tools import TOOL_NAMES, CellInput, NotebookToolsProvider

__all__ = [
    "TOOL_NAMES",
    "CellInput",
    "NotebookToolsProvider",
]
