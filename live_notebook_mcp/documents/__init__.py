"""Notebook document backings and the active-document manager."""

from .base import CellCompletion, CellSnapshot, CellSpec, CellState, NotebookDocument
from .engine import EngineResult, ExecutionEngine, JupyterKernelEngine
from .file_document import FileNotebookDocument
from .live_document import LiveNotebookDocument
from .manager import DocumentManager

__all__ = [
    "CellCompletion",
    "CellSnapshot",
    "CellSpec",
    "CellState",
    "DocumentManager",
    "EngineResult",
    "ExecutionEngine",
    "FileNotebookDocument",
    "JupyterKernelEngine",
    "LiveNotebookDocument",
    "NotebookDocument",
]
