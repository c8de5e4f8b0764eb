"""
Notebook document held in memory as an nbformat node and saved back to its .ipynb file.
"""

from typing import List

import nbformat
from loguru import logger

from ..core import notebook_ops
from ..core.errors import BackingStoreError
from .base import CellSnapshot, CellSpec, CellState, NotebookDocument, cell_language, has_error_output
from .engine import ExecutionEngine


def new_cell_node(spec: CellSpec, notebook_language: str) -> nbformat.NotebookNode:
    """Builds an nbformat v4 cell for ``spec``.

    A code cell whose language differs from the notebook's is tagged with
    ``metadata.vscode.languageId``.
    """
    if spec.cell_type == "code":
        cell = nbformat.v4.new_code_cell(source=spec.content)
        if spec.language and spec.language != notebook_language:
            cell.metadata["vscode"] = {"languageId": spec.language}
    else:
        cell = nbformat.v4.new_markdown_cell(source=spec.content)
    return cell


class FileNotebookDocument(NotebookDocument):
    """An ``.ipynb`` file loaded with nbformat; code runs on an ``ExecutionEngine``."""

    def __init__(self, path: str, nb: nbformat.NotebookNode, engine: ExecutionEngine, allowed_roots: List[str]):
        super().__init__()
        self._path = path
        self._nb = nb
        self._engine = engine
        self._allowed_roots = allowed_roots

    @classmethod
    async def open(cls, path: str, engine: ExecutionEngine, allowed_roots: List[str]) -> "FileNotebookDocument":
        nb = await notebook_ops.read_notebook(path, allowed_roots)
        logger.debug(f"Opened file notebook {path} with {len(nb.cells)} cells")
        return cls(path, nb, engine, allowed_roots)

    @property
    def uri(self) -> str:
        return self._path

    @property
    def engine(self) -> ExecutionEngine:
        return self._engine

    def metadata(self) -> dict:
        return dict(self._nb.metadata)

    def get_cell_count(self) -> int:
        return len(self._nb.cells)

    def get_cell(self, index: int) -> CellSnapshot:
        cell = self._nb.cells[index]
        is_code = cell.cell_type == "code"
        return CellSnapshot(
            index=index,
            cell_type=cell.cell_type,
            content=cell.source,
            language=cell_language(cell.metadata, self.default_language()) if is_code else "markdown",
            outputs=[dict(output) for output in cell.get("outputs", [])] if is_code else [],
            execution_count=cell.get("execution_count") if is_code else None,
        )

    async def apply_edit(self, start: int, end: int, new_cells: List[CellSpec]) -> None:
        language = self.default_language()
        nodes = [new_cell_node(spec, language) for spec in new_cells]
        # slice assignment keeps removal and insertion a single step
        self._nb.cells[start:end] = nodes
        self.dirty = True

    async def replace_cell_content(self, index: int, content: str) -> None:
        cell = self._nb.cells[index]
        cell.source = content
        if cell.cell_type == "code":
            cell.outputs = []
            cell.execution_count = None
        self.dirty = True

    async def save(self) -> str:
        try:
            saved_path = await notebook_ops.write_notebook(self._path, self._nb, self._allowed_roots)
        except (IOError, ValueError, PermissionError) as e:
            raise BackingStoreError(f"Failed to save notebook: {e}") from e
        self.dirty = False
        return saved_path

    async def close(self) -> None:
        await super().close()
        await self._engine.stop()

    async def _interrupt(self) -> None:
        await self._engine.interrupt()

    async def _execute_code_cell(self, index: int) -> CellState:
        cell = self._nb.cells[index]
        cell.outputs = []
        cell.execution_count = None

        try:
            result = await self._engine.execute(cell.source)
        except Exception as e:
            logger.error(f"Engine failed while running cell {index}: {e}")
            cell.outputs = [
                nbformat.v4.new_output("error", ename=type(e).__name__, evalue=str(e), traceback=[])
            ]
            return CellState.FAILED

        outputs = [nbformat.from_dict(output) for output in result.outputs]
        for output in outputs:
            output.pop("transient", None)
        cell.outputs = outputs
        cell.execution_count = result.execution_count

        if result.status == "error" or has_error_output(result.outputs):
            return CellState.FAILED
        return CellState.SUCCEEDED
