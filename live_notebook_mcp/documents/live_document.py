"""
Collaborative notebook on a Jupyter server, edited through its shared Y document.

Other users (or JupyterLab itself) may edit the same notebook concurrently;
every read goes to the live Y document.
"""

import asyncio
from typing import List, Optional

import nbformat
from jupyter_nbmodel_client import NbModelClient, get_jupyter_notebook_websocket_url
from loguru import logger

from ..core.errors import BackingStoreError
from .base import CellSnapshot, CellSpec, CellState, NotebookDocument, cell_language, has_error_output
from .engine import JupyterKernelEngine
from .file_document import new_cell_node


def _source_text(source) -> str:
    if isinstance(source, list):
        return "".join(source)
    return str(source or "")


class LiveNotebookDocument(NotebookDocument):
    """A notebook opened in a Jupyter collaboration room via ``jupyter_nbmodel_client``."""

    notebook_type = "jupyter-notebook (live)"

    def __init__(self, server_path: str, client: NbModelClient, engine: JupyterKernelEngine):
        super().__init__()
        self._server_path = server_path
        self._client = client
        self._engine = engine

    @classmethod
    async def connect(
        cls, server_url: str, token: Optional[str], server_path: str, engine: JupyterKernelEngine
    ) -> "LiveNotebookDocument":
        websocket_url = get_jupyter_notebook_websocket_url(server_url=server_url, token=token, path=server_path)
        client = NbModelClient(websocket_url)
        try:
            await client.start()
            await client.wait_until_synced()
        except Exception as e:
            logger.error(f"Could not connect to notebook room for {server_path}: {e}")
            raise BackingStoreError(f"Failed to open live notebook '{server_path}': {e}") from e
        logger.debug(f"Connected to notebook at {websocket_url}")
        return cls(server_path, client, engine)

    @property
    def _ydoc(self):
        return self._client._doc

    @property
    def uri(self) -> str:
        return self._server_path

    def metadata(self) -> dict:
        return dict(self._ydoc.get().get("metadata", {}))

    def get_cell_count(self) -> int:
        return len(self._ydoc._ycells)

    def get_cell(self, index: int) -> CellSnapshot:
        cell = self._ydoc.get_cell(index)
        cell_type = cell.get("cell_type", "code")
        is_code = cell_type == "code"
        return CellSnapshot(
            index=index,
            cell_type=cell_type,
            content=_source_text(cell.get("source")),
            language=cell_language(cell.get("metadata") or {}, self.default_language()) if is_code else "markdown",
            outputs=[dict(output) for output in cell.get("outputs", [])] if is_code else [],
            execution_count=cell.get("execution_count") if is_code else None,
        )

    async def apply_edit(self, start: int, end: int, new_cells: List[CellSpec]) -> None:
        language = self.default_language()
        nodes = [new_cell_node(spec, language) for spec in new_cells]
        ycells = self._ydoc._ycells
        try:
            with self._ydoc.ydoc.transaction():
                for _ in range(end - start):
                    del ycells[start]
                for offset, node in enumerate(nodes):
                    ycells.insert(start + offset, self._ydoc.create_ycell(dict(node)))
        except Exception as e:
            raise BackingStoreError(f"Notebook rejected the edit of cells [{start}, {end}): {e}") from e
        self.dirty = True

    async def replace_cell_content(self, index: int, content: str) -> None:
        try:
            # NbModelClient.set_cell_source opens its own transaction with a different origin
            with self._ydoc.ydoc.transaction():
                ycell = self._ydoc._ycells[index]
                ysource = ycell["source"]
                del ysource[:]
                ysource += content
                if ycell.get("cell_type") == "code":
                    ycell["outputs"].clear()
                    ycell["execution_count"] = None
        except Exception as e:
            raise BackingStoreError(f"Notebook rejected the change to cell {index}: {e}") from e
        self.dirty = True

    async def save(self) -> str:
        # the collaboration room writes the shared document to disk; wait for pending updates
        try:
            await self._client.wait_until_synced()
        except Exception as e:
            raise BackingStoreError(f"Failed to sync notebook '{self._server_path}': {e}") from e
        self.dirty = False
        return self._server_path

    async def close(self) -> None:
        await super().close()
        try:
            await self._client.stop()
        except Exception as e:
            logger.error(f"Error stopping notebook client: {e}")
        await self._engine.stop()

    async def _interrupt(self) -> None:
        await self._engine.interrupt()

    async def _execute_code_cell(self, index: int) -> CellState:
        try:
            kernel = await self._engine.start()
            await asyncio.to_thread(self._client.execute_cell, index, kernel)
        except Exception as e:
            logger.error(f"Kernel failed while running cell {index}: {e}")
            with self._ydoc.ydoc.transaction():
                ycell = self._ydoc._ycells[index]
                ycell["outputs"].clear()
                ycell["outputs"].append(
                    dict(nbformat.v4.new_output("error", ename=type(e).__name__, evalue=str(e), traceback=[]))
                )
            return CellState.FAILED

        outputs = self.get_cell(index).outputs
        return CellState.FAILED if has_error_output(outputs) else CellState.SUCCEEDED
