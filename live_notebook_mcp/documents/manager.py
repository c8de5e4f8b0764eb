"""
Tracks the notebook the tools operate on.
"""

import os
from typing import Callable, Optional

from loguru import logger

from ..core import notebook_ops
from ..core.config import ServerConfig
from ..core.errors import BackingStoreError, ValidationError
from .base import NotebookDocument
from .engine import ExecutionEngine, JupyterKernelEngine
from .file_document import FileNotebookDocument
from .live_document import LiveNotebookDocument

EngineFactory = Callable[[], ExecutionEngine]


class DocumentManager:
    """Opens notebooks and holds the active one.

    Args:
        config: Server configuration (allowed roots, Jupyter server, live mode).
        engine_factory: Builds the execution engine for a newly opened file
            notebook. Defaults to a ``JupyterKernelEngine`` on ``config.server_url``.
    """

    def __init__(self, config: ServerConfig, engine_factory: Optional[EngineFactory] = None):
        self.config = config
        self._engine_factory = engine_factory or self._default_engine
        self._active: Optional[NotebookDocument] = None
        self._startup_path: Optional[str] = config.notebook

    def _default_engine(self) -> JupyterKernelEngine:
        return JupyterKernelEngine(self.config.server_url, self.config.token)

    @property
    def has_active(self) -> bool:
        return self._active is not None

    def active(self) -> NotebookDocument:
        if not self.has_active:
            raise ValidationError("No active notebook. Open one with open_notebook first.")
        return self._active

    async def current(self) -> NotebookDocument:
        """Returns the active notebook, opening the ``--notebook`` one on first use."""
        if not self.has_active and self._startup_path:
            path, self._startup_path = self._startup_path, None
            await self.open_notebook(path)
        return self.active()

    async def open_notebook(self, path: str) -> NotebookDocument:
        if not isinstance(path, str) or not path:
            raise ValidationError("Missing required parameter: path")
        try:
            resolved_path = notebook_ops.check_notebook_path(path, self.config.allow_root_dirs)
        except (ValueError, PermissionError) as e:
            raise ValidationError(str(e)) from e

        if self.config.live:
            document = await self._open_live(resolved_path)
        else:
            try:
                document = await FileNotebookDocument.open(
                    resolved_path, self._engine_factory(), self.config.allow_root_dirs
                )
            except FileNotFoundError as e:
                raise ValidationError(str(e)) from e
            except IOError as e:
                raise BackingStoreError(str(e)) from e

        await self.close()
        self._active = document
        logger.info(f"Active notebook is now {document.uri} ({document.get_cell_count()} cells)")
        return document

    async def _open_live(self, resolved_path: str) -> LiveNotebookDocument:
        root = notebook_ops.find_allowed_root(resolved_path, self.config.allow_root_dirs)
        server_path = os.path.relpath(resolved_path, root).replace(os.sep, "/")
        engine = JupyterKernelEngine(self.config.server_url, self.config.token)
        return await LiveNotebookDocument.connect(self.config.server_url, self.config.token, server_path, engine)

    async def close(self) -> None:
        if self._active is None:
            return
        document, self._active = self._active, None
        logger.debug(f"Closing notebook {document.uri}")
        await document.close()
