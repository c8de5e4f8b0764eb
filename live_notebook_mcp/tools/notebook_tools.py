"""
Tools for reading, editing, executing and saving the active notebook.
"""

from typing import Awaitable, Callable, List, Literal, Optional

from fastmcp.exceptions import ToolError
from loguru import logger
from pydantic import BaseModel

from ..core.config import ServerConfig
from ..core.errors import NotebookToolError
from ..core.service import NotebookService


class CellInput(BaseModel):
    """A new cell: its content, its type and optionally the language of a code cell."""

    content: str
    cell_type: Literal["code", "markdown"]
    language_id: Optional[str] = None


TOOL_NAMES = [
    "get_notebook_info",
    "get_notebook_cells",
    "insert_notebook_cells",
    "replace_notebook_cells",
    "modify_notebook_cell_content",
    "execute_notebook_cells",
    "delete_notebook_cells",
    "save_notebook",
    "open_notebook",
]


class NotebookToolsProvider:
    def __init__(self, config: ServerConfig, service: NotebookService):
        self.config = config
        self.service = service
        logger.debug("NotebookToolsProvider initialized.")

    async def _call(self, tool_name: str, action: str, operation: Callable[[], Awaitable[str]]) -> str:
        try:
            result = await operation()
        except NotebookToolError as e:
            logger.error(f"[Tool: {tool_name}] FAILED - {type(e).__name__}: {e}")
            raise ToolError(f"Error {action}: {e}") from e
        except Exception as e:
            logger.exception(f"[Tool: {tool_name}] FAILED - Unexpected error: {e}")
            raise ToolError(f"Error {action}: {e}") from e
        logger.info(f"[Tool: {tool_name}] SUCCESS", tool_success=True)
        return result

    async def get_notebook_info(self) -> str:
        """Returns a summary of the active notebook: its path, type, kernel, cell counts and
        whether it has unsaved changes.
        """
        logger.debug("[Tool: get_notebook_info] Called.")
        return await self._call("get_notebook_info", "getting notebook info", self.service.get_notebook_info)

    async def get_notebook_cells(self) -> str:
        """Returns every cell of the active notebook with its 0-based index, type, content and,
        for code cells, the language, execution count and outputs.

        Each output is capped at the configured maximum output size; longer outputs end
        with a marker like "... [N more characters truncated]". Images and other binary
        outputs are listed as placeholders such as "[image/png output]".
        """
        logger.debug("[Tool: get_notebook_cells] Called.")
        settings = self.config.execution_settings()
        return await self._call(
            "get_notebook_cells", "getting notebook cells", lambda: self.service.get_cells(settings)
        )

    async def insert_notebook_cells(
        self,
        cells: List[CellInput],
        insert_position: Optional[int] = None,
        noexec: bool = False,
    ) -> str:
        """Inserts new cells into the active notebook and, unless noexec is true, executes the
        inserted code cells and returns their outputs. Markdown cells are never executed.

        Args:
            cells: The cells to insert, in order. Each has "content", "cell_type" ("code" or
                "markdown") and an optional "language_id" for code cells (defaults to the
                notebook's kernel language).
            insert_position: 0-based index the first new cell will occupy. Omit it to append
                at the end. 0 inserts before the first cell.
            noexec: Insert without executing.

        Example:
            insert_notebook_cells(cells=[{"content": "# Setup", "cell_type": "markdown"},
                                         {"content": "import pandas as pd", "cell_type": "code"}],
                                  insert_position=0)
        """
        logger.debug(
            f"[Tool: insert_notebook_cells] Called. Args: cells={len(cells) if cells is not None else None}, "
            f"insert_position={insert_position}, noexec={noexec}"
        )
        settings = self.config.execution_settings()
        return await self._call(
            "insert_notebook_cells",
            "inserting cells",
            lambda: self.service.insert_cells(cells, insert_position, noexec, settings),
        )

    async def replace_notebook_cells(
        self,
        start_index: int,
        end_index: int,
        cells: List[CellInput],
        noexec: bool = False,
    ) -> str:
        """Replaces the cells in [start_index, end_index) with new cells and, unless noexec is
        true, executes the new code cells and returns their outputs.

        Indices are 0-based and end_index is exclusive, so end_index must be greater than
        start_index. The number of new cells may differ from the number replaced; an empty
        cells list removes the range.

        Args:
            start_index: First cell to replace.
            end_index: One past the last cell to replace.
            cells: Replacement cells, each with "content", "cell_type" and optional "language_id".
            noexec: Replace without executing.

        Example:
            replace_notebook_cells(start_index=2, end_index=3,
                                   cells=[{"content": "df.head()", "cell_type": "code"}])
            replaces the third cell and runs it.
        """
        logger.debug(
            f"[Tool: replace_notebook_cells] Called. Args: start_index={start_index}, end_index={end_index}, "
            f"cells={len(cells) if cells is not None else None}, noexec={noexec}"
        )
        settings = self.config.execution_settings()
        return await self._call(
            "replace_notebook_cells",
            "replacing cells",
            lambda: self.service.replace_cells(start_index, end_index, cells, noexec, settings),
        )

    async def modify_notebook_cell_content(self, cell_index: int, content: str, noexec: bool = False) -> str:
        """Replaces the content of one existing cell, keeping its type and language. A modified
        code cell loses its previous outputs and, unless noexec is true, is executed again.

        Args:
            cell_index: 0-based index of the cell to modify.
            content: The new content.
            noexec: Modify without executing.

        Example:
            modify_notebook_cell_content(cell_index=0, content="x = 1", noexec=True)
        """
        logger.debug(
            f"[Tool: modify_notebook_cell_content] Called. Args: cell_index={cell_index}, "
            f"content_len={len(content) if isinstance(content, str) else None}, noexec={noexec}"
        )
        settings = self.config.execution_settings()
        return await self._call(
            "modify_notebook_cell_content",
            "modifying cell content",
            lambda: self.service.modify_cell_content(cell_index, content, noexec, settings),
        )

    async def execute_notebook_cells(self, start_index: int, end_index: int) -> str:
        """Executes the code cells in [start_index, end_index) and returns each cell's status
        (succeeded, failed or cancelled) and outputs.

        Indices are 0-based and end_index is exclusive: start_index=0, end_index=1 runs only
        the first cell. Execution stops waiting after the configured timeout; cells that
        finished by then are still reported.
        """
        logger.debug(
            f"[Tool: execute_notebook_cells] Called. Args: start_index={start_index}, end_index={end_index}"
        )
        settings = self.config.execution_settings()
        return await self._call(
            "execute_notebook_cells",
            "executing cells",
            lambda: self.service.execute_cells(start_index, end_index, settings),
        )

    async def delete_notebook_cells(self, start_index: int, end_index: int) -> str:
        """Deletes the cells in [start_index, end_index).

        Indices are 0-based and end_index is exclusive: start_index=1, end_index=3 deletes the
        second and third cells.
        """
        logger.debug(
            f"[Tool: delete_notebook_cells] Called. Args: start_index={start_index}, end_index={end_index}"
        )
        return await self._call(
            "delete_notebook_cells",
            "deleting cells",
            lambda: self.service.delete_cells(start_index, end_index),
        )

    async def save_notebook(self) -> str:
        """Saves the active notebook and returns the path it was saved to."""
        logger.debug("[Tool: save_notebook] Called.")
        return await self._call("save_notebook", "saving notebook", self.service.save_notebook)

    async def open_notebook(self, path: str) -> str:
        """Opens a notebook and makes it the active one for all other tools.

        Args:
            path: Absolute path to an .ipynb file inside one of the allowed root directories.
        """
        logger.debug(f"[Tool: open_notebook] Called. Args: path={path}")
        return await self._call("open_notebook", "opening notebook", lambda: self.service.open_notebook(path))
