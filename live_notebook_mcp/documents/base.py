"""
Document-layer interface consumed by the orchestration core.

A ``NotebookDocument`` owns the ordered cells and their outputs. The core only
reads cells, requests edits and requests execution; completion of each cell is
reported out of band through ``CellCompletion`` signals delivered to
subscribed listeners.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger

from ..core.errors import BackingStoreError

CELL_TYPES = ("code", "markdown")


class CellState(str, Enum):
    """Terminal state of one cell in an execution run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CellSpec:
    """Content for a new cell."""

    content: str
    cell_type: str
    language: Optional[str] = None


@dataclass
class CellSnapshot:
    """A read-only copy of one cell taken at a point in time."""

    index: int
    cell_type: str
    content: str
    language: Optional[str] = None
    outputs: List[dict] = field(default_factory=list)
    execution_count: Optional[int] = None

    @property
    def is_code(self) -> bool:
        return self.cell_type == "code"


@dataclass(frozen=True)
class CellCompletion:
    """Signal emitted when the cell at ``index`` leaves the running state."""

    index: int
    state: CellState


CompletionListener = Callable[[CellCompletion], None]


def has_error_output(outputs: List[dict]) -> bool:
    return any(output.get("output_type") == "error" for output in outputs)


def cell_language(metadata: dict, default: Optional[str]) -> Optional[str]:
    """Returns the per-cell language stored in ``metadata.vscode.languageId``."""
    vscode_meta = metadata.get("vscode") or {}
    return vscode_meta.get("languageId") or default


class NotebookDocument(ABC):
    """Base class for a live, externally owned notebook document.

    Subclasses provide cell storage and the execution of a single code cell;
    this class runs ranges of cells in index order on one background task and
    emits a ``CellCompletion`` per cell.
    """

    notebook_type = "jupyter-notebook"

    def __init__(self):
        self.dirty = False
        self._listeners: List[CompletionListener] = []
        self._run_task: Optional[asyncio.Task] = None

    # --- Cell access ---

    @property
    @abstractmethod
    def uri(self) -> str:
        """Location of the notebook (file path or server path)."""

    @abstractmethod
    def metadata(self) -> dict:
        """Notebook-level metadata."""

    @abstractmethod
    def get_cell_count(self) -> int:
        """Current number of cells."""

    @abstractmethod
    def get_cell(self, index: int) -> CellSnapshot:
        """Snapshot of the cell currently at ``index``."""

    def kernel_descriptor(self) -> Dict[str, Optional[str]]:
        """Kernel name, display name and language from the notebook metadata."""
        meta = self.metadata()
        kernelspec = meta.get("kernelspec") or {}
        language_info = meta.get("language_info") or {}
        return {
            "name": kernelspec.get("name"),
            "display_name": kernelspec.get("display_name"),
            "language": kernelspec.get("language") or language_info.get("name"),
        }

    def default_language(self) -> str:
        return self.kernel_descriptor().get("language") or "python"

    # --- Mutation ---

    @abstractmethod
    async def apply_edit(self, start: int, end: int, new_cells: List[CellSpec]) -> None:
        """Replaces cells ``[start, end)`` with ``new_cells`` as one edit."""

    @abstractmethod
    async def replace_cell_content(self, index: int, content: str) -> None:
        """Sets the source of one cell in place and clears its outputs."""

    @abstractmethod
    async def save(self) -> str:
        """Persists the notebook and returns the saved path."""

    async def close(self) -> None:
        await self.cancel_execution()

    # --- Execution ---

    @abstractmethod
    async def _execute_code_cell(self, index: int) -> CellState:
        """Runs the code cell at ``index`` and stores its outputs."""

    async def _interrupt(self) -> None:
        """Asks the engine to stop the running cell, where supported."""

    def subscribe(self, listener: CompletionListener) -> Callable[[], None]:
        """Registers a completion listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @property
    def is_executing(self) -> bool:
        return self._run_task is not None and not self._run_task.done()

    def _emit(self, completion: CellCompletion) -> None:
        logger.trace(f"Cell {completion.index} finished: {completion.state.value}")
        for listener in list(self._listeners):
            listener(completion)

    async def request_execution(self, start: int, end: int) -> None:
        """Schedules cells ``[start, end)`` to run in index order and returns immediately."""
        if self.is_executing:
            raise BackingStoreError("Another execution is still running on this notebook.")
        logger.debug(f"Scheduling execution of cells [{start}, {end}) in {self.uri}")
        self._run_task = asyncio.create_task(self._run_cells(start, end))

    async def cancel_execution(self) -> None:
        """Stops the current run; cells that did not finish are signalled as cancelled."""
        task = self._run_task
        if task is None or task.done():
            return
        await self._interrupt()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run_cells(self, start: int, end: int) -> None:
        index = start
        try:
            while index < end:
                if index >= self.get_cell_count():
                    logger.warning(f"Cell {index} disappeared before it could run; marking cancelled.")
                    self._emit(CellCompletion(index, CellState.CANCELLED))
                elif not self.get_cell(index).is_code:
                    self._emit(CellCompletion(index, CellState.SUCCEEDED))
                else:
                    state = await self._execute_code_cell(index)
                    self.dirty = True
                    self._emit(CellCompletion(index, state))
                index += 1
        except asyncio.CancelledError:
            for remaining in range(index, end):
                self._emit(CellCompletion(remaining, CellState.CANCELLED))
            raise
        except Exception as e:
            logger.exception(f"Execution of cell {index} in {self.uri} aborted: {e}")
            self._emit(CellCompletion(index, CellState.FAILED))
            for remaining in range(index + 1, end):
                self._emit(CellCompletion(remaining, CellState.CANCELLED))
