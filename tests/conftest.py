"""
Pytest configuration and fixtures for the live notebook MCP server tests.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import nbformat
import pytest

from live_notebook_mcp.core.config import ExecutionSettings, ServerConfig
from live_notebook_mcp.core.service import NotebookService
from live_notebook_mcp.documents import DocumentManager, EngineResult, ExecutionEngine


def stream_output(text: str, name: str = "stdout") -> dict:
    return {"output_type": "stream", "name": name, "text": text}


def error_output(ename: str = "ValueError", evalue: str = "bad value", traceback: Optional[List[str]] = None) -> dict:
    return {"output_type": "error", "ename": ename, "evalue": evalue, "traceback": traceback or []}


class FakeEngine(ExecutionEngine):
    """Scripted engine: results and gates are keyed by cell source.

    Without a scripted result, running ``source`` prints ``ran: <source>``.
    A gate (``asyncio.Event``) holds the execution until it is set.
    """

    def __init__(self):
        self.results: Dict[str, Union[EngineResult, Exception]] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.executed: List[str] = []
        self.interrupts = 0
        self.stopped = False

    def gate(self, source: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[source] = event
        return event

    async def execute(self, source: str) -> EngineResult:
        self.executed.append(source)
        gate = self.gates.get(source)
        if gate is not None:
            await gate.wait()
        result = self.results.get(source)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return EngineResult(outputs=[stream_output(f"ran: {source}\n")], execution_count=len(self.executed))
        return result

    async def interrupt(self) -> None:
        self.interrupts += 1

    async def stop(self) -> None:
        self.stopped = True


CellDef = Union[Tuple[str, str], Tuple[str, str, List[dict]]]


def build_notebook(cells: Sequence[CellDef], language: str = "python") -> nbformat.NotebookNode:
    """Builds a v4 notebook from ``(cell_type, source[, outputs])`` tuples."""
    nb = nbformat.v4.new_notebook()
    nb.metadata["kernelspec"] = {"name": "python3", "display_name": "Python 3", "language": language}
    nb.metadata["language_info"] = {"name": language}
    for cell_def in cells:
        cell_type, source = cell_def[0], cell_def[1]
        if cell_type == "code":
            cell = nbformat.v4.new_code_cell(source=source)
            if len(cell_def) > 2:
                cell.outputs = [nbformat.from_dict(output) for output in cell_def[2]]
        else:
            cell = nbformat.v4.new_markdown_cell(source=source)
        nb.cells.append(cell)
    return nb


# --- Fixtures ---


@pytest.fixture
def notebook_root(tmp_path: Path) -> Path:
    root = tmp_path / "notebooks"
    root.mkdir()
    return root


@pytest.fixture
def make_notebook(notebook_root: Path) -> Callable[..., str]:
    """Writes a notebook into the allowed root and returns its absolute path."""

    def _make(cells: Sequence[CellDef] = (), name: Optional[str] = None, language: str = "python") -> str:
        path = notebook_root / (name or f"test_nb_{uuid.uuid4().hex[:8]}.ipynb")
        with open(path, "w", encoding="utf-8") as f:
            nbformat.write(build_notebook(cells, language), f)
        return str(path)

    return _make


@pytest.fixture
def server_config(notebook_root: Path, tmp_path: Path) -> ServerConfig:
    """Provides a ServerConfig instance configured for testing."""

    class MockArgs:
        command = "start"
        allow_root_dirs = [str(notebook_root)]
        log_dir = str(tmp_path / "logs")
        log_level = "DEBUG"
        max_output_size = 2000
        timeout_seconds = 5
        server_url = "http://localhost:8888"
        token = None
        live = False
        notebook = None
        transport = "stdio"
        host = "127.0.0.1"
        port = 8080
        path = "/mcp"

    return ServerConfig(MockArgs())


@pytest.fixture
def settings() -> ExecutionSettings:
    return ExecutionSettings(max_output_size=2000, timeout_seconds=5)


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def documents(server_config: ServerConfig, engine: FakeEngine) -> DocumentManager:
    return DocumentManager(server_config, engine_factory=lambda: engine)


@pytest.fixture
def service(documents: DocumentManager) -> NotebookService:
    return NotebookService(documents)
