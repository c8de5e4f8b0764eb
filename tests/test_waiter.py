"""
Tests for waiting on execution completion signals.
"""

import asyncio
from typing import List

import pytest

from live_notebook_mcp.core.errors import ExecutionTimeout, RangeError
from live_notebook_mcp.core.waiter import ExecutionWaiter
from live_notebook_mcp.documents import CellCompletion, CellSnapshot, CellState, FileNotebookDocument, NotebookDocument

from conftest import build_notebook, stream_output


class ManualDocument(NotebookDocument):
    """In-memory document whose completion signals are emitted by the test."""

    def __init__(self, cell_types: List[str]):
        super().__init__()
        self.cell_types = list(cell_types)
        self.outputs = {index: [] for index in range(len(cell_types))}
        self.requested = asyncio.Event()
        self.requests = []
        self.cancelled = False

    @property
    def uri(self) -> str:
        return "/manual.ipynb"

    def metadata(self) -> dict:
        return {}

    def get_cell_count(self) -> int:
        return len(self.cell_types)

    def get_cell(self, index: int) -> CellSnapshot:
        return CellSnapshot(
            index=index,
            cell_type=self.cell_types[index],
            content=f"cell {index}",
            outputs=self.outputs.get(index, []),
        )

    async def apply_edit(self, start, end, new_cells):
        raise NotImplementedError

    async def replace_cell_content(self, index, content):
        raise NotImplementedError

    async def save(self) -> str:
        return self.uri

    async def _execute_code_cell(self, index: int) -> CellState:
        raise NotImplementedError

    async def request_execution(self, start: int, end: int) -> None:
        self.requests.append((start, end))
        self.requested.set()

    async def cancel_execution(self) -> None:
        self.cancelled = True


@pytest.mark.asyncio
async def test_out_of_order_signals_are_reported_in_index_order():
    doc = ManualDocument(["code", "code", "code"])
    task = asyncio.create_task(ExecutionWaiter(doc, 5).run(0, 3))
    await doc.requested.wait()

    doc.outputs[2] = [stream_output("two\n")]
    doc._emit(CellCompletion(2, CellState.SUCCEEDED))
    doc._emit(CellCompletion(0, CellState.FAILED))
    await asyncio.sleep(0)
    assert not task.done()

    doc._emit(CellCompletion(1, CellState.SUCCEEDED))
    report = await task

    assert [result.index for result in report.results] == [0, 1, 2]
    assert [result.state for result in report.results] == [CellState.FAILED, CellState.SUCCEEDED, CellState.SUCCEEDED]
    assert report.results[2].outputs == [stream_output("two\n")]
    assert [result.index for result in report.failed] == [0]
    assert doc.listener_count == 0


@pytest.mark.asyncio
async def test_signals_outside_the_range_are_ignored():
    doc = ManualDocument(["code", "code", "code"])
    task = asyncio.create_task(ExecutionWaiter(doc, 5).run(1, 2))
    await doc.requested.wait()

    doc._emit(CellCompletion(0, CellState.SUCCEEDED))
    doc._emit(CellCompletion(2, CellState.SUCCEEDED))
    await asyncio.sleep(0)
    assert not task.done()

    doc._emit(CellCompletion(1, CellState.SUCCEEDED))
    report = await task
    assert [result.index for result in report.results] == [1]


@pytest.mark.asyncio
async def test_markdown_only_range_needs_no_signal():
    doc = ManualDocument(["markdown", "markdown"])
    report = await ExecutionWaiter(doc, 5).run(0, 2)

    assert doc.requests == []
    assert report.succeeded
    assert [result.cell_type for result in report.results] == ["markdown", "markdown"]


@pytest.mark.asyncio
async def test_timeout_unsubscribes_and_cancels():
    doc = ManualDocument(["code", "code"])
    with pytest.raises(ExecutionTimeout) as exc_info:
        task = asyncio.create_task(ExecutionWaiter(doc, 0.05).run(0, 2))
        await doc.requested.wait()
        doc.outputs[0] = [stream_output("done\n")]
        doc._emit(CellCompletion(0, CellState.SUCCEEDED))
        await task

    report = exc_info.value.report
    assert report.timed_out
    assert report.results[0].state == CellState.SUCCEEDED
    assert report.results[0].outputs == [stream_output("done\n")]
    assert report.results[1].state == CellState.CANCELLED
    assert report.results[1].timed_out
    assert doc.cancelled
    assert doc.listener_count == 0


@pytest.mark.asyncio
async def test_notebook_shrinking_while_waiting_is_a_range_error():
    doc = ManualDocument(["code", "code"])
    task = asyncio.create_task(ExecutionWaiter(doc, 5).run(0, 2))
    await doc.requested.wait()

    doc._emit(CellCompletion(0, CellState.SUCCEEDED))
    doc.cell_types.pop()
    doc._emit(CellCompletion(1, CellState.SUCCEEDED))

    with pytest.raises(RangeError, match="Notebook changed while waiting"):
        await task
    assert doc.listener_count == 0


@pytest.mark.asyncio
async def test_timeout_keeps_results_of_finished_cells(engine):
    nb = build_notebook([("code", "a"), ("code", "b"), ("code", "c")])
    doc = FileNotebookDocument("/tmp/waiter.ipynb", nb, engine, [])
    engine.gate("b")

    with pytest.raises(ExecutionTimeout) as exc_info:
        await ExecutionWaiter(doc, 0.2).run(0, 3)

    report = exc_info.value.report
    assert [result.state for result in report.results] == [
        CellState.SUCCEEDED,
        CellState.CANCELLED,
        CellState.CANCELLED,
    ]
    assert report.results[0].outputs[0]["text"] == "ran: a\n"
    assert engine.executed == ["a", "b"]
    assert engine.interrupts == 1
    assert not doc.is_executing
    assert doc.listener_count == 0


@pytest.mark.asyncio
async def test_runs_code_cells_in_index_order(engine):
    nb = build_notebook([("code", "first"), ("markdown", "# notes"), ("code", "second")])
    doc = FileNotebookDocument("/tmp/waiter.ipynb", nb, engine, [])

    report = await ExecutionWaiter(doc, 5).run(0, 3)

    assert engine.executed == ["first", "second"]
    assert report.succeeded
    assert report.results[1].cell_type == "markdown"
    assert doc.dirty
