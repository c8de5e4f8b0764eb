"""
Waiting for the execution of a range of cells.

The document reports each finished cell through an out-of-band completion
signal. The waiter subscribes before requesting execution, resolves a future
once every code cell in the range has reported, and a timer bounds the whole
range. The subscription is always removed, on success and on timeout alike.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from loguru import logger

from ..documents.base import CellCompletion, CellState, NotebookDocument
from .errors import ExecutionTimeout
from .ranges import check_range_still_valid


@dataclass
class CellRunResult:
    """Outcome of one cell. ``outputs`` are the raw output records captured at completion."""

    index: int
    cell_type: str
    state: CellState
    outputs: List[dict] = field(default_factory=list)
    timed_out: bool = False


@dataclass
class ExecutionReport:
    """Per-cell results of one execution request, in index order."""

    start: int
    end: int
    results: List[CellRunResult] = field(default_factory=list)
    timed_out: bool = False
    elapsed: float = 0.0

    @property
    def failed(self) -> List[CellRunResult]:
        return [result for result in self.results if result.state == CellState.FAILED]

    @property
    def succeeded(self) -> bool:
        return all(result.state == CellState.SUCCEEDED for result in self.results)


class ExecutionWaiter:
    """Runs cells ``[start, end)`` of a document and waits for all of them to finish."""

    def __init__(self, document: NotebookDocument, timeout_seconds: float):
        self.document = document
        self.timeout_seconds = timeout_seconds

    def _capture(self, index: int, state: CellState, timed_out: bool = False) -> CellRunResult:
        if index >= self.document.get_cell_count():
            return CellRunResult(index=index, cell_type="code", state=state, timed_out=timed_out)
        snapshot = self.document.get_cell(index)
        return CellRunResult(
            index=index,
            cell_type=snapshot.cell_type,
            state=state,
            outputs=list(snapshot.outputs),
            timed_out=timed_out,
        )

    async def run(self, start: int, end: int) -> ExecutionReport:
        """Requests execution and waits for every cell in the range to reach a terminal state.

        Returns:
            The report with one result per cell, ordered by index.

        Raises:
            ExecutionTimeout: If the budget elapses first. The exception carries
                the report; cells that had finished keep their outputs and the
                unfinished ones are marked cancelled.
            RangeError: If the notebook shrank below the range while waiting.
        """
        loop = asyncio.get_running_loop()
        started = time.monotonic()
        results: Dict[int, CellRunResult] = {}
        pending: Set[int] = set()

        for index in range(start, end):
            snapshot = self.document.get_cell(index)
            if snapshot.is_code:
                pending.add(index)
            else:
                results[index] = CellRunResult(index=index, cell_type=snapshot.cell_type, state=CellState.SUCCEEDED)

        timed_out = False
        if pending:
            finished: asyncio.Future = loop.create_future()

            def on_completion(completion: CellCompletion) -> None:
                # signals are matched by position and may arrive in any order
                if completion.index not in pending:
                    return
                pending.discard(completion.index)
                results[completion.index] = self._capture(completion.index, completion.state)
                if not pending and not finished.done():
                    finished.set_result(False)

            def on_timeout() -> None:
                if not finished.done():
                    finished.set_result(True)

            unsubscribe = self.document.subscribe(on_completion)
            timer = loop.call_later(self.timeout_seconds, on_timeout)
            try:
                await self.document.request_execution(start, end)
                timed_out = await finished
            finally:
                timer.cancel()
                unsubscribe()

            if timed_out:
                logger.warning(
                    f"Execution of cells [{start}, {end}) timed out after {self.timeout_seconds} seconds; "
                    f"{len(pending)} cell(s) unfinished"
                )
                await self.document.cancel_execution()
                for index in pending:
                    results[index] = self._capture(index, CellState.CANCELLED, timed_out=True)

        report = ExecutionReport(
            start=start,
            end=end,
            results=[results[index] for index in sorted(results)],
            timed_out=timed_out,
            elapsed=time.monotonic() - started,
        )

        if timed_out:
            raise ExecutionTimeout(
                f"Execution timed out after {self.timeout_seconds} seconds.",
                report=report,
            )

        check_range_still_valid(self.document.get_cell_count(), start, end)
        return report
