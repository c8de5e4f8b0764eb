"""
Notebook operations exposed to tool callers.

``NotebookService`` composes the range checks, the mutation applier, the
execution waiter and the output normalizer. Every operation follows the order
validate, mutate, execute, wait, normalize, respond, and fetches the live cell
count right before validating. No cell state is cached between calls.
"""

from typing import Any, List, Optional

from loguru import logger

from ..documents.base import NotebookDocument
from ..documents.manager import DocumentManager
from .config import ExecutionSettings
from .errors import ExecutionTimeout, ValidationError
from .mutations import MutationApplier, parse_cell_specs
from .outputs import is_truncated, normalize_outputs
from .ranges import check_range_still_valid, resolve_insert_position, validate_index, validate_range
from .waiter import ExecutionReport, ExecutionWaiter


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _indent(text: str, prefix: str = "    ") -> str:
    return "\n".join(prefix + line for line in text.splitlines()) if text else prefix.rstrip()


def format_outputs(outputs: List[dict], settings: ExecutionSettings) -> str:
    """Renders a cell's output records, one block per record."""
    rendered = normalize_outputs(outputs, settings.max_output_size)
    if not rendered:
        return "  (no outputs)"
    truncated = sum(1 for text in rendered if is_truncated(text))
    if truncated:
        logger.warning(f"Truncated {truncated} output(s) to {settings.max_output_size} characters")
    blocks = []
    for number, text in enumerate(rendered, start=1):
        blocks.append(f"  Output {number}:\n{_indent(text)}")
    return "\n".join(blocks)


def format_report(report: ExecutionReport, settings: ExecutionSettings) -> str:
    lines = [f"Execution results for cells [{report.start}, {report.end}):"]
    for result in report.results:
        if result.cell_type != "code":
            lines.append(f"Cell {result.index} ({result.cell_type}): not executed")
            continue
        status = result.state.value
        if result.timed_out:
            status = f"{status} (timed out)"
        lines.append(f"Cell {result.index} (code): {status}")
        lines.append(format_outputs(result.outputs, settings))
    failed = report.failed
    if failed:
        lines.append(f"{_plural(len(failed), 'cell')} finished with an error: {', '.join(str(r.index) for r in failed)}")
    lines.append(f"Finished in {report.elapsed:.2f} s.")
    return "\n".join(lines)


class NotebookService:
    """Facade implementing each notebook operation against the active document."""

    def __init__(self, documents: DocumentManager):
        self.documents = documents

    async def _document(self) -> NotebookDocument:
        return await self.documents.current()

    async def _execute_and_describe(
        self,
        document: NotebookDocument,
        start: int,
        end: int,
        applied: Optional[str],
        settings: ExecutionSettings,
    ) -> str:
        # another actor may have edited the notebook since the range was computed
        check_range_still_valid(document.get_cell_count(), start, end)
        waiter = ExecutionWaiter(document, settings.timeout_seconds)
        try:
            report = await waiter.run(start, end)
        except ExecutionTimeout as e:
            parts = [applied] if applied else []
            if e.report is not None:
                parts.append(format_report(e.report, settings))
            parts.append(
                f"Execution timed out after {settings.timeout_seconds} seconds; "
                f"unfinished cells were cancelled."
            )
            raise ExecutionTimeout("\n\n".join(parts), report=e.report, applied=applied) from e

        parts = [applied] if applied else []
        parts.append(format_report(report, settings))
        return "\n\n".join(parts)

    # --- Read operations ---

    async def get_notebook_info(self) -> str:
        document = await self._document()
        cell_count = document.get_cell_count()
        cells = [document.get_cell(index) for index in range(cell_count)]
        code_count = sum(1 for cell in cells if cell.is_code)
        kernel = document.kernel_descriptor()

        kernel_line = "Kernel: not specified"
        if kernel.get("name") or kernel.get("display_name"):
            kernel_line = (
                f"Kernel: {kernel.get('display_name') or kernel.get('name')} "
                f"(name: {kernel.get('name') or 'unknown'}, language: {kernel.get('language') or 'unknown'})"
            )
        return "\n".join(
            [
                f"Notebook: {document.uri}",
                f"Type: {document.notebook_type}",
                kernel_line,
                f"Cells: {cell_count} (code: {code_count}, markdown: {cell_count - code_count})",
                f"Unsaved changes: {'yes' if document.dirty else 'no'}",
            ]
        )

    async def get_cells(self, settings: ExecutionSettings) -> str:
        document = await self._document()
        cell_count = document.get_cell_count()
        if cell_count == 0:
            return "Notebook has no cells."

        blocks = [f"Notebook has {_plural(cell_count, 'cell')}."]
        for index in range(cell_count):
            cell = document.get_cell(index)
            if cell.is_code:
                header = f"Cell {index} (code, {cell.language or 'unknown'})"
                if cell.execution_count is not None:
                    header += f" [execution count: {cell.execution_count}]"
                block = f"{header}:\n{cell.content}\nOutputs:\n{format_outputs(cell.outputs, settings)}"
            else:
                block = f"Cell {index} (markdown):\n{cell.content}"
            blocks.append(block)
        return "\n\n".join(blocks)

    # --- Mutations ---

    async def insert_cells(
        self, cells: Any, insert_position: Optional[int], noexec: bool, settings: ExecutionSettings
    ) -> str:
        document = await self._document()
        specs = parse_cell_specs(cells, document.default_language())
        if not specs:
            raise ValidationError("The cells array must contain at least one cell.")

        position = resolve_insert_position(document.get_cell_count(), insert_position)
        start, end = await MutationApplier(document).insert(specs, position)
        applied = (
            f"Inserted {_plural(len(specs), 'cell')} at index {start} (now occupying [{start}, {end})). "
            f"Notebook now has {_plural(document.get_cell_count(), 'cell')}."
        )
        logger.info(applied)

        if noexec or not any(spec.cell_type == "code" for spec in specs):
            return applied
        return await self._execute_and_describe(document, start, end, applied, settings)

    async def replace_cells(
        self, start_index: int, end_index: int, cells: Any, noexec: bool, settings: ExecutionSettings
    ) -> str:
        document = await self._document()
        specs = parse_cell_specs(cells, document.default_language())
        start, end = validate_range(document.get_cell_count(), start_index, end_index)

        new_start, new_end = await MutationApplier(document).replace(start, end, specs)
        applied = (
            f"Replaced cells [{start}, {end}) with {_plural(len(specs), 'cell')} (now occupying [{new_start}, {new_end})). "
            f"Notebook now has {_plural(document.get_cell_count(), 'cell')}."
        )
        logger.info(applied)

        if noexec or not any(spec.cell_type == "code" for spec in specs):
            return applied
        return await self._execute_and_describe(document, new_start, new_end, applied, settings)

    async def modify_cell_content(
        self, cell_index: int, content: str, noexec: bool, settings: ExecutionSettings
    ) -> str:
        if not isinstance(content, str):
            raise ValidationError("Missing required parameter: content")
        document = await self._document()
        index = validate_index(document.get_cell_count(), cell_index)

        cell = await MutationApplier(document).modify(index, content)
        applied = f"Updated content of cell {index} ({cell.cell_type})."
        if cell.is_code and noexec:
            applied += " Previous outputs were cleared; the cell was not executed."
        logger.info(applied)

        if noexec or not cell.is_code:
            return applied
        return await self._execute_and_describe(document, index, index + 1, applied, settings)

    async def execute_cells(self, start_index: int, end_index: int, settings: ExecutionSettings) -> str:
        document = await self._document()
        start, end = validate_range(document.get_cell_count(), start_index, end_index)
        logger.info(f"Executing cells [{start}, {end}) of {document.uri}")
        return await self._execute_and_describe(document, start, end, None, settings)

    async def delete_cells(self, start_index: int, end_index: int) -> str:
        document = await self._document()
        start, end = validate_range(document.get_cell_count(), start_index, end_index)
        removed = await MutationApplier(document).delete(start, end)
        result = (
            f"Deleted {_plural(removed, 'cell')} [{start}, {end}). "
            f"Notebook now has {_plural(document.get_cell_count(), 'cell')}."
        )
        logger.info(result)
        return result

    # --- Persistence ---

    async def save_notebook(self) -> str:
        document = await self._document()
        saved_path = await document.save()
        logger.info(f"Saved notebook to {saved_path}")
        return f"Notebook saved successfully: {saved_path}"

    async def open_notebook(self, path: str) -> str:
        document = await self.documents.open_notebook(path)
        kernel = document.kernel_descriptor()
        return "\n".join(
            [
                f"Opened notebook: {document.uri}",
                f"Type: {document.notebook_type}",
                f"Kernel: {kernel.get('display_name') or kernel.get('name') or 'not specified'}"
                f" (language: {kernel.get('language') or 'unknown'})",
                f"Cells: {document.get_cell_count()}",
            ]
        )
