"""
Turns edit requests into single document edits.

Each method performs exactly one edit against the document and returns the
index range the affected cells occupy afterwards. Bounds are checked by the
caller against the live cell count before any method here runs.
"""

from typing import Any, List, Optional, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel

from ..documents.base import CELL_TYPES, CellSnapshot, CellSpec, NotebookDocument
from .errors import BackingStoreError, NotebookToolError, ValidationError


def parse_cell_specs(cells: Any, default_language: Optional[str] = None) -> List[CellSpec]:
    """Validates caller-supplied cell descriptions.

    Each item is a mapping (or pydantic model) with ``content``, ``cell_type``
    (``code`` or ``markdown``) and an optional ``language_id``.

    Raises:
        ValidationError: If ``cells`` is not a list or an item is malformed.
    """
    if cells is None or not isinstance(cells, (list, tuple)):
        raise ValidationError("Missing required parameter: cells array")

    specs = []
    for position, item in enumerate(cells):
        if isinstance(item, BaseModel):
            item = item.model_dump()
        if not isinstance(item, dict):
            raise ValidationError(f"Cell {position} must be an object with 'content' and 'cell_type'.")

        content = item.get("content")
        cell_type = item.get("cell_type")
        language = item.get("language_id")

        if not isinstance(content, str):
            raise ValidationError(f"Cell {position} is missing string field 'content'.")
        if cell_type not in CELL_TYPES:
            raise ValidationError(f"Cell {position} has invalid cell_type {cell_type!r}. Must be 'code' or 'markdown'.")
        if language is not None and not isinstance(language, str):
            raise ValidationError(f"Cell {position} has a non-string 'language_id'.")

        if cell_type == "code":
            language = language or default_language
        else:
            language = None
        specs.append(CellSpec(content=content, cell_type=cell_type, language=language))
    return specs


class MutationApplier:
    """Applies insert, replace, modify and delete edits to one document."""

    def __init__(self, document: NotebookDocument):
        self.document = document

    async def _edit(self, start: int, end: int, cells: Sequence[CellSpec]) -> None:
        try:
            await self.document.apply_edit(start, end, list(cells))
        except NotebookToolError:
            raise
        except Exception as e:
            logger.error(f"Edit of cells [{start}, {end}) in {self.document.uri} failed: {e}")
            raise BackingStoreError(f"Failed to apply edit to cells [{start}, {end}): {e}") from e

    async def insert(self, cells: Sequence[CellSpec], position: int) -> Tuple[int, int]:
        """Inserts ``cells`` before ``position``; returns ``[position, position + len(cells))``."""
        await self._edit(position, position, cells)
        logger.debug(f"Inserted {len(cells)} cell(s) at {position} in {self.document.uri}")
        return position, position + len(cells)

    async def replace(self, start: int, end: int, cells: Sequence[CellSpec]) -> Tuple[int, int]:
        """Replaces ``[start, end)`` with ``cells``; returns ``[start, start + len(cells))``."""
        await self._edit(start, end, cells)
        logger.debug(f"Replaced cells [{start}, {end}) with {len(cells)} cell(s) in {self.document.uri}")
        return start, start + len(cells)

    async def modify(self, index: int, content: str) -> CellSnapshot:
        """Sets the content of one cell, keeping its type and language.

        Outputs of a code cell are cleared since they belong to the old content.
        """
        try:
            await self.document.replace_cell_content(index, content)
        except NotebookToolError:
            raise
        except Exception as e:
            logger.error(f"Modifying cell {index} in {self.document.uri} failed: {e}")
            raise BackingStoreError(f"Failed to modify cell {index}: {e}") from e
        logger.debug(f"Modified content of cell {index} in {self.document.uri}")
        return self.document.get_cell(index)

    async def delete(self, start: int, end: int) -> int:
        """Removes ``[start, end)``; returns the number of cells removed."""
        await self._edit(start, end, [])
        logger.debug(f"Deleted cells [{start}, {end}) from {self.document.uri}")
        return end - start
