"""
Bounds checks for cell indices and half-open cell ranges.

All checks take the live cell count as an argument; callers fetch it from the
document immediately before validating.
"""

from typing import Optional, Tuple

from .errors import RangeError, ValidationError


def _require_int(name: str, value) -> int:
    # bool is an int subclass but never a valid index
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Parameter '{name}' must be an integer, got {type(value).__name__}.")
    return value


def validate_range(cell_count: int, start_index: int, end_index: int) -> Tuple[int, int]:
    """Checks that [start_index, end_index) addresses existing cells.

    Requires ``0 <= start_index < cell_count`` and
    ``start_index < end_index <= cell_count``.

    Returns:
        The validated ``(start_index, end_index)`` pair.

    Raises:
        RangeError: If either bound is out of range or the range is empty.
    """
    start_index = _require_int("start_index", start_index)
    end_index = _require_int("end_index", end_index)

    if start_index < 0 or start_index >= cell_count:
        raise RangeError(f"Start index {start_index} is out of bounds (0-{cell_count - 1}).")
    if end_index <= start_index or end_index > cell_count:
        raise RangeError(
            f"End index {end_index} is invalid. Must be greater than start index {start_index} "
            f"and not greater than {cell_count}."
        )
    return start_index, end_index


def validate_index(cell_count: int, cell_index: int) -> int:
    """Checks that ``0 <= cell_index < cell_count``."""
    cell_index = _require_int("cell_index", cell_index)
    if cell_index < 0 or cell_index >= cell_count:
        raise RangeError(f"Cell index {cell_index} is out of bounds (0-{cell_count - 1}).")
    return cell_index


def resolve_insert_position(cell_count: int, insert_position: Optional[int]) -> int:
    """Resolves an insertion point; ``None`` appends at the end.

    Inserting at ``cell_count`` appends, inserting at ``0`` prepends.
    """
    if insert_position is None:
        return cell_count
    insert_position = _require_int("insert_position", insert_position)
    if insert_position < 0 or insert_position > cell_count:
        raise RangeError(f"Insert position {insert_position} is out of bounds (0-{cell_count}).")
    return insert_position


def check_range_still_valid(cell_count: int, start_index: int, end_index: int) -> None:
    """Rejects a previously captured range once the notebook has shrunk below it.

    Used after a suspension point, when another actor may have removed cells.
    """
    if end_index > cell_count:
        raise RangeError(
            f"Notebook changed while waiting: cells [{start_index}, {end_index}) no longer exist "
            f"(notebook now has {cell_count} cells)."
        )
