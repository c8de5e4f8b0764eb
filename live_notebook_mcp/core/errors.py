"""
Error types raised by the notebook orchestration layer.

Validation and range errors are raised before any mutation is applied.
Execution timeouts are raised after the mutation has committed and carry the
partial execution report so callers can still see what ran.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .waiter import ExecutionReport


class NotebookToolError(Exception):
    """Base class for all errors surfaced to tool callers."""


class ValidationError(NotebookToolError):
    """A request field is missing or malformed."""


class RangeError(NotebookToolError):
    """An index or range lies outside the notebook's current bounds."""


class BackingStoreError(NotebookToolError):
    """The document layer rejected a mutation, execution request or save."""


class ExecutionTimeout(NotebookToolError):
    """The execution wait budget elapsed before every cell finished.

    Attributes:
        report: The partial execution report (completed cells keep their outputs).
        applied: Text describing the mutation that was already applied, if any.
    """

    def __init__(self, message: str, report: Optional["ExecutionReport"] = None, applied: Optional[str] = None):
        super().__init__(message)
        self.report = report
        self.applied = applied
