"""
Notebook file operations (path checks, read, write).

These functions are independent of global state and receive the allowed
roots explicitly.
"""

import os
from typing import List, Optional

import nbformat
from loguru import logger


def find_allowed_root(target_path: str, allowed_roots: List[str]) -> Optional[str]:
    """Returns the allowed root containing ``target_path``, or None."""
    if not allowed_roots:
        logger.warning("Security check skipped: No allowed roots configured.")
        return None

    abs_target_path = os.path.realpath(target_path)
    for allowed_root in allowed_roots:
        abs_allowed_root = os.path.realpath(allowed_root)
        if abs_target_path.startswith(abs_allowed_root + os.sep) or abs_target_path == abs_allowed_root:
            logger.trace(f"Path '{abs_target_path}' allowed within root '{abs_allowed_root}'")
            return abs_allowed_root

    logger.warning(f"Security check failed: Path '{abs_target_path}' is outside allowed roots: {allowed_roots}")
    return None


def is_path_allowed(target_path: str, allowed_roots: List[str]) -> bool:
    """Checks if the target path is within one of the allowed roots."""
    return find_allowed_root(target_path, allowed_roots) is not None


def check_notebook_path(notebook_path: str, allowed_roots: List[str]) -> str:
    """Validates a notebook path and returns it resolved.

    Raises:
        ValueError: If the path is relative or not an ``.ipynb`` file.
        PermissionError: If the path is outside the allowed roots.
    """
    if not os.path.isabs(notebook_path):
        logger.error(f"Security Risk: Received non-absolute path: {notebook_path}")
        raise ValueError("Invalid notebook path: Only absolute paths are allowed.")

    if not notebook_path.endswith(".ipynb"):
        raise ValueError(f"Invalid file type: '{notebook_path}' must point to a .ipynb file.")

    if not is_path_allowed(notebook_path, allowed_roots):
        raise PermissionError(f"Access denied: Path '{notebook_path}' is outside the allowed workspace roots.")

    return os.path.realpath(notebook_path)


def clean_notebook_outputs(nb: nbformat.NotebookNode) -> None:
    """Drops kernel-protocol ``transient`` fields, which nbformat's schema rejects."""
    for cell in nb.cells:
        if cell.cell_type == "code":
            for output in cell.get("outputs", []):
                output.pop("transient", None)


async def read_notebook(notebook_path: str, allowed_roots: List[str]) -> nbformat.NotebookNode:
    """Reads a notebook file safely, ensuring it's within allowed roots."""
    resolved_path = check_notebook_path(notebook_path, allowed_roots)
    if not os.path.isfile(resolved_path):
        raise FileNotFoundError(f"Notebook file not found at: {resolved_path}")

    try:
        logger.debug(f"Reading notebook from: {resolved_path}")
        with open(resolved_path, "r", encoding="utf-8") as f:
            nb = nbformat.read(f, as_version=4)
        logger.debug(f"Successfully read notebook: {resolved_path}")
        return nb
    except Exception as e:
        logger.error(f"Error reading notebook {resolved_path}: {e}")
        raise IOError(f"Failed to read notebook file '{resolved_path}': {e}") from e


async def write_notebook(notebook_path: str, nb_node: nbformat.NotebookNode, allowed_roots: List[str]) -> str:
    """Writes a notebook node to a file safely and returns the resolved path."""
    resolved_path = check_notebook_path(notebook_path, allowed_roots)

    try:
        clean_notebook_outputs(nb_node)
        logger.debug(f"Writing notebook to: {resolved_path}")
        with open(resolved_path, "w", encoding="utf-8") as f:
            nbformat.write(nb_node, f)
        logger.debug(f"Successfully wrote notebook: {resolved_path}")
        return resolved_path
    except Exception as e:
        logger.error(f"Error writing notebook {resolved_path}: {e}")
        raise IOError(f"Failed to write notebook file '{resolved_path}': {e}") from e
