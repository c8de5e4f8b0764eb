"""
Rendering of cell output records into bounded plain text.

Output records are nbformat v4 output dicts (``stream``, ``error``,
``execute_result``, ``display_data``). Rendering never modifies the record.
"""

import re
from typing import Iterable, List

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_TRUNCATION_MARKER = "\n... [{omitted} more characters truncated]"
_TRUNCATION_MARKER_RE = re.compile(r"\n\.\.\. \[(\d+) more characters truncated\]\Z")

_TEXT_MIME_PREFERENCE = ("text/plain", "text/markdown")
_BINARY_MIME_PREFIXES = ("image/", "audio/", "video/")
_BINARY_MIME_TYPES = ("application/pdf", "application/octet-stream")


def strip_ansi_codes(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return _ANSI_ESCAPE.sub("", text)


def _as_text(value) -> str:
    if isinstance(value, list):
        return "".join(str(part) for part in value)
    if value is None:
        return ""
    return str(value)


def _is_binary_mime(mime_type: str) -> bool:
    return mime_type.startswith(_BINARY_MIME_PREFIXES) or mime_type in _BINARY_MIME_TYPES


def truncate_text(text: str, max_size: int) -> str:
    """Shortens ``text`` to ``max_size`` characters plus a marker naming the omitted count.

    Text that already carries a marker from a previous truncation at the same
    (or a larger) limit is returned unchanged.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive: {max_size}")

    marker = _TRUNCATION_MARKER_RE.search(text)
    if marker and marker.start() <= max_size:
        return text
    if len(text) <= max_size:
        return text

    omitted = len(text) - max_size
    return text[:max_size] + _TRUNCATION_MARKER.format(omitted=omitted)


def is_truncated(text: str) -> bool:
    return _TRUNCATION_MARKER_RE.search(text) is not None


def _render_error(output: dict) -> str:
    header = f"{output.get('ename', 'Error')}: {output.get('evalue', '')}"
    traceback = output.get("traceback") or []
    if isinstance(traceback, str):
        traceback = [traceback]
    trace_text = "\n".join(strip_ansi_codes(_as_text(line)) for line in traceback)
    if trace_text.strip():
        return f"{header}\n{trace_text}"
    return header


def _render_rich(output: dict) -> str:
    data = output.get("data") or {}
    output_type = output.get("output_type", "display_data")

    text = None
    for mime_type in _TEXT_MIME_PREFERENCE:
        if mime_type in data:
            text = strip_ansi_codes(_as_text(data[mime_type]))
            break

    placeholders = [f"[{mime_type} output]" for mime_type in data if _is_binary_mime(mime_type)]
    if text is None:
        if not data:
            return f"[{output_type}: no data]"
        if not placeholders:
            return f"[{output_type}: {', '.join(data)}]"
        return "\n".join(placeholders)
    return "\n".join([text] + placeholders)


def render_output(output: dict) -> str:
    """Renders one output record as text, without any size limit."""
    output_type = output.get("output_type")

    if output_type == "stream":
        return strip_ansi_codes(_as_text(output.get("text")))
    if output_type == "error":
        return _render_error(output)
    if output_type in ("execute_result", "display_data"):
        return _render_rich(output)
    return f"[Unknown output type: {output_type}]"


def normalize_output(output: dict, max_size: int) -> str:
    """Renders one output record and bounds it to ``max_size`` characters."""
    return truncate_text(render_output(output), max_size)


def normalize_outputs(outputs: Iterable[dict], max_size: int) -> List[str]:
    """Normalizes each record on its own so one long record cannot crowd out the others."""
    return [normalize_output(output, max_size) for output in outputs]
