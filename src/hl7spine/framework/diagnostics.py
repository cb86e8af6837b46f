"""Rendering of failure details for the error store.

``render_failure_detail`` formats an exception and its cause chain,
outermost first, with consecutive frames from installed libraries
(``site-packages`` / ``dist-packages``) folded into a single line, and caps
the result at ``max_length`` characters.
"""

from __future__ import annotations

import traceback
from collections.abc import Iterator

from hl7spine.core.errors import Hl7SpineError

_LIBRARY_MARKERS = ("site-packages", "dist-packages")


def iter_exception_chain(error: BaseException) -> Iterator[BaseException]:
    """Yield ``error`` and then each exception that caused it."""
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if isinstance(current, Hl7SpineError) and current.cause is not None:
            current = current.cause
        elif current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def is_library_frame(filename: str) -> bool:
    return any(marker in filename for marker in _LIBRARY_MARKERS)


def format_exception_frames(error: BaseException) -> list[str]:
    lines: list[str] = []
    folded = 0
    for frame in traceback.extract_tb(error.__traceback__):
        if is_library_frame(frame.filename):
            folded += 1
            continue
        if folded:
            lines.append(f"  ... {folded} library frames omitted")
            folded = 0
        lines.append(f'  File "{frame.filename}", line {frame.lineno}, in {frame.name}')
        if frame.line:
            lines.append(f"    {frame.line.strip()}")
    if folded:
        lines.append(f"  ... {folded} library frames omitted")
    return lines


def render_failure_detail(error: BaseException, max_length: int = 8000) -> str:
    """Bounded, human-readable rendering of ``error`` and its causes."""
    blocks: list[str] = []
    for index, exc in enumerate(iter_exception_chain(error)):
        header = "".join(traceback.format_exception_only(type(exc), exc)).strip()
        lines = [header if index == 0 else f"Caused by: {header}"]
        lines.extend(format_exception_frames(exc))
        blocks.append("\n".join(lines))
    return truncate(("\n".join(blocks)), max_length)


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    marker = f"\n... [truncated, {len(text)} characters total]"
    keep = max(max_length - len(marker), 0)
    return (text[:keep] + marker)[:max_length]


__all__ = [
    "iter_exception_chain",
    "is_library_frame",
    "format_exception_frames",
    "render_failure_detail",
    "truncate",
]
