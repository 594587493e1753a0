"""Line ranges of text fragments within a larger text."""

from __future__ import annotations

from typing import Tuple

from .errors import InconsistencyError

# 1-based line numbers, inclusive.
LineRange = Tuple[int, int]


def locate(container: str, fragment: str) -> LineRange:
    """Return the line range (1-based: [start, end]) of ``fragment`` in ``container``.

    The first occurrence of ``fragment`` is used.  A newline terminating the
    last line of the fragment does not extend the range.
    """
    pos = container.find(fragment)
    if pos == -1:
        raise InconsistencyError(f"unable to locate text {_preview(fragment)!r} within {_preview(container)!r}")
    start = 1 + container.count("\n", 0, pos)
    body = fragment[:-1] if fragment.endswith("\n") else fragment
    return start, start + body.count("\n")


def extract_lines(text: str, line_range: LineRange) -> str:
    """Return the lines of ``text`` covered by ``line_range``, line endings kept."""
    start, end = line_range
    return "".join(text.splitlines(keepends=True)[start - 1:end])


def _preview(text: str, limit: int = 40) -> str:
    first = text.split("\n", 1)[0]
    if len(first) > limit:
        return first[:limit] + "..."
    return first
