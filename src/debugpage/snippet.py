"""
Source snippet extraction for debug page frames.

Reads at most ``line + RADIUS`` lines from a source file and returns the
numbered window around ``line``, with the target line highlighted.
"""
from __future__ import annotations

import os
from itertools import islice
from typing import NamedTuple, Optional

RADIUS = 5


class SnippetLine(NamedTuple):
    number: int
    text: str
    highlight: bool


def _numbered(lines: list[str], start: int, highlight: bool) -> list[SnippetLine]:
    return [
        SnippetLine(start + i, text.rstrip("\r\n"), highlight)
        for i, text in enumerate(lines)
    ]


def valid_line(line) -> bool:
    return isinstance(line, int) and not isinstance(line, bool) and line >= 1


def get_snippet(file: Optional[str], line: Optional[int]) -> Optional[list[SnippetLine]]:
    """Return the lines around ``line`` in ``file``, or None.

    None is returned when the file is not a regular file, the line is not a
    positive integer, the file cannot be read, or the file is shorter than
    ``line`` (no line to highlight).
    """
    if not file or not os.path.isfile(file):
        return None
    if not valid_line(line):
        return None

    discard = max(line - RADIUS - 1, 0)
    try:
        with open(file, encoding="utf-8", errors="replace") as fh:
            window = list(islice(fh, discard, line + RADIUS))
    except OSError:
        return None

    before_count = line - discard - 1
    if len(window) <= before_count:
        return None

    before = _numbered(window[:before_count], discard + 1, False)
    center = _numbered(window[before_count:before_count + 1], line, True)
    after = _numbered(window[before_count + 1:], line + 1, False)
    return before + center + after
