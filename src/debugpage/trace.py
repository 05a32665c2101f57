"""
Trace normalization.

Converts a Python traceback into raw entries ordered from the failure point
outwards, and cuts the sequence at the first entry that belongs to the
interceptor so the debugger never shows up in its own page.
"""
from __future__ import annotations

import traceback as _traceback
from types import TracebackType
from typing import Iterable, Optional

from .frames import Frame, RawEntry, UnitLookup, lookup_unit, resolve
from .settings import Settings

INTERCEPTOR_MODULE = "debugpage.interceptor"


def raw_entries(tb: Optional[TracebackType]) -> list[RawEntry]:
    """Raw entries for every traceback level, innermost first."""
    entries: list[RawEntry] = []
    for frame, lineno in _traceback.walk_tb(tb):
        code = frame.f_code
        entries.append(RawEntry(
            module=frame.f_globals.get("__name__"),
            function=getattr(code, "co_qualname", code.co_name),
            arity=code.co_argcount + code.co_kwonlyargcount,
            file=code.co_filename or None,
            line=lineno,
        ))
    entries.reverse()
    return entries


def normalize(entries: Iterable[RawEntry], boundary: str = INTERCEPTOR_MODULE) -> list[tuple[int, RawEntry]]:
    retained: list[tuple[int, RawEntry]] = []
    for entry in entries:
        if entry.module == boundary:
            break
        retained.append((len(retained), entry))
    return retained


def build_frames(
    tb: Optional[TracebackType],
    settings: Settings,
    lookup: UnitLookup = lookup_unit,
    boundary: str = INTERCEPTOR_MODULE,
) -> list[Frame]:
    return [
        resolve(entry, index, settings.target_package, settings.editor, lookup)
        for index, entry in normalize(raw_entries(tb), boundary)
    ]
