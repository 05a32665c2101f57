"""
Frame resolution.

Turns one raw trace entry into a display-ready :class:`Frame`: a label for
the activation, the resolved source file, a package context, a source
snippet and an optional editor link.
"""
from __future__ import annotations

import inspect
import os
import sys
from dataclasses import dataclass
from typing import Literal, Optional, Protocol, Union
from urllib.parse import quote

from .escape import h
from .snippet import SnippetLine, get_snippet, valid_line

Context = Literal["app", "all"]

NOFILE = "nofile"

# Characters kept as-is when encoding a path into the editor URI
_URI_SAFE = "/:?#[]@!$&'()*+,;="


@dataclass(frozen=True)
class RawEntry:
    module: Optional[str]
    function: str
    arity: int
    file: Optional[str]
    line: Optional[int]


# ── Activation shapes ─────────────────────────────────────────────

@dataclass(frozen=True)
class ModuleInit:
    unit: str


@dataclass(frozen=True)
class AnonymousModuleInit:
    pass


@dataclass(frozen=True)
class FileInit:
    pass


@dataclass(frozen=True)
class FunctionCall:
    unit: str
    function: str
    arity: int


@dataclass(frozen=True)
class AnonymousCall:
    function: str
    arity: int


Activation = Union[ModuleInit, AnonymousModuleInit, FileInit, FunctionCall, AnonymousCall]


@dataclass(frozen=True)
class UnitInfo:
    loaded: bool
    source: Optional[str] = None
    package: Optional[str] = None


class UnitLookup(Protocol):
    def __call__(self, unit: str) -> UnitInfo: ...


def lookup_unit(unit: str) -> UnitInfo:
    """Metadata for a module name, taken from the running interpreter."""
    module = sys.modules.get(unit) if unit else None
    if module is None:
        return UnitInfo(loaded=False)
    try:
        source = inspect.getsourcefile(module)
    except TypeError:
        # builtin or extension module
        source = None
    package = None if unit == "__main__" else unit.partition(".")[0]
    return UnitInfo(loaded=True, source=source, package=package)


def classify(entry: RawEntry, lookup: UnitLookup = lookup_unit) -> Activation:
    if entry.function == "<module>":
        if entry.module == "__main__":
            return FileInit()
        if entry.module and lookup(entry.module).loaded:
            return ModuleInit(entry.module)
        return AnonymousModuleInit()
    if entry.module and not entry.function.rpartition(".")[2].startswith("<"):
        return FunctionCall(entry.module, entry.function, entry.arity)
    return AnonymousCall(entry.function, entry.arity)


def describe(activation: Activation) -> tuple[Optional[str], str]:
    """Return ``(owning unit, display label)`` for an activation."""
    if isinstance(activation, ModuleInit):
        return activation.unit, f"{activation.unit} (module)"
    if isinstance(activation, AnonymousModuleInit):
        return None, "(module)"
    if isinstance(activation, FileInit):
        return None, "(file)"
    if isinstance(activation, FunctionCall):
        return activation.unit, f"{activation.unit}.{activation.function}/{activation.arity}"
    return None, f"{activation.function}/{activation.arity}"


def get_context(target_package: Optional[str], package: Optional[str]) -> Context:
    if target_package is not None and target_package == package:
        return "app"
    return "all"


def get_source(info: Optional[UnitInfo], file: str) -> str:
    """Prefer the loaded unit's own source path over the traced file name."""
    if info is not None and info.loaded and info.source:
        return info.source
    return file


def get_editor(source: str, line: int, editor: str) -> str:
    link = editor.replace("__FILE__", quote(os.path.abspath(source), safe=_URI_SAFE))
    link = link.replace("__LINE__", str(line))
    return h(link)


@dataclass(frozen=True)
class Frame:
    index: int
    unit: Optional[str]
    label: str
    file: str
    source: str
    line: Optional[int]
    package: Optional[str]
    context: Context
    snippet: Optional[tuple[SnippetLine, ...]]
    link: Optional[str]

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "unit": self.unit,
            "label": self.label,
            "file": self.file,
            "source": self.source,
            "line": self.line,
            "package": self.package,
            "context": self.context,
            "snippet": [list(s) for s in self.snippet] if self.snippet else None,
            "link": self.link,
        }


def resolve(
    entry: RawEntry,
    index: int,
    target_package: Optional[str] = None,
    editor: Optional[str] = None,
    lookup: UnitLookup = lookup_unit,
) -> Frame:
    unit, label = describe(classify(entry, lookup))
    file = entry.file or NOFILE
    line = entry.line

    info = lookup(unit) if unit else None
    package = info.package if info is not None else None
    source = get_source(info, file)
    snippet = get_snippet(source, line)

    link = None
    if editor and valid_line(line) and os.path.isfile(source):
        link = get_editor(source, line, editor)

    return Frame(
        index=index,
        unit=unit,
        label=label,
        file=file,
        source=source,
        line=line,
        package=package,
        context=get_context(target_package, package),
        snippet=tuple(snippet) if snippet else None,
        link=link,
    )
