from .escape import h
from .failure import Failure, FailureKind, Throw, throw
from .frames import Frame, RawEntry, UnitInfo, resolve
from .interceptor import ResponseSink, wrap, wrap_async
from .middleware import ASGIResponseSink, DebuggerMiddleware
from .render import default_status, render_page
from .settings import Settings, load_settings
from .snippet import SnippetLine, get_snippet
from .trace import normalize

__all__ = [
    "h",
    "Failure",
    "FailureKind",
    "Throw",
    "throw",
    "Frame",
    "RawEntry",
    "UnitInfo",
    "resolve",
    "ResponseSink",
    "wrap",
    "wrap_async",
    "ASGIResponseSink",
    "DebuggerMiddleware",
    "default_status",
    "render_page",
    "Settings",
    "load_settings",
    "get_snippet",
    "SnippetLine",
    "normalize",
]
