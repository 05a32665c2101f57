"""
Debug page rendering.

Derives the status code, title and message for a failure and renders the
HTML page from ``templates/debugger.html``. Autoescaping is off; the
template pipes every dynamic value through the ``h`` filter.
"""
from __future__ import annotations

from typing import Callable, Optional, Sequence

from jinja2 import Environment, PackageLoader

from .escape import h
from .failure import Failure, FailureKind, format_exit
from .frames import Frame

StatusFor = Callable[[BaseException], int]

_env = Environment(
    loader=PackageLoader("debugpage", "templates"),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["h"] = h


def default_status(exc: BaseException) -> int:
    """HTTP status declared by the exception (``status_code``), else 500."""
    status = getattr(exc, "status_code", None)
    if isinstance(status, int) and not isinstance(status, bool) and 400 <= status <= 599:
        return status
    return 500


def type_name(exc: BaseException) -> str:
    cls = type(exc)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def info(failure: Failure, status_for: StatusFor = default_status) -> tuple[int, str, str]:
    if failure.kind is FailureKind.ERROR:
        exc = failure.exception
        return status_for(exc), type_name(exc), str(exc)
    if failure.kind is FailureKind.THROW:
        return 500, "unhandled throw", repr(failure.payload)
    return 500, "unhandled exit", format_exit(failure.exception)


def render_page(
    failure: Failure,
    frames: Sequence[Frame],
    *,
    method: Optional[str] = None,
    path: Optional[str] = None,
    status_for: StatusFor = default_status,
) -> tuple[int, bytes]:
    status, title, message = info(failure, status_for)
    body = _env.get_template("debugger.html").render(
        status=status,
        title=title,
        message=message,
        method=method,
        path=path or "/",
        frames=frames,
    )
    return status, body.encode("utf-8")
