"""
Failure interception for request pipelines.

``wrap`` runs a unit of work and, if anything escapes it, renders the debug
page through the connection and re-raises the very same exception. It does
not catch errors: they keep propagating so the server finishes the request
with the proper reason. Logging of the failure itself is left to the server.

The failure path runs to completion: anything raised while rendering,
including cancellation, is logged and dropped in favour of the original.

The connection only needs two things::

    conn.already_sent() -> bool     # non-blocking, non-consuming
    conn.send(status, body)         # may return an awaitable

``method`` and ``path`` attributes are shown on the page when present.

If the DEBUGPAGE_EDITOR environment variable is set, frames link to the
source file in an editor. Use __FILE__ and __LINE__ placeholders, e.g.::

    vscode://file/__FILE__:__LINE__
"""
from __future__ import annotations

import inspect
import json
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar

from .failure import Failure
from .frames import UnitLookup, lookup_unit
from .render import StatusFor, default_status, render_page
from .settings import Settings, load_settings
from .trace import build_frames

T = TypeVar("T")


class ResponseSink(Protocol):
    def already_sent(self) -> bool: ...

    def send(self, status: int, body: bytes) -> Any: ...


def _log(msg: str, **extra):
    entry = {"msg": msg}
    entry.update(extra)
    print(json.dumps(entry, default=str))


def _prepare(
    conn: ResponseSink,
    failure: Failure,
    opts: Optional[Settings],
    status_for: StatusFor,
    lookup: UnitLookup,
) -> tuple[int, bytes]:
    settings = opts if opts is not None else load_settings()
    frames = build_frames(failure.traceback, settings, lookup, boundary=__name__)
    return render_page(
        failure,
        frames,
        method=getattr(conn, "method", None),
        path=getattr(conn, "path", None),
        status_for=status_for,
    )


def render(
    conn: ResponseSink,
    failure: Failure,
    opts: Optional[Settings] = None,
    status_for: StatusFor = default_status,
    lookup: UnitLookup = lookup_unit,
) -> Any:
    status, body = _prepare(conn, failure, opts, status_for, lookup)
    return conn.send(status, body)


def _render_failed(failure: Failure, err: BaseException) -> None:
    _log(
        "debug_page_render_failed",
        failure_kind=failure.kind.value,
        error_type=type(err).__name__,
        error=str(err)[:300],
    )


def wrap(
    conn: ResponseSink,
    opts: Optional[Settings],
    work: Callable[[], T],
    *,
    status_for: StatusFor = default_status,
    lookup: UnitLookup = lookup_unit,
) -> T:
    """Run ``work`` and render a debug page if it fails.

    The original exception is always re-raised untouched, with its own
    traceback. Nothing is sent when the connection already responded.
    """
    try:
        return work()
    except BaseException as exc:
        failure = Failure.capture(exc)
        try:
            if conn.already_sent():
                _log("debug_page_skipped", failure_kind=failure.kind.value)
            else:
                result = render(conn, failure, opts, status_for, lookup)
                if inspect.isawaitable(result):
                    if inspect.iscoroutine(result):
                        result.close()
                    raise TypeError("wrap() needs a synchronous send; use wrap_async()")
        except BaseException as err:
            _render_failed(failure, err)
        raise


async def wrap_async(
    conn: ResponseSink,
    opts: Optional[Settings],
    work: Callable[[], Awaitable[T]],
    *,
    status_for: StatusFor = default_status,
    lookup: UnitLookup = lookup_unit,
) -> T:
    """Coroutine flavour of :func:`wrap`; ``conn.send`` may be async."""
    try:
        return await work()
    except BaseException as exc:
        failure = Failure.capture(exc)
        try:
            if conn.already_sent():
                _log("debug_page_skipped", failure_kind=failure.kind.value)
            else:
                result = render(conn, failure, opts, status_for, lookup)
                if inspect.isawaitable(result):
                    await result
        except BaseException as err:
            _render_failed(failure, err)
        raise
