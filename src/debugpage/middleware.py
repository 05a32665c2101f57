"""
ASGI middleware installing the debug page around an application.

    app = FastAPI()
    if settings.environment == "development":
        app.add_middleware(DebuggerMiddleware, target_package="my_app")

Only HTTP requests are wrapped; lifespan and websocket scopes pass through.
"""
from __future__ import annotations

from functools import partial
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .frames import UnitLookup, lookup_unit
from .interceptor import wrap_async
from .render import StatusFor, default_status
from .settings import load_settings


class ASGIResponseSink:
    """Tracks whether the wrapped app already started its response."""

    def __init__(self, scope: Scope, send: Send):
        self._send = send
        self._started = False
        self.method: str = scope.get("method", "GET")
        self.path: str = scope.get("path") or "/"

    def already_sent(self) -> bool:
        return self._started

    async def send_message(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self._started = True
        await self._send(message)

    async def send(self, status: int, body: bytes) -> None:
        await self.send_message({
            "type": "http.response.start",
            "status": status,
            "headers": [
                (b"content-type", b"text/html; charset=utf-8"),
                (b"content-length", str(len(body)).encode("latin-1")),
            ],
        })
        await self.send_message({"type": "http.response.body", "body": body})


class DebuggerMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        target_package: Optional[str] = None,
        status_for: StatusFor = default_status,
        lookup: UnitLookup = lookup_unit,
    ):
        self.app = app
        self.target_package = target_package
        self.status_for = status_for
        self.lookup = lookup

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        sink = ASGIResponseSink(scope, send)
        # Settings are read per request so DEBUGPAGE_EDITOR changes apply at once
        opts = load_settings(target_package=self.target_package)
        await wrap_async(
            sink,
            opts,
            partial(self.app, scope, receive, sink.send_message),
            status_for=self.status_for,
            lookup=self.lookup,
        )
