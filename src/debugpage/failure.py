"""
Failure capture.

A failure is whatever escaped the wrapped work: a regular ``Exception``, a
value thrown with :func:`throw`, or any other ``BaseException`` acting as a
non-local exit (``SystemExit``, ``KeyboardInterrupt``, cancellation).
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import Any, Optional


class FailureKind(str, Enum):
    ERROR = "error"
    THROW = "throw"
    EXIT = "exit"


class Throw(BaseException):
    """Carries an arbitrary value up the stack.

    Derives from ``BaseException`` so ``except Exception`` blocks in the
    request pipeline let it through, like other non-local exits.
    """

    def __init__(self, value: Any):
        super().__init__(value)
        self.value = value


def throw(value: Any) -> None:
    raise Throw(value)


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    payload: Any
    exception: BaseException
    traceback: Optional[TracebackType]

    @classmethod
    def capture(cls, exc: BaseException) -> "Failure":
        if isinstance(exc, Throw):
            kind, payload = FailureKind.THROW, exc.value
        elif isinstance(exc, Exception):
            kind, payload = FailureKind.ERROR, exc
        else:
            kind, payload = FailureKind.EXIT, exc
        return cls(kind=kind, payload=payload, exception=exc, traceback=exc.__traceback__)


def format_exit(exc: BaseException) -> str:
    """Describe why a non-local exit happened."""
    if isinstance(exc, SystemExit):
        code = exc.code
        if code is None or code == 0:
            return "normal"
        if isinstance(code, int):
            return f"exit status {code}"
        return str(code)
    if isinstance(exc, KeyboardInterrupt):
        return "interrupted"
    if isinstance(exc, asyncio.CancelledError):
        return "cancelled"
    if isinstance(exc, GeneratorExit):
        return "generator closed"
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__
