"""HTML escaping for values embedded in the debug page."""
from __future__ import annotations

from typing import Any

# Only these four are rewritten; the apostrophe passes through.
_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
})


def h(value: Any) -> str:
    """Escape ``value`` for HTML text and double-quoted attribute context.

    Non-strings are converted with ``str`` first. Escaping is applied again on
    every call, so already-escaped text gets escaped twice.

    >>> h('<a href="x">&</a>')
    '&lt;a href=&quot;x&quot;&gt;&amp;&lt;/a&gt;'
    """
    return str(value).translate(_ESCAPES)
