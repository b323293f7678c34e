"""Invoke helpers — call sync or async handlers uniformly.

Wren handlers can be ``def`` or ``async def``. Any code that calls a
user-provided handler must handle both cases, and must know whether the
handler is an error handler. Both checks live here.

Usage::

    from wren._internal.invoke import invoke, is_error_handler

    if is_error_handler(handler):
        await invoke(handler, err, req, res, next)
"""

import inspect
from typing import Any

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


async def invoke(handler: Any, *args: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def arity(handler: Any) -> int:
    """Count the positional parameters a handler declares.

    Bound methods and callable objects are measured without ``self``.
    Callables that cannot be introspected (some builtins) count as 3.
    """
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return 3
    return sum(1 for p in sig.parameters.values() if p.kind in _POSITIONAL)


def is_error_handler(handler: Any) -> bool:
    """True when the handler has the ``(err, req, res, next)`` shape."""
    return arity(handler) == 4
