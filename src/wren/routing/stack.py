"""Per-request execution stack.

The stack is an ordered tuple of ``StackEntry`` objects built once per
request. It is run by an explicit loop, not by nested ``next`` calls:
each handler receives a fresh ``Continuation``; calling it only records
the outcome, and the loop advances after the handler returns. Call depth
stays constant no matter how many layers a request passes through.

State carried between steps is the pending error, if any::

    no error, error-handler entry   -> skip
    error,    ordinary entry        -> skip, error carried forward
    otherwise                       -> invoke
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from wren._internal.invoke import invoke
from wren.routing.layer import StackEntry

if TYPE_CHECKING:
    from wren.http.request import Request
    from wren.http.response import Response

logger = logging.getLogger("wren.dispatch")


class Continuation:
    """The ``next`` callable handed to one handler invocation.

    Accepts ``next()`` or ``next(err)``. A falsy *err* (``None``, ``False``,
    ``0``, ``""``) means no error. Only the first call counts, and only while
    the handler is still running; later calls are logged and ignored.
    """

    __slots__ = ("_sealed", "called", "error", "label")

    def __init__(self, label: str = "") -> None:
        self.called = False
        self.error: Any = None
        self.label = label
        self._sealed = False

    def __call__(self, err: Any = None) -> None:
        if self._sealed:
            logger.warning("next() called after %s returned; ignored", self.label)
            return
        if self.called:
            logger.warning("next() called more than once by %s; ignored", self.label)
            return
        self.called = True
        self.error = err if err else None

    def seal(self) -> None:
        self._sealed = True


class StackResult:
    """Outcome of running a stack.

    ``exhausted`` is False when some handler ended the run by not calling
    ``next`` (it responded, or it stopped the request on purpose).
    """

    __slots__ = ("error", "exhausted")

    def __init__(self, *, exhausted: bool, error: Any = None) -> None:
        self.exhausted = exhausted
        self.error = error


def _label(handler: Any) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__


class ExecutionStack:
    """An ordered list of handlers selected for one request, plus a cursor."""

    __slots__ = ("_entries", "_index")

    def __init__(self, entries: Sequence[StackEntry]) -> None:
        self._entries = tuple(entries)
        self._index = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[StackEntry, ...]:
        return self._entries

    async def run(self, req: Request, res: Response) -> StackResult:
        """Run entries in order until one stops the chain or the stack ends."""
        error: Any = None
        while self._index < len(self._entries):
            entry = self._entries[self._index]
            self._index += 1

            if error is None and entry.is_error_handler:
                continue
            if error is not None and not entry.is_error_handler:
                continue

            if entry.params is not None:
                req.params = dict(entry.params)
                req.route = entry.route

            step = Continuation(_label(entry.handler))
            try:
                if entry.is_error_handler:
                    await invoke(entry.handler, error, req, res, step)
                else:
                    await invoke(entry.handler, req, res, step)
            except Exception as exc:
                logger.debug("handler %s raised %r", step.label, exc)
                step.called = True
                step.error = exc
            finally:
                step.seal()

            if not step.called:
                return StackResult(exhausted=False)
            error = step.error

        return StackResult(exhausted=True, error=error)
