"""Layer, Route, and StackEntry frozen dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from wren._internal.types import Handler
from wren.routing.path import Matcher

if TYPE_CHECKING:
    from wren.app import App


def normalize_prefix(prefix: str) -> str:
    """``"/v1/"`` -> ``"/v1"``; empty or ``"/"`` -> ``"/"``."""
    prefix = prefix.rstrip("/")
    if not prefix:
        return "/"
    if not prefix.startswith("/"):
        return "/" + prefix
    return prefix


def prefix_matches(prefix: str, path: str) -> bool:
    """Whether a layer mounted at *prefix* sees *path*.

    Matching is by whole segment: ``/v1`` covers ``/v1`` and ``/v1/x``
    but not ``/v10``.
    """
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True, slots=True)
class Layer:
    """A registered middleware entry.

    ``mount`` is set when the handler is a nested app; ``is_error_handler``
    is derived from the handler's arity at registration time.
    """

    path_prefix: str
    handler: Handler
    mount: App | None = None
    is_error_handler: bool = False

    @property
    def is_router_mount(self) -> bool:
        return self.mount is not None and self.mount.is_router_mount


@dataclass(frozen=True, slots=True)
class Route:
    """One ``(method, pattern)`` pair and its ordered handler chain.

    Created during app setup, immutable thereafter.
    """

    method: str
    pattern: str
    matcher: Matcher
    handlers: tuple[Handler, ...]
    error_flags: tuple[bool, ...] = ()


@dataclass(frozen=True, slots=True)
class StackEntry:
    """One step of a per-request execution stack."""

    handler: Handler
    is_error_handler: bool = False
    # Set for route handlers: the params captured by their route's matcher
    params: dict[str, str] | None = field(default=None, compare=False)
    route: str | None = None
