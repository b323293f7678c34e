"""Mutable HTTP request.

Unlike the response sink, the request is shared state that middleware is
expected to enrich: body parsers fill ``body``, routing fills ``params``,
sub-router mounts rewrite ``url``/``path`` for the duration of the nested
dispatch. Metadata that never changes (method, headers, cookies) is set
once at creation.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from wren._internal.asgi import Scope
from wren.http.connection import Connection
from wren.http.cookies import parse_cookies
from wren.http.headers import Headers
from wren.http.query import QueryParams

if TYPE_CHECKING:
    from wren.app import App


def split_url(url: str) -> tuple[str, QueryParams]:
    """Split a request target into ``(path, query)``. Empty path -> ``/``.

    Only the first ``?`` separates the two. A target is always origin-form,
    so a leading ``//`` stays part of the path.
    """
    path, _, query_string = url.partition("?")
    return path or "/", QueryParams(query_string)


@dataclass(slots=True)
class Request:
    """An HTTP request travelling through the execution stack."""

    method: str
    url: str
    headers: Headers
    connection: Connection
    path: str = "/"
    query: QueryParams = field(default_factory=QueryParams)
    params: dict[str, str] = field(default_factory=dict)
    body: Any = field(default_factory=dict)
    body_parsed: bool = False
    original_url: str = ""
    ip: str = ""
    cookies: Mapping[str, str] = field(default_factory=dict)
    route: str | None = None
    app: App | None = field(default=None, repr=False)
    # Free-form per-request storage for middleware (request ids, users, ...)
    state: dict[str, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if not self.original_url:
            self.original_url = self.url
        self.path, self.query = split_url(self.url)

    # -- Header access --

    def get(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name, default)

    @property
    def content_type(self) -> str:
        """The Content-Type header value, or an empty string."""
        return self.headers.get("content-type") or ""

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    # -- Body streaming --

    async def stream(self) -> AsyncGenerator[bytes]:
        """Yield request body chunks as they arrive.

        Stops at the last chunk, on client disconnect, or as soon as the
        connection is destroyed.
        """
        while not self.connection.closed:
            message = await self.connection.receive()
            if message["type"] != "http.request":
                break
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    # -- Mounting --

    @contextlib.contextmanager
    def mounted(self, prefix: str) -> Iterator[None]:
        """Strip *prefix* from ``url`` and ``path`` for the duration of the block.

        The originals are restored on every exit path, including errors.
        """
        saved_url, saved_path = self.url, self.path
        if prefix != "/":
            self.url = self.url[len(prefix) :] or "/"
            if not self.url.startswith("/"):
                self.url = "/" + self.url
            self.path, _ = split_url(self.url)
        try:
            yield
        finally:
            self.url, self.path = saved_url, saved_path

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        connection: Connection,
        *,
        app: App | None = None,
        trust_proxy: bool = False,
    ) -> Request:
        """Create a Request from an ASGI scope."""
        headers = Headers(scope.get("headers", ()))
        query_string = scope.get("query_string", b"").decode("latin-1")
        raw_path = scope.get("raw_path")
        url = raw_path.decode("latin-1") if raw_path else quote(scope.get("path") or "/")
        if query_string:
            url = f"{url}?{query_string}"

        ip = ""
        if trust_proxy:
            ip = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
        if not ip and connection.client:
            ip = connection.client[0]

        return cls(
            method=scope["method"].upper(),
            url=url,
            headers=headers,
            connection=connection,
            ip=ip,
            cookies=parse_cookies(headers.get("cookie", "") or ""),
            app=app,
        )
