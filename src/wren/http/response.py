"""Mutable HTTP response sink with chainable shaping methods.

One ``Response`` is constructed per request and handed to every handler.
Header-shaping methods (``status``, ``set``, ``type``, ``cookie``) return
``self`` so they chain; terminal methods (``json``, ``send``, ``end``,
``send_file``, ``redirect``) are coroutines that write to the ASGI sink::

    await res.status(201).set("Location", url).json(item)

A response is written at most once. Any terminal call, or any header
change, after the response has started raises ``ResponseAlreadySent``.
"""

from __future__ import annotations

import json as json_module
import logging
import mimetypes
import os
from collections.abc import Mapping
from typing import Any

import anyio

from wren.errors import ResponseAlreadySent
from wren.http.connection import Connection
from wren.http.cookies import SetCookie

logger = logging.getLogger("wren.server")

CHUNK_SIZE = 64 * 1024


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


class Response:
    """The response half of one request/response pair."""

    __slots__ = ("_connection", "_head", "_headers", "_started", "status_code")

    def __init__(self, connection: Connection, *, head: bool = False) -> None:
        self._connection = connection
        self._head = head
        # name (lowercase) -> (display name, values)
        self._headers: dict[str, tuple[str, list[str]]] = {}
        self._started = False
        self.status_code = 200

    # -- State --

    @property
    def headers_sent(self) -> bool:
        """True once the status line and headers went out."""
        return self._started

    @property
    def sent(self) -> bool:
        """True once a terminal write path has been taken."""
        return self._started

    @property
    def headers(self) -> list[tuple[str, str]]:
        """Current headers as ``(name, value)`` pairs, one per value."""
        return [(name, value) for name, values in self._headers.values() for value in values]

    def _check_open(self, action: str) -> None:
        if self._started:
            msg = f"Cannot {action}: response already sent."
            raise ResponseAlreadySent(msg)

    # -- Chainable shaping --

    def status(self, code: int) -> Response:
        """Set the status code."""
        self._check_open("set status")
        self.status_code = code
        return self

    def set(self, field: str | Mapping[str, Any], value: Any = None) -> Response:
        """Set one header, or merge a ``{name: value}`` mapping.

        A list value sets a multi-valued header.
        """
        self._check_open("set headers")
        if isinstance(field, Mapping):
            for name, val in field.items():
                self._set_one(name, val)
        else:
            self._set_one(field, value)
        return self

    def _set_one(self, name: str, value: Any) -> None:
        values = [str(v) for v in value] if isinstance(value, (list, tuple)) else [str(value)]
        self._headers[name.lower()] = (name, values)

    def append(self, field: str, value: Any) -> Response:
        """Add a value to a header without replacing existing ones."""
        self._check_open("set headers")
        key = field.lower()
        if key in self._headers:
            self._headers[key][1].append(str(value))
        else:
            self._set_one(field, value)
        return self

    def get(self, field: str) -> str | list[str] | None:
        """Current value of a header: a string, or a list if multi-valued."""
        entry = self._headers.get(field.lower())
        if entry is None:
            return None
        values = entry[1]
        return values[0] if len(values) == 1 else list(values)

    def remove(self, field: str) -> Response:
        self._check_open("remove headers")
        self._headers.pop(field.lower(), None)
        return self

    def type(self, value: str) -> Response:
        """Set Content-Type. A bare extension (``"json"``, ``"html"``) is looked up."""
        if "/" not in value:
            guessed, _ = mimetypes.guess_type("file." + value.lstrip("."))
            value = guessed or "application/octet-stream"
        return self.set("Content-Type", value)

    def cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | float | None = None,
        domain: str | None = None,
        path: str | None = None,
        http_only: bool = False,
        secure: bool = False,
        same_site: str | None = None,
    ) -> Response:
        """Append a ``Set-Cookie`` header. ``max_age`` is in milliseconds.

        Earlier cookies set on this response are kept.
        """
        directive = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            domain=domain,
            path=path,
            http_only=http_only,
            secure=secure,
            same_site=same_site,
        )
        return self.append("Set-Cookie", directive.to_header_value())

    def clear_cookie(self, name: str, *, path: str = "/", domain: str | None = None) -> Response:
        """Append a ``Set-Cookie`` that expires *name* immediately."""
        return self.cookie(name, "", max_age=0, path=path, domain=domain)

    # -- Terminal writes --

    async def end(self, body: bytes | str = b"") -> None:
        """Write headers and the whole body, then close the response."""
        data = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        self._check_open("write body")
        if not _body_allowed(self.status_code):
            data = b""
        elif "content-length" not in self._headers:
            self._set_one("Content-Length", len(data))
        await self._start()
        await self._connection.send(
            {"type": "http.response.body", "body": b"" if self._head else data}
        )

    async def json(self, payload: Any) -> None:
        """Serialize *payload* as JSON and end the response."""
        self._check_open("write body")
        if "content-type" not in self._headers:
            self._set_one("Content-Type", "application/json")
        await self.end(json_module.dumps(payload))

    async def send(self, payload: Any = None) -> None:
        """End the response, choosing the encoding from the payload's kind.

        ``None`` -> empty body; bytes -> verbatim; mappings, lists, tuples
        and booleans -> JSON; anything else -> text.
        """
        if payload is None:
            await self.end()
            return
        if isinstance(payload, (bytes, bytearray, memoryview)):
            await self.end(bytes(payload))
            return
        if isinstance(payload, (Mapping, list, tuple, bool)):
            await self.json(payload)
            return
        self._check_open("write body")
        if "content-type" not in self._headers:
            self._set_one("Content-Type", "text/plain")
        await self.end(str(payload))

    async def redirect(self, url: str, status: int = 302) -> None:
        """Redirect to *url*."""
        self._check_open("redirect")
        self.status_code = status
        self._set_one("Location", url)
        await self.end()

    async def send_file(self, path: str | os.PathLike[str]) -> None:
        """Stream a file to the client.

        Content-Type is guessed from the file name unless already set.
        If the file cannot be opened or read before the headers go out,
        the response is a bare 404.
        """
        self._check_open("send file")
        file_path = anyio.Path(path)
        try:
            stat = await file_path.stat()
            handle = await anyio.open_file(file_path, "rb")
        except OSError as exc:
            logger.debug("send_file %s failed: %r", path, exc)
            self.status_code = 404
            await self.end()
            return

        async with handle:
            if "content-type" not in self._headers:
                guessed, _ = mimetypes.guess_type(str(path))
                self._set_one("Content-Type", guessed or "application/octet-stream")
            self._set_one("Content-Length", stat.st_size)
            await self._start()
            if self._head:
                await self._connection.send({"type": "http.response.body", "body": b""})
                return
            while chunk := await handle.read(CHUNK_SIZE):
                await self._connection.send(
                    {"type": "http.response.body", "body": chunk, "more_body": True}
                )
            await self._connection.send({"type": "http.response.body", "body": b""})

    async def _start(self) -> None:
        self._started = True
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in self.headers
        ]
        await self._connection.send(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": raw_headers,
            }
        )
