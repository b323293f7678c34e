"""Request body parsers.

``json()`` and ``urlencoded()`` build middleware that reads the request
stream, enforces a size limit, and decodes the body into ``req.body``::

    app.use(json(limit="1mb"))
    app.use(urlencoded(limit=64 * 1024))

A parser only acts when the Content-Type matches and no earlier parser has
consumed the body. Exceeding the limit destroys the connection on the spot:
the oversized chunk is dropped, nothing is decoded, and ``next`` is never
called. Decode failures go to ``next(err)`` as ``BodyDecodeError``.
"""

from __future__ import annotations

import json as json_module
import logging
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl

from wren._internal.types import NextFunction
from wren.errors import BodyDecodeError, ConfigurationError
from wren.http.query import coalesce_pairs

if TYPE_CHECKING:
    from wren.http.request import Request
    from wren.http.response import Response

logger = logging.getLogger("wren.body")

DEFAULT_LIMIT = 1024 * 1024

_UNITS = {"b": 1, "kb": 1024, "mb": 1024 * 1024}
_LIMIT_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(b|kb|mb)\s*$", re.IGNORECASE)


def parse_limit(limit: int | str | None) -> int:
    """Convert a body size limit to bytes.

    ``1024`` -> 1024, ``"1mb"`` -> 1048576, ``"64kb"`` -> 65536,
    ``None`` -> 1 MiB. Anything else raises ``ConfigurationError``.
    """
    if limit is None:
        return DEFAULT_LIMIT
    if isinstance(limit, bool):
        msg = f"Invalid body limit: {limit!r}"
        raise ConfigurationError(msg)
    if isinstance(limit, int):
        if limit < 0:
            msg = f"Body limit must be non-negative, got {limit}"
            raise ConfigurationError(msg)
        return limit
    m = _LIMIT_RE.match(limit) if isinstance(limit, str) else None
    if m is None:
        msg = f"Invalid body limit: {limit!r} (expected bytes or a string like '1mb')"
        raise ConfigurationError(msg)
    return int(float(m.group(1)) * _UNITS[m.group(2).lower()])


def _decode_json(raw: str) -> Any:
    return json_module.loads(raw) if raw else {}


def _decode_urlencoded(raw: str) -> dict[str, str | list[str]]:
    return coalesce_pairs(parse_qsl(raw, keep_blank_values=True))


class BodyParser:
    """Middleware that buffers and decodes one kind of request body."""

    __slots__ = ("_decode", "limit", "media_type")

    def __init__(
        self,
        media_type: str,
        decode: Callable[[str], Any],
        limit: int | str | None = None,
    ) -> None:
        self.media_type = media_type
        self.limit = parse_limit(limit)
        self._decode = decode

    def __repr__(self) -> str:
        return f"BodyParser({self.media_type!r}, limit={self.limit})"

    def matches(self, content_type: str) -> bool:
        return self.media_type in content_type.lower()

    async def __call__(self, req: Request, res: Response, next: NextFunction) -> None:
        if req.body_parsed or not self.matches(req.content_type):
            next()
            return

        length = 0
        chunks: list[bytes] = []
        async for chunk in req.stream():
            length += len(chunk)
            if length > self.limit:
                logger.warning(
                    "%s %s: body exceeds %d bytes", req.method, req.original_url, self.limit
                )
                req.connection.destroy("request body too large")
                return
            chunks.append(chunk)

        if req.connection.closed:
            # Client went away mid-body; nobody is left to answer.
            return

        req.body_parsed = True
        try:
            req.body = self._decode(b"".join(chunks).decode("utf-8"))
        except ValueError as exc:
            next(BodyDecodeError(f"Invalid {self.media_type} body: {exc}"))
            return
        next()


def json(limit: int | str | None = None) -> BodyParser:  # noqa: A001
    """Parse ``application/json`` bodies. An empty body decodes to ``{}``."""
    return BodyParser("application/json", _decode_json, limit)


def urlencoded(limit: int | str | None = None) -> BodyParser:
    """Parse ``application/x-www-form-urlencoded`` bodies.

    Repeated keys become lists: ``a=1&a=2`` -> ``{"a": ["1", "2"]}``.
    """
    return BodyParser("application/x-www-form-urlencoded", _decode_urlencoded, limit)
