"""CORS middleware.

Sets ``Access-Control-*`` headers on every request and answers preflight
requests itself. A preflight (``OPTIONS`` carrying
``Access-Control-Request-Method``) ends with ``204`` and never reaches
later middleware or routes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from wren._internal.types import NextFunction

if TYPE_CHECKING:
    from wren.http.request import Request
    from wren.http.response import Response


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    ``origin`` selects what goes into ``Access-Control-Allow-Origin``:

    - ``None`` (default): ``*``
    - ``True``: the request's ``Origin`` header, or ``*`` when absent
    - a string: that fixed origin
    - a tuple of origins: the request's ``Origin`` if listed; requests from
      other origins get no CORS headers at all
    """

    origin: bool | str | tuple[str, ...] | None = None
    credentials: bool = False


class CORSMiddleware:
    """CORS header negotiation with preflight short-circuit.

    Usage::

        app.use(CORSMiddleware(CORSConfig(origin=True, credentials=True)))
    """

    __slots__ = ("config",)

    def __init__(self, config: CORSConfig | None = None) -> None:
        self.config = config or CORSConfig()

    def _allow_origin(self, request_origin: str | None) -> str | None:
        """The ``Access-Control-Allow-Origin`` value, or None to send nothing."""
        origin = self.config.origin
        if origin is None or origin is False:
            return "*"
        if origin is True:
            return request_origin or "*"
        if isinstance(origin, str):
            return origin
        if request_origin is not None and request_origin in origin:
            return request_origin
        return None

    async def __call__(self, req: Request, res: Response, next: NextFunction) -> None:
        """Apply CORS headers, then answer preflights or continue."""
        allow_origin = self._allow_origin(req.get("origin"))
        request_method = req.get("access-control-request-method")
        preflight = req.method == "OPTIONS" and bool(request_method)
        if allow_origin is None:
            # Rejected origin: no CORS headers, but a preflight still stops here
            if preflight:
                await res.status(204).end()
                return
            next()
            return

        res.set("Access-Control-Allow-Origin", allow_origin)
        if allow_origin != "*" and not isinstance(self.config.origin, str):
            res.append("Vary", "Origin")
        if self.config.credentials:
            res.set("Access-Control-Allow-Credentials", "true")

        request_headers = req.get("access-control-request-headers")
        if request_headers:
            res.set("Access-Control-Allow-Headers", request_headers)
        if request_method:
            res.set("Access-Control-Allow-Methods", request_method)

        if preflight:
            await res.status(204).end()
            return

        next()


def cors(
    origin: bool | str | Sequence[str] | None = None,
    *,
    credentials: bool = False,
) -> CORSMiddleware:
    """Build CORS middleware; see ``CORSConfig`` for the ``origin`` forms."""
    if origin is not None and not isinstance(origin, (bool, str)):
        origin = tuple(origin)
    return CORSMiddleware(CORSConfig(origin=origin, credentials=credentials))
