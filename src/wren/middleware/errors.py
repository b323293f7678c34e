"""JSON error handler.

A ready-made error layer for API apps. Register it last::

    app.use(api)
    app.use(error_handler)

Errors render as::

    {"error": {"code": "NOT_FOUND", "message": "...", "requestId": "...", "details": ...}}

with the status taken from ``HTTPError.status`` (500 for anything else).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from wren._internal.types import NextFunction
from wren.errors import HTTPError

if TYPE_CHECKING:
    from wren.http.request import Request
    from wren.http.response import Response

logger = logging.getLogger("wren.errors")


def _request_id(req: Request) -> str | None:
    if "request_id" in req.state:
        return req.state["request_id"]
    header = req.app.config.request_id_header if req.app is not None else "x-request-id"
    return req.get(header)


async def error_handler(err: Any, req: Request, res: Response, next: NextFunction) -> None:
    """Render *err* as a JSON error envelope.

    If the response already went out there is nothing left to render; the
    error is passed on so the dispatcher logs it.
    """
    if res.sent:
        next(err)
        return

    if isinstance(err, HTTPError):
        status, code, details = err.status, err.code or "HTTP_ERROR", err.details
    else:
        status, code, details = 500, "INTERNAL_ERROR", None

    request_id = _request_id(req)
    payload: dict[str, Any] = {
        "code": code,
        "message": str(err) or "Unexpected error",
        "requestId": request_id,
    }
    if details is not None:
        payload["details"] = details

    logger.error(
        "%s %s -> %d %s",
        req.method,
        req.original_url,
        status,
        code,
        exc_info=err if isinstance(err, BaseException) and status >= 500 else None,
        extra={"request_id": request_id, "status": status, "code": code},
    )
    await res.status(status).json({"error": payload})
