"""Static file serving middleware.

Serves regular files below a root directory for GET and HEAD requests.
Everything else falls through to the next handler: other methods, missing
files, directories, and any path that resolves outside the root.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote

import anyio

from wren._internal.types import NextFunction

if TYPE_CHECKING:
    from wren.http.request import Request
    from wren.http.response import Response

logger = logging.getLogger("wren.static")


class StaticFiles:
    """Middleware that serves files from a directory.

    Security: resolves symlinks and ``..`` segments, then verifies the final
    path is still inside the root. A request for ``/../../etc/passwd`` never
    reaches the filesystem read; it falls through like a missing file.

    Usage::

        app.use(StaticFiles("./public"))

    The full request path is looked up below the root. To serve a
    directory under a URL prefix, mount it through a ``Router`` so the
    prefix is stripped first::

        assets = Router()
        assets.use(StaticFiles("./assets"))
        app.use("/assets", assets)
    """

    __slots__ = ("_root",)

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, request_path: str) -> Path | None:
        """Map a request path to a file path inside the root, or None."""
        try:
            target = (self._root / ("." + unquote(request_path))).resolve()
        except (OSError, ValueError):
            return None
        if not target.is_relative_to(self._root):
            return None
        return target

    async def __call__(self, req: Request, res: Response, next: NextFunction) -> None:
        """Serve a static file or fall through."""
        if req.method not in ("GET", "HEAD"):
            next()
            return

        target = self.resolve(req.path)
        if target is None:
            logger.debug("rejected path outside static root: %r", req.path)
            next()
            return

        try:
            is_file = await anyio.Path(target).is_file()
        except (OSError, ValueError):
            is_file = False
        if not is_file:
            next()
            return

        await res.send_file(target)


def static(root: str | Path) -> StaticFiles:
    """Serve files below *root*."""
    return StaticFiles(root)
