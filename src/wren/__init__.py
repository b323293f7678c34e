"""Wren — an Express-style request dispatcher for ASGI.

Ordered middleware, ``:param`` routes, mountable routers, streaming body
parsers, static files, and CORS, with a mutable response object whose
shaping methods chain.

Basic usage::

    from wren import App, Router, cors, json

    app = App()
    app.use(json(limit="1mb"))
    app.use(cors(origin=True, credentials=True))

    @app.get("/teams/:id")
    async def get_team(req, res, next):
        await res.json({"id": req.params["id"]})

Serve with any ASGI server, e.g. ``uvicorn mymodule:app``.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BodyDecodeError",
    "ConfigurationError",
    "ConnectionDestroyed",
    "HTTPError",
    "NotFound",
    "Request",
    "Response",
    "ResponseAlreadySent",
    "Router",
    "WrenError",
    "cors",
    "error_handler",
    "json",
    "static",
    "urlencoded",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wren`` fast while providing a clean top-level API.
    """
    if name == "App":
        from wren.app import App

        return App

    if name == "Router":
        from wren.routing.router import Router

        return Router

    if name == "AppConfig":
        from wren.config import AppConfig

        return AppConfig

    if name == "Request":
        from wren.http.request import Request

        return Request

    if name == "Response":
        from wren.http.response import Response

        return Response

    if name in ("cors", "error_handler", "json", "static", "urlencoded"):
        from wren import middleware as _mw

        return getattr(_mw, name)

    if name in (
        "BodyDecodeError",
        "ConfigurationError",
        "ConnectionDestroyed",
        "HTTPError",
        "NotFound",
        "ResponseAlreadySent",
        "WrenError",
    ):
        from wren import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
