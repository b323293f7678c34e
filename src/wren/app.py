"""Wren application — the request dispatcher.

Mutable during setup (middleware layers, routes, settings, hooks).
Frozen when the first request or lifespan event arrives; from then on the
layer and route registries are read-only and shared by every request.

Per request, ``handle()`` selects the matching layers and route handlers
into an ``ExecutionStack`` and runs it. Anything the stack leaves
unanswered gets one of two defaults: ``404 Not Found`` when no error is
pending, or the pending error's status (``500`` unless it is an
``HTTPError``) with its message as the body.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any, ClassVar

from wren._internal.asgi import Receive, Scope, Send
from wren._internal.invoke import is_error_handler
from wren._internal.types import Handler, NextFunction
from wren.config import AppConfig
from wren.errors import ConfigurationError, ConnectionDestroyed, HTTPError
from wren.http.connection import Connection
from wren.http.request import Request, split_url
from wren.http.response import Response
from wren.routing.layer import Layer, Route, StackEntry, normalize_prefix, prefix_matches
from wren.routing.path import compile_path, normalize_pattern
from wren.routing.stack import ExecutionStack

logger = logging.getLogger("wren.dispatch")


class App:
    """The wren application.

    Usage::

        app = App()
        app.use(json(limit="1mb"))
        app.use(cors(origin=True, credentials=True))

        @app.get("/teams/:id")
        async def get_team(req, res, next):
            await res.json(teams[req.params["id"]])

        api = Router()
        api.get("/inventory", list_inventory)
        app.use("/v1", api)

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one thread flips the registry to
        read-only, even if several workers receive their first request
        concurrently.
    """

    # True for apps meant to be mounted under a prefix (see ``Router``)
    is_router_mount: ClassVar[bool] = False

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_layers",
        "_routes",
        "_settings",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._layers: list[Layer] = []
        self._routes: list[Route] = []
        self._settings: dict[str, Any] = {"trust proxy": self.config.trust_proxy}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen = False
        self._freeze_lock = threading.Lock()

    # -- Middleware registration --

    def use(self, *args: Any) -> App:
        """Register middleware layers, optionally under a path prefix.

        ``use(handler, ...)`` applies to every path; ``use("/v1", handler,
        ...)`` only to ``/v1`` and below. A handler with four positional
        parameters ``(err, req, res, next)`` becomes an error handler. An
        ``App`` handler is mounted as a sub-application; a ``Router`` also
        sees paths with the prefix stripped.
        """
        self._check_not_frozen()
        prefix = "/"
        handlers: Sequence[Any] = args
        if args and isinstance(args[0], str):
            prefix = normalize_prefix(args[0])
            handlers = args[1:]
        if not handlers:
            msg = "use() requires at least one handler."
            raise ConfigurationError(msg)
        for handler in handlers:
            self._layers.append(self._make_layer(prefix, handler))
        return self

    def _make_layer(self, prefix: str, handler: Any) -> Layer:
        if isinstance(handler, App):
            if handler is self:
                msg = "An app cannot be mounted on itself."
                raise ConfigurationError(msg)
            return Layer(prefix, handler, mount=handler)
        if not callable(handler):
            msg = f"Middleware must be callable, got {type(handler).__name__}."
            raise ConfigurationError(msg)
        return Layer(prefix, handler, is_error_handler=is_error_handler(handler))

    # -- Route registration --

    def route(self, method: str, pattern: str | Sequence[str], *handlers: Handler) -> Any:
        """Register a handler chain for *method* on one or more patterns.

        With no handlers, returns a decorator::

            @app.route("GET", "/health")
            def health(req, res, next): ...
        """
        if not handlers:

            def decorator(func: Handler) -> Handler:
                self.route(method, pattern, func)
                return func

            return decorator

        self._check_not_frozen()
        for handler in handlers:
            if not callable(handler):
                msg = f"Route handler must be callable, got {type(handler).__name__}."
                raise ConfigurationError(msg)
        patterns = [pattern] if isinstance(pattern, str) else list(pattern)
        flags = tuple(is_error_handler(h) for h in handlers)
        for raw in patterns:
            normalized = normalize_pattern(raw)
            self._routes.append(
                Route(
                    method=method.upper(),
                    pattern=normalized,
                    matcher=compile_path(normalized),
                    handlers=tuple(handlers),
                    error_flags=flags,
                )
            )
        return None

    def get(self, pattern: str | Sequence[str], *handlers: Handler) -> Any:
        return self.route("GET", pattern, *handlers)

    def post(self, pattern: str | Sequence[str], *handlers: Handler) -> Any:
        return self.route("POST", pattern, *handlers)

    def put(self, pattern: str | Sequence[str], *handlers: Handler) -> Any:
        return self.route("PUT", pattern, *handlers)

    def patch(self, pattern: str | Sequence[str], *handlers: Handler) -> Any:
        return self.route("PATCH", pattern, *handlers)

    def delete(self, pattern: str | Sequence[str], *handlers: Handler) -> Any:
        return self.route("DELETE", pattern, *handlers)

    # -- Settings --

    def set(self, key: str, value: Any) -> App:
        """Store an application setting (e.g. ``app.set("trust proxy", True)``)."""
        self._check_not_frozen()
        self._settings[key] = value
        return self

    def setting(self, key: str, default: Any = None) -> Any:
        return self._settings.get(key, default)

    def enable(self, key: str) -> App:
        return self.set(key, True)

    def disable(self, key: str) -> App:
        return self.set(key, False)

    def enabled(self, key: str) -> bool:
        return bool(self._settings.get(key))

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a function to run when the ASGI server starts.

        Supports both sync and async functions.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a function to run when the ASGI server shuts down."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def layers(self) -> tuple[Layer, ...]:
        return tuple(self._layers)

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    # -- Dispatch --

    def build_stack(self, req: Request) -> ExecutionStack:
        """Select the layers and route handlers that apply to ``req.path``.

        Layers come first, in registration order, then the handler chains of
        every matching route, each chain kept contiguous. ``req.params`` is
        filled here with the params of all matching routes, so middleware
        layers see them too.
        """
        entries: list[StackEntry] = []
        for layer in self._layers:
            if not prefix_matches(layer.path_prefix, req.path):
                continue
            if layer.mount is not None:
                entries.append(StackEntry(handler=_mount_handler(layer)))
            else:
                entries.append(StackEntry(layer.handler, layer.is_error_handler))

        matched: list[Route] = []
        params: dict[str, str] = {}
        for route in self._routes:
            if route.method != req.method:
                continue
            captured = route.matcher.match(req.path)
            if captured is None:
                continue
            matched.append(route)
            params.update(captured)

        # Params of every matching route are visible from the first layer on
        req.params = dict(params)
        if matched:
            req.route = matched[-1].pattern
        for route in matched:
            for handler, flag in zip(route.handlers, route.error_flags, strict=True):
                entries.append(StackEntry(handler, flag, params=params, route=route.pattern))

        return ExecutionStack(entries)

    async def handle(
        self,
        req: Request,
        res: Response,
        done: NextFunction | None = None,
    ) -> None:
        """Dispatch one request through this app's layers and routes.

        *done* is called with the pending error (or ``None``) if the stack
        runs out; sub-router mounts pass the outer ``next`` here. Without
        *done*, the default 404/500 responses apply.
        """
        self._ensure_frozen()
        req.path, req.query = split_url(req.url)
        req.params = {}

        stack = self.build_stack(req)
        result = await stack.run(req, res)
        if not result.exhausted:
            return

        if done is not None:
            done(result.error)
            return
        await self._finish(req, res, result.error)

    async def _finish(self, req: Request, res: Response, error: Any) -> None:
        """Write the engine default for a request the stack left unanswered."""
        if req.connection.destroyed:
            return

        if error is None:
            if res.sent:
                return
            res.status(404).set("Content-Type", "text/plain; charset=utf-8")
            await res.end(self.config.not_found_body)
            return

        status = error.status if isinstance(error, HTTPError) else 500
        exc_info = error if isinstance(error, BaseException) else None
        if res.sent:
            logger.error(
                "Unhandled error after response was sent: %s %s",
                req.method,
                req.original_url,
                exc_info=exc_info,
            )
            return

        if status >= 500:
            logger.error("Unhandled error: %s %s", req.method, req.original_url, exc_info=exc_info)
        res.status(status).set("Content-Type", "text/plain; charset=utf-8")
        await res.end(str(error) or "Internal Server Error")

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly and dispatches HTTP scopes through
        ``handle()``. A connection destroyed mid-request (e.g. an oversized
        body) surfaces as ``ConnectionDestroyed`` so the server aborts it.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        self._ensure_frozen()
        client = scope.get("client")
        connection = Connection(receive, send, client=tuple(client) if client else None)
        req = Request.from_asgi(
            scope,
            connection,
            app=self,
            trust_proxy=self.enabled("trust proxy"),
        )
        res = Response(connection, head=req.method == "HEAD")

        await self.handle(req, res)

        if connection.destroyed:
            msg = f"{req.method} {req.original_url}: connection destroyed before a response"
            raise ConnectionDestroyed(msg)
        if not res.sent and not connection.disconnected:
            logger.warning(
                "%s %s: handler returned without responding or calling next()",
                req.method,
                req.original_url,
            )
            res.status(500).set("Content-Type", "text/plain; charset=utf-8")
            await res.end("Internal Server Error")

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then runs
        registered startup/shutdown hooks and signals completion back to
        the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Make the registry read-only, mounted apps included.

        MUST only be called while holding _freeze_lock.
        """
        for layer in self._layers:
            if layer.mount is not None:
                layer.mount._ensure_frozen()
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register middleware, routes, and settings before serving."
            )
            raise RuntimeError(msg)


def _mount_handler(layer: Layer) -> Handler:
    """Wrap a mounted app as an ordinary ``(req, res, next)`` handler.

    A router mount sees the request with its prefix stripped; the original
    ``url``/``path`` are restored before the outer stack continues, whether
    the nested dispatch finished, stopped, or raised.
    """
    mounted_app = layer.mount
    assert mounted_app is not None

    async def mounted(req: Request, res: Response, next: NextFunction) -> None:
        if layer.is_router_mount:
            with req.mounted(layer.path_prefix):
                await mounted_app.handle(req, res, next)
        else:
            await mounted_app.handle(req, res, next)

    mounted.__qualname__ = f"mount[{layer.path_prefix}]"
    return mounted
