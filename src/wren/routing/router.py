"""Mountable sub-applications."""

from typing import ClassVar

from wren.app import App


class Router(App):
    """An ``App`` meant to be mounted under a path prefix.

    ``app.use("/v1", router)`` strips ``/v1`` from ``req.url`` and
    ``req.path`` while the router dispatches, and restores both before the
    parent's later layers run::

        api = Router()

        @api.get("/inventory")
        async def inventory(req, res, next):
            await res.json(list_units())  # req.path == "/inventory"

        app.use("/v1", api)
    """

    is_router_mount: ClassVar[bool] = True

    __slots__ = ()
