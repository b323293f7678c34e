"""Transport handle for one request/response pair.

Wraps the ASGI ``receive`` and ``send`` callables. ``destroy()`` tears the
connection down: the request stream stops yielding, outgoing messages are
dropped, and the app entry point raises ``ConnectionDestroyed`` so the
server closes the socket without a response.
"""

import logging

from wren._internal.asgi import Message, Receive, Send

logger = logging.getLogger("wren.server")


class Connection:
    """A readable byte stream and a writable sink for one request."""

    __slots__ = ("_receive", "_send", "client", "destroyed", "disconnected")

    def __init__(
        self,
        receive: Receive,
        send: Send,
        client: tuple[str, int] | None = None,
    ) -> None:
        self._receive = receive
        self._send = send
        self.client = client
        self.destroyed = False
        self.disconnected = False

    def destroy(self, reason: str = "") -> None:
        """Tear the connection down. Idempotent."""
        if self.destroyed:
            return
        self.destroyed = True
        logger.info("connection destroyed%s", f": {reason}" if reason else "")

    @property
    def closed(self) -> bool:
        return self.destroyed or self.disconnected

    async def receive(self) -> Message:
        """Next ASGI message; a disconnect once the connection is closed."""
        if self.closed:
            return {"type": "http.disconnect"}
        message = await self._receive()
        if message["type"] == "http.disconnect":
            self.disconnected = True
        return message

    async def send(self, message: Message) -> None:
        if self.destroyed:
            return
        await self._send(message)
