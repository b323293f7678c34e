"""Shared fixtures: a captured ASGI sink for driving Response directly."""

from typing import Any

import pytest

from wren.http.connection import Connection
from wren.http.response import Response


class Sink:
    """Collects ASGI messages sent through a Connection."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def receive(self) -> dict[str, Any]:
        return {"type": "http.disconnect"}

    async def send(self, message: dict[str, Any]) -> None:
        self.messages.append(dict(message))

    @property
    def status(self) -> int | None:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return message["status"]
        return None

    @property
    def headers(self) -> list[tuple[str, str]]:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return [(k.decode("latin-1"), v.decode("latin-1")) for k, v in message["headers"]]
        return []

    def header(self, name: str) -> str | None:
        values = [v for k, v in self.headers if k == name.lower()]
        return values[0] if values else None

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"") for m in self.messages if m["type"] == "http.response.body"
        )


@pytest.fixture
def sink() -> Sink:
    return Sink()


@pytest.fixture
def response(sink: Sink) -> Response:
    return Response(Connection(sink.receive, sink.send))
