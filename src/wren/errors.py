"""Wren exception hierarchy.

Shared across the dispatcher, response, and middleware so every module
raises and catches the same types.
"""


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when app configuration is invalid.

    Typically raised at setup time (bad body limit, registering after freeze).
    """


class ResponseAlreadySent(WrenError):  # noqa: N818
    """A terminal write or header change was attempted after the response started."""


class ConnectionDestroyed(WrenError):  # noqa: N818
    """The connection was torn down before a response was written.

    Raised from the ASGI entry point so the server drops the connection.
    """


class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    ``code`` is a machine-readable identifier and ``details`` carries any
    structured payload the JSON error handler should echo back::

        raise HTTPError(409, "Stock number taken", code="DUPLICATE_STOCK")
    """

    def __init__(
        self,
        status: int = 500,
        detail: str = "",
        *,
        code: str | None = None,
        details: object = None,
    ) -> None:
        super().__init__(detail or str(status))
        self.status = status
        self.detail = detail
        self.code = code
        self.details = details

    def __str__(self) -> str:
        return self.detail or str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — nothing handled the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(404, detail, code="NOT_FOUND")


class BodyDecodeError(HTTPError):
    """400 — the request body could not be decoded."""

    def __init__(self, detail: str) -> None:
        super().__init__(400, detail, code="INVALID_BODY")
