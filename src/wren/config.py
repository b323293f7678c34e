"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(trust_proxy=True)

    ``trust_proxy`` seeds the ``"trust proxy"`` setting, which can still be
    flipped with ``app.enable()`` / ``app.disable()`` before serving.
    """

    # Proxies
    trust_proxy: bool = False

    # Fallback responses
    not_found_body: str = "Not Found"

    # Correlation id echoed by the JSON error handler
    request_id_header: str = "x-request-id"
