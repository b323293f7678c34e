"""Cookie parsing and Set-Cookie serialization.

Consolidates the read side (``parse_cookies``, used by Request) and the
write side (``SetCookie``, used by ``Response.cookie``) in one module.
"""

from dataclasses import dataclass
from urllib.parse import quote, unquote

# Characters encodeURIComponent leaves alone, beyond alphanumerics and "-_."
_COOKIE_SAFE = "!~*'()"


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Values are percent-decoded. Returns an empty dict for empty or
    missing headers.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            cookies[key.strip()] = unquote(value.strip())
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive.

    ``max_age`` is in milliseconds, matching the ``res.cookie()`` option;
    it is floored to whole seconds on serialization.
    """

    name: str
    value: str
    max_age: int | float | None = None
    domain: str | None = None
    path: str | None = None
    http_only: bool = False
    secure: bool = False
    same_site: str | None = None

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        parts = [f"{self.name}={quote(str(self.value), safe=_COOKIE_SAFE)}"]
        if self.max_age is not None:
            parts.append(f"Max-Age={int(self.max_age // 1000)}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.http_only:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        if self.same_site:
            parts.append(f"SameSite={self.same_site}")
        return "; ".join(parts)
