"""Path pattern compilation.

Patterns are literal segments plus ``:name`` placeholders::

    "/inventory/:id/feature"  -> ^/inventory/([^/]+)/feature$   params=("id",)

Each placeholder captures exactly one non-separator segment. No wildcards,
no inline regexes.
"""

import re
from dataclasses import dataclass
from urllib.parse import unquote

_PARAM = re.compile(r":(\w+)")


@dataclass(frozen=True, slots=True)
class Matcher:
    """A compiled path pattern. Immutable after compilation."""

    regex: re.Pattern[str]
    param_names: tuple[str, ...]

    def match(self, path: str) -> dict[str, str] | None:
        """Return captured params in declared order, or None on mismatch.

        Captured values are percent-decoded.
        """
        m = self.regex.match(path)
        if m is None:
            return None
        return dict(zip(self.param_names, map(unquote, m.groups()), strict=True))


def normalize_pattern(pattern: str) -> str:
    """Strip a single trailing slash, except for the root path."""
    if pattern != "/" and pattern.endswith("/"):
        return pattern[:-1]
    return pattern


def compile_path(pattern: str) -> Matcher:
    """Compile a route pattern into an anchored ``Matcher``.

    Examples::

        compile_path("/teams/:id").match("/teams/abc123")   -> {"id": "abc123"}
        compile_path("/teams/:id").match("/teams/abc/x")    -> None
        compile_path("/a/:x/b/:y").match("/a/1/b/2")        -> {"x": "1", "y": "2"}
    """
    pattern = normalize_pattern(pattern)
    names: list[str] = []
    parts: list[str] = []
    pos = 0
    for m in _PARAM.finditer(pattern):
        parts.append(re.escape(pattern[pos : m.start()]))
        parts.append("([^/]+)")
        names.append(m.group(1))
        pos = m.end()
    parts.append(re.escape(pattern[pos:]))
    return Matcher(regex=re.compile(f"^{''.join(parts)}$"), param_names=tuple(names))
