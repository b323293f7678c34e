"""Query string parameters.

Implements ``Mapping[str, str | list[str]]``: a key seen once maps to its
string, a repeated key maps to the list of its values. URL-encoded request
bodies decode to the same shape (see ``coalesce_pairs``).
"""

from collections.abc import Iterable, Iterator, Mapping
from urllib.parse import parse_qsl


def coalesce_pairs(pairs: Iterable[tuple[str, str]]) -> dict[str, str | list[str]]:
    """Fold ``(key, value)`` pairs into a dict, repeated keys into lists.

    ``[("a", "1"), ("b", "2"), ("a", "3")]`` -> ``{"a": ["1", "3"], "b": "2"}``
    """
    result: dict[str, str | list[str]] = {}
    for key, value in pairs:
        if key not in result:
            result[key] = value
            continue
        existing = result[key]
        if isinstance(existing, list):
            existing.append(value)
        else:
            result[key] = [existing, value]
    return result


class QueryParams(Mapping[str, str | list[str]]):
    """Parsed query string parameters.

    Attributes:
        _data: Coalesced parameters.
        _raw: The raw query string (without ``?``).
    """

    _data: dict[str, str | list[str]]
    _raw: str

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: str = "") -> None:
        object.__setattr__(self, "_raw", query_string)
        parsed = coalesce_pairs(parse_qsl(query_string, keep_blank_values=True))
        object.__setattr__(self, "_data", parsed)

    def __getitem__(self, key: str) -> str | list[str]:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"QueryParams({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, QueryParams):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        value = self._data.get(key)
        if value is None:
            return []
        if isinstance(value, list):
            return list(value)
        return [value]

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Return the first value as int, or *default* if missing or not numeric."""
        values = self.get_list(key)
        if not values:
            return default
        try:
            return int(values[0])
        except ValueError:
            return default

    @property
    def raw(self) -> str:
        return self._raw
