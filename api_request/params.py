"""Structured parameter strings: query strings and matrix parameters.

`name=value&name=value` (query) and `name=value;name=value` (matrix) share one
parser. The result is a MultiValueMap because a raw query string may repeat a
key; the synthesized RequestModel keeps one value per key instead.
"""

from __future__ import annotations

import re
from typing import Iterator

from api_request.encoding import path_decode, url_decode

QUERY_SEPARATOR = "&"
MATRIX_SEPARATOR = ";"


class MultiValueMap:
    """Insertion-ordered mapping of a key to every value added under it.

    A value of None records a key that appeared without '=' and is distinct
    from the empty string.
    """

    def __init__(self) -> None:
        self._data: dict[str, list[str | None]] = {}

    def add(self, key: str, value: str | None) -> None:
        self._data.setdefault(key, []).append(value)

    def get_all(self, key: str) -> list[str | None]:
        """All values for a key in the order they were added ([] if absent)."""
        return list(self._data.get(key, []))

    def get_first(self, key: str) -> str | None:
        values = self._data.get(key)
        return values[0] if values else None

    def items(self) -> Iterator[tuple[str, list[str | None]]]:
        for key, values in self._data.items():
            yield key, list(values)

    def keys(self) -> list[str]:
        return list(self._data)

    def to_dict(self) -> dict[str, list[str | None]]:
        return {key: list(values) for key, values in self._data.items()}

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiValueMap):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"MultiValueMap({self._data!r})"


def is_empty(value: str | None) -> bool:
    """True for None, '' and strings made only of whitespace/control characters."""
    if value is None:
        return True
    return all(char <= " " for char in value)


def parse_structured_params(
    query: str | None,
    separator: str = QUERY_SEPARATOR,
    decode: bool = True,
    decode_plus: bool = False,
    value_is_collection: bool = False,
    into: MultiValueMap | None = None,
) -> MultiValueMap:
    """Parse `name=value` pairs separated by `separator` into a MultiValueMap.

    Args:
        query: Text to parse (without a leading '?' or ';').
        separator: Regular expression splitting the pairs ('&' or ';').
        decode: Percent-decode names and values.
        decode_plus: Treat '+' in values as a space.
        value_is_collection: Split each value on ',' and add one entry per item.
        into: Existing map to add to; a new one is created if None.

    Returns:
        The map the pairs were added to.

    Values decode with path rules in matrix context (separator ';') and with
    query rules otherwise. Names always decode with query rules. Empty parts
    (as in 'a=1&&b=2') are skipped.
    """
    params = into if into is not None else MultiValueMap()
    if is_empty(query):
        return params

    for part in re.split(separator, query):
        if not part:
            continue
        name, eq, value = part.partition("=")
        if not eq:
            if value_is_collection:
                continue
            _add_part(params, separator, name, None, decode, decode_plus)
        elif value_is_collection:
            for item in value.split(","):
                _add_part(params, separator, name, item, decode, decode_plus)
        else:
            _add_part(params, separator, name, value, decode, decode_plus)

    return params


def _add_part(
    params: MultiValueMap,
    separator: str,
    name: str,
    value: str | None,
    decode: bool,
    decode_plus: bool,
) -> None:
    if value is not None:
        if decode_plus and "+" in value:
            value = value.replace("+", " ")
        if decode:
            value = path_decode(value) if separator == MATRIX_SEPARATOR else url_decode(value)

    params.add(url_decode(name) if decode else name, value)


def get_matrix_params(path: str, decode: bool) -> MultiValueMap:
    """Parse the matrix parameters following the first ';' in a path segment."""
    index = path.find(";")
    if index == -1:
        return MultiValueMap()
    return parse_structured_params(path[index + 1:], MATRIX_SEPARATOR, decode, False)
