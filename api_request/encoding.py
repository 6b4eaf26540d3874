"""Percent-encoding for path and query components (RFC 3986).

Generic form encoding escapes everything outside a small unreserved set.
Path and query components each have reserved characters that carry
structure (a `/` between segments, a `,` between list items) and must be
emitted as-is, so encoding is done run by run between reserved characters.

Encoding rules:
- url_encode: application/x-www-form-urlencoded, space becomes '+'
- query_encode: url_encode, but QUERY_RESERVED_CHARACTERS stay literal
- path_encode: url_encode, but PATH_RESERVED_CHARACTERS stay literal,
  space becomes %20 and '+' stays '+'
- encode_partially_encoded: existing %XX triples pass through untouched
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any
from urllib.parse import quote_plus, unquote, unquote_plus

from api_request.errors import EncodingConfigurationError

QUERY_RESERVED_CHARACTERS = "?/,"
# '*' is also reserved but url_encode never escapes it
PATH_RESERVED_CHARACTERS = "=@/:!$&'(),;~"

DEFAULT_ENCODING = "utf-8"

# A well-formed percent-encoded triple
ENCODE_PATTERN = re.compile(r"%[0-9a-fA-F]{2}")


def url_encode(value: str, encoding: str = DEFAULT_ENCODING) -> str:
    """Form-encode a value.

    Letters, digits and `.-*_` are kept, space becomes '+', everything else
    ('~' included) is %XX-escaped using the given character encoding.

    Raises:
        EncodingConfigurationError: If the character encoding is unknown.
    """
    try:
        encoded = quote_plus(value, safe="*", encoding=encoding)
    except LookupError as e:
        raise EncodingConfigurationError(f"Unsupported character encoding '{encoding}'") from e
    # quote_plus never escapes '~'
    return encoded.replace("~", "%7E")


def url_decode(value: str, encoding: str = DEFAULT_ENCODING) -> str:
    """Decode a form-encoded value ('+' becomes space)."""
    try:
        return unquote_plus(value, encoding=encoding)
    except LookupError as e:
        raise EncodingConfigurationError(f"Unsupported character encoding '{encoding}'") from e


def path_decode(value: str, encoding: str = DEFAULT_ENCODING) -> str:
    """Decode a path component. Unlike url_decode, '+' is kept literally."""
    try:
        return unquote(value, encoding=encoding)
    except LookupError as e:
        raise EncodingConfigurationError(f"Unsupported character encoding '{encoding}'") from e


def component_encode(reserved_chars: str, value: str, encoding: str = DEFAULT_ENCODING) -> str:
    """Encode a value, leaving any character in reserved_chars unescaped.

    Runs between reserved characters are form-encoded; the reserved
    characters themselves are copied through.
    """
    parts: list[str] = []
    start = 0
    for i, char in enumerate(value):
        if char in reserved_chars:
            if i != start:
                parts.append(url_encode(value[start:i], encoding))
            parts.append(char)
            start = i + 1

    if not parts:
        return url_encode(value, encoding)
    if start < len(value):
        parts.append(url_encode(value[start:], encoding))
    return "".join(parts)


def query_encode(value: str, encoding: str = DEFAULT_ENCODING) -> str:
    """Encode a query name or value."""
    return component_encode(QUERY_RESERVED_CHARACTERS, value, encoding)


def path_encode(value: str, encoding: str = DEFAULT_ENCODING) -> str:
    """Encode a path segment.

    Form encoding turns ' ' into '+' and '+' into %2B; in a path a space
    must be %20 and '+' is a legal literal, so both are swapped back.
    """
    result = component_encode(PATH_RESERVED_CHARACTERS, value, encoding)
    if "+" in result:
        result = result.replace("+", "%20")
    if "%2B" in result:
        result = result.replace("%2B", "+")
    return result


def encode_partially_encoded(value: str, query: bool, encoding: str = DEFAULT_ENCODING) -> str:
    """Encode a string that may already contain percent-encoded triples.

    Every `%XX` triple (X a hex digit) is kept as-is; the text between them
    is encoded with query or path rules. With path rules, applying this to
    its own output changes nothing: the output holds only triples and
    characters path_encode leaves alone.

    Args:
        value: Fully, partially or not encoded text.
        query: Use query rules if True, path rules otherwise.
        encoding: Character encoding for escaped bytes.

    Returns:
        Fully encoded string.
    """
    if not value:
        return value

    encode = query_encode if query else path_encode
    parts: list[str] = []
    start = 0
    for match in ENCODE_PATTERN.finditer(value):
        parts.append(encode(value[start:match.start()], encoding))
        parts.append(match.group())
        start = match.end()

    if not parts:
        return encode(value, encoding)
    parts.append(encode(value[start:], encoding))
    return "".join(parts)


def as_text(value: Any) -> str:
    """Render a parameter value as text before it is encoded.

    Enums render as their value and booleans as `true`/`false`, the way they
    read in a URL or header.
    """
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
