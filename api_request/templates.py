"""Path templates: segment splitting, variable extraction and substitution.

A template is a path such as `/repos/{owner}/{repo}/pulls`. A variable may
carry a regular expression after a colon, `{id:[0-9]+}`, and that expression
may itself contain braces or slashes (`/my/path/{a:b/c}`). Splitting and
scanning therefore track brace depth instead of splitting on '/' blindly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from api_request.encoding import path_decode
from api_request.errors import MissingPathParameterError
from api_request.params import MultiValueMap, get_matrix_params


@dataclass(frozen=True)
class PathSegment:
    """One '/'-separated piece of a path.

    `original` is the raw text, matrix parameters included. `path` is the
    text before the first ';', percent-decoded when requested.
    """

    original: str
    path: str
    matrix_params: MultiValueMap = field(default_factory=MultiValueMap, compare=False)

    @classmethod
    def parse(cls, text: str, decode: bool) -> PathSegment:
        index = text.find(";")
        path = text if index == -1 else text[:index]
        if decode:
            path = path_decode(path)
        return cls(original=text, path=path, matrix_params=get_matrix_params(text, decode))


def get_path_segments(path: str, decode: bool = True, ignore_last_slash: bool = True) -> list[PathSegment]:
    """Split a path template into segments, keeping template variables whole.

    A '/' inside `{...}` belongs to the variable's regex and does not start a
    new segment. Empty segments ('//') are dropped. When braces are unbalanced
    the scan gives up at the last separator it trusted and splits the rest
    naively on '/'.

    Args:
        path: Path or path template.
        decode: Percent-decode segment text.
        ignore_last_slash: For a path ending in '/', append an empty segment
            (True) or a '/' segment (False).

    Returns:
        Segments in path order.
    """
    segments: list[PathSegment] = []
    template_depth = 0
    start = 0
    for i, char in enumerate(path):
        if char == "/":
            if template_depth != 0:
                continue
            if start != i:
                segments.append(PathSegment.parse(path[start:i], decode))
            start = i + 1
        elif char == "{":
            template_depth += 1
        elif char == "}":
            # May go negative on an unbalanced template
            template_depth -= 1

    ends_with_slash = path.endswith("/")
    last_slash = PathSegment(original="", path="") if ignore_last_slash else PathSegment(original="/", path="/")

    if template_depth != 0:
        segments.extend(PathSegment.parse(piece, decode) for piece in path[start:].split("/") if piece)
        if ends_with_slash:
            segments.append(last_slash)
    elif start == len(path) and start > 0 and ends_with_slash:
        segments.append(last_slash)
    elif path:
        segments.append(PathSegment.parse(path[start:], decode))

    return segments


def from_path_segment(segment: PathSegment) -> str:
    """Rebuild the `path;name=value;flag` text of a segment."""
    if segment.original:
        return segment.original
    parts = [segment.path]
    for name, values in segment.matrix_params.items():
        for value in values:
            parts.append(name if value is None else f"{name}={value}")
    return ";".join(parts)


def _scan_variables(path: str) -> list[tuple[int, int, str]]:
    """Find every complete `{...}` variable as (start, end, name).

    Nested braces inside a regex are allowed. An unclosed '{' ends the scan.
    """
    found: list[tuple[int, int, str]] = []
    depth = 0
    open_at = -1
    for i, char in enumerate(path):
        if char == "{":
            if depth == 0:
                open_at = i
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                body = path[open_at + 1:i]
                name = body.split(":", 1)[0].strip()
                found.append((open_at, i + 1, name))
    return found


def template_variables(path: str | None) -> list[str]:
    """Names of the template variables in `path`, left to right.

    `/repos/{owner}/{repo:[a-z]+}` gives ['owner', 'repo']. A name that
    appears twice is listed twice.
    """
    if not path:
        return []
    return [name for _, _, name in _scan_variables(path)]


def substitute(path: str, values: Mapping[str, Any], encode: Callable[[Any], str]) -> str:
    """Replace each template variable with `encode(values[name])`.

    Raises:
        MissingPathParameterError: If a variable has no entry in `values`.
    """
    parts: list[str] = []
    last = 0
    for start, end, name in _scan_variables(path):
        if name not in values:
            raise MissingPathParameterError(name, path)
        parts.append(path[last:start])
        parts.append(encode(values[name]))
        last = end
    parts.append(path[last:])
    return "".join(parts)
