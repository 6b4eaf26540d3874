"""URI assembly - turns a RequestModel into a path-plus-query URI.

Path variables are substituted with path-encoded values and query entries
are appended with query encoding. Values that already contain %XX triples
keep them, so callers can pre-encode characters they care about.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

import httpx

from api_request.classifier import render_param_value
from api_request.encoding import as_text, encode_partially_encoded
from api_request.models import HttpMethod
from api_request.params import MultiValueMap
from api_request.templates import substitute

if TYPE_CHECKING:
    from api_request.request import RequestModel


def _path_value(value: Any) -> str:
    return encode_partially_encoded(as_text(render_param_value(value)), query=False)


def _query_value(value: Any) -> str:
    return encode_partially_encoded(as_text(render_param_value(value)), query=True)


class UriBuilder:
    """Fluent builder for a path template plus query parameters.

    Usage:
        uri = (
            UriBuilder("/repos/{owner}")
            .path("{repo}/pulls")
            .query_param("state", "open")
            .resolve_templates({"owner": "apache", "repo": "red"})
            .build()
        )
    """

    def __init__(self, path: str | None = None) -> None:
        self._path = path or ""
        self._query = MultiValueMap()
        self._values: dict[str, Any] = {}

    def path(self, segment: str | None) -> UriBuilder:
        """Append a path, inserting or collapsing the '/' between the parts."""
        if not segment:
            return self
        if not self._path:
            self._path = segment
        elif self._path.endswith("/") and segment.startswith("/"):
            self._path = self._path + segment[1:]
        elif self._path.endswith("/") or segment.startswith("/"):
            self._path = self._path + segment
        else:
            self._path = f"{self._path}/{segment}"
        return self

    def query_param(self, name: str, *values: Any) -> UriBuilder:
        """Add one or more values for a query parameter. None values are skipped."""
        for value in values:
            if value is not None:
                self._query.add(name, _query_value(value))
        return self

    def resolve_template(self, name: str, value: Any) -> UriBuilder:
        self._values[name] = value
        return self

    def resolve_templates(self, values: Mapping[str, Any]) -> UriBuilder:
        self._values.update(values)
        return self

    def build(self) -> str:
        """Assemble the URI.

        Raises:
            MissingPathParameterError: A template variable has no value.
        """
        uri = substitute(self._path, self._values, _path_value)
        pairs = [
            f"{encode_partially_encoded(name, query=True)}={value}"
            for name, values in self._query.items()
            for value in values
        ]
        if pairs:
            uri = f"{uri}?{'&'.join(pairs)}"
        return uri


def to_uri_builder(model: RequestModel) -> UriBuilder:
    """A UriBuilder holding the model's path template and query parameters."""
    builder = UriBuilder(model.path)
    for name, value in model.query_params.items():
        builder.query_param(name, value)
    return builder


def build_uri(model: RequestModel) -> str:
    """The model's URI: template variables substituted, query string appended.

    Path parameters the template does not use are ignored.

    Raises:
        MissingPathParameterError: The template uses a name with no path parameter.
    """
    return to_uri_builder(model).resolve_templates(model.path_params).build()


def to_httpx_request(model: RequestModel, base_url: str) -> httpx.Request:
    """Build (but do not send) an httpx.Request for the model.

    Raises:
        ValueError: The model has no HTTP method.
        MissingPathParameterError: The template uses a name with no path parameter.
    """
    if model.method is None:
        raise ValueError("Cannot build an HTTP request without a method")

    uri = build_uri(model)
    if uri and not uri.startswith("/") and not uri.startswith("?"):
        uri = "/" + uri
    url = base_url.rstrip("/") + uri

    headers = {name: as_text(render_param_value(value)) for name, value in model.header_params.items()}
    content = model.body.encode("utf-8") if model.body is not None else None
    return httpx.Request(HttpMethod(model.method).value, url, headers=headers, content=content)
