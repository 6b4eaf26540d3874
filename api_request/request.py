"""RequestModel - an immutable description of one outbound HTTP request.

A RequestModel is built once, through a RequestBuilder, from one of:

- explicit builder calls: RequestModel.builder().path(...).query_param(...).build()
- a path template and positional values: RequestModel.target(path, *values)
- a data object with marked fields: RequestModel.from_object(obj)
- a decorated method and its call arguments: RequestModel.from_call(func, args)

Models never change after construction. The with_* methods and merge()
return new models built from a copy of the original's state.

Merge semantics (base.merge(override)):
- path, query and header entries are unioned key by key, override winning
- override's body, path template, method and response type replace base's
  when they are set, and are ignored when they are None
- replacing the body sets content-type, as RequestBuilder.body() does
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence

from api_request.classifier import classify_call, classify_object, describe_method, is_annotated_object
from api_request.errors import ExcessPathParametersError
from api_request.models import DEFAULT_SETTINGS, HttpMethod, MethodDescriptor, RequestSettings
from api_request.serialization import BodySerializer, default_serializer
from api_request.templates import template_variables

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

CONTENT_TYPE_HEADER = "content-type"


def _read_only(values: Mapping[str, Any], lower_keys: bool = False) -> Mapping[str, Any]:
    if lower_keys:
        return MappingProxyType({key.lower(): value for key, value in values.items()})
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class RequestModel:
    """One HTTP request: method, path template, body and parameter mappings.

    The three mappings are read-only snapshots in insertion order. A name
    may appear in more than one of them. Header names are lower case.
    """

    method: HttpMethod | None = None
    path: str | None = None
    body: str | None = None
    path_params: Mapping[str, Any] = field(default_factory=dict)
    query_params: Mapping[str, Any] = field(default_factory=dict)
    header_params: Mapping[str, Any] = field(default_factory=dict)
    response_type: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "path_params", _read_only(self.path_params))
        object.__setattr__(self, "query_params", _read_only(self.query_params))
        object.__setattr__(self, "header_params", _read_only(self.header_params, lower_keys=True))

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @staticmethod
    def builder(
        serializer: BodySerializer | None = None,
        settings: RequestSettings | None = None,
    ) -> RequestBuilder:
        return RequestBuilder(serializer=serializer, settings=settings)

    def to_builder(
        self,
        serializer: BodySerializer | None = None,
        settings: RequestSettings | None = None,
    ) -> RequestBuilder:
        """A builder holding copies of this model's state.

        The body is copied as-is, without the content-type side effect of
        RequestBuilder.body().
        """
        builder = (
            RequestBuilder(serializer=serializer, settings=settings)
            .method(self.method)
            .path(self.path)
            .response_type(self.response_type)
            .path_params(self.path_params)
            .query_params(self.query_params)
            .header_params(self.header_params)
        )
        builder._body = self.body
        return builder

    @classmethod
    def target(cls, path: str, *path_values: Any) -> RequestModel:
        """A request for `path` with its template variables bound in order.

        RequestModel.target("/repos/{owner}/{repo}", "apache", "red") binds
        owner and repo. Fewer values than variables is allowed.

        Raises:
            ExcessPathParametersError: More values than template variables.
        """
        variables = template_variables(path)
        if len(path_values) > len(variables):
            raise ExcessPathParametersError(path, len(variables), len(path_values))
        return cls(path=path, path_params=dict(zip(variables, path_values)))

    @classmethod
    def from_object(
        cls,
        obj: Any,
        path: str | None = None,
        serializer: BodySerializer | None = None,
        settings: RequestSettings | None = None,
    ) -> RequestModel:
        """A request built from the marked fields of a data object.

        Raises:
            FieldAccessError: A declared field cannot be read.
            BodySerializationError: The body fields cannot be serialized.
        """
        classification = classify_object(obj, serializer=serializer, settings=settings)
        builder = (
            cls.builder(serializer=serializer, settings=settings)
            .path(path)
            .path_params(classification.path_params)
            .query_params(classification.query_params)
            .header_params(classification.header_params)
        )
        if classification.body is not None:
            builder.body(classification.body)
        return builder.build()

    @classmethod
    def from_call(
        cls,
        method: Callable[..., Any] | MethodDescriptor,
        args: Sequence[Any] = (),
        kwargs: Mapping[str, Any] | None = None,
        serializer: BodySerializer | None = None,
        settings: RequestSettings | None = None,
    ) -> RequestModel:
        """A request for one call of a decorated method.

        `method` is either a decorated function (described once and cached)
        or a MethodDescriptor, for example one loaded from an endpoint table.

        If the method has an unannotated parameter, its argument supplies
        defaults: an object with marked fields is classified with
        from_object(), any other value becomes the body. The call's own
        parameters are then merged over it, so they always win.

        Raises:
            InvalidMethodSignatureError: The method has no (or several) HTTP
                method markers.
            AmbiguousBodyError: The method has more than one body parameter
                (Body-marked or unannotated).
            TypeError: The arguments do not fit the method, for example a
                required argument is missing.
            BodySerializationError: A body value cannot be serialized.
        """
        descriptor = method if isinstance(method, MethodDescriptor) else describe_method(method)
        classification = classify_call(descriptor, args, kwargs, serializer=serializer, settings=settings)

        builder = (
            cls.builder(serializer=serializer, settings=settings)
            .method(descriptor.http_method)
            .path(descriptor.path)
            .response_type(descriptor.response_type)
            .path_params(classification.path_params)
            .query_params(classification.query_params)
            .header_params(classification.header_params)
        )
        if classification.body is not None:
            builder.body(classification.body)
        from_parameters = builder.build()

        if not classification.has_inferred_body:
            return from_parameters

        inferred = classification.inferred_body
        if is_annotated_object(inferred):
            from_body = cls.from_object(inferred, serializer=serializer, settings=settings)
        else:
            from_body = cls.builder(serializer=serializer, settings=settings).body(inferred).build()

        logger.debug("Merging %s parameters over %s", descriptor.name, type(inferred).__qualname__)
        return from_body.merge(from_parameters)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def uri(self) -> str:
        """The path with variables substituted, plus the encoded query string."""
        from api_request.uri import build_uri

        return build_uri(self)

    def to_httpx_request(self, base_url: str) -> httpx.Request:
        """An unsent httpx.Request for this model against `base_url`."""
        from api_request.uri import to_httpx_request

        return to_httpx_request(self, base_url)

    # -------------------------------------------------------------------------
    # Copy-on-write
    # -------------------------------------------------------------------------

    def with_path_param(self, name: str, value: Any) -> RequestModel:
        return self.to_builder().path_param(name, value).build()

    def with_query_param(self, name: str, value: Any) -> RequestModel:
        return self.to_builder().query_param(name, value).build()

    def with_header(self, name: str, value: Any) -> RequestModel:
        return self.to_builder().header(name, value).build()

    def with_body(self, value: Any, serializer: BodySerializer | None = None) -> RequestModel:
        """A copy with a new body; non-string values are serialized."""
        return self.to_builder(serializer=serializer).body(value).build()

    def with_response_type(self, response_type: Any) -> RequestModel:
        return self.to_builder().response_type(response_type).build()

    def merge(self, override: RequestModel) -> RequestModel:
        """A new model with `override`'s settings layered over this one."""
        return merge(self, override)


class RequestBuilder:
    """Mutable builder for RequestModel.

    Confine a builder to one logical call; it is not safe to share between
    threads. build() snapshots the state, so later builder calls never
    affect a built model.
    """

    def __init__(
        self,
        serializer: BodySerializer | None = None,
        settings: RequestSettings | None = None,
    ) -> None:
        self._settings = settings or DEFAULT_SETTINGS
        self._serializer = serializer or default_serializer(self._settings)
        self._method: HttpMethod | None = None
        self._path: str | None = None
        self._body: str | None = None
        self._response_type: Any = None
        self._path_params: dict[str, Any] = {}
        self._query_params: dict[str, Any] = {}
        self._header_params: dict[str, Any] = {}

    def method(self, method: HttpMethod | str | None) -> RequestBuilder:
        self._method = HttpMethod(method.upper()) if isinstance(method, str) else method
        return self

    def path(self, path: str | None) -> RequestBuilder:
        """Set the path template."""
        self._path = path
        return self

    def body(self, value: Any) -> RequestBuilder:
        """Set the body.

        A string is used as-is; anything else is serialized. Setting a body
        also sets content-type to the configured media type unless a
        content-type header is already present. None clears the body.
        """
        if value is None:
            self._body = None
            return self
        self._body = value if isinstance(value, str) else self._serializer.serialize(value)
        self._header_params.setdefault(CONTENT_TYPE_HEADER, self._settings.media_type)
        return self

    def response_type(self, response_type: Any) -> RequestBuilder:
        self._response_type = response_type
        return self

    def path_param(self, name: str, value: Any) -> RequestBuilder:
        self._path_params[name] = value
        return self

    def query_param(self, name: str, value: Any) -> RequestBuilder:
        self._query_params[name] = value
        return self

    def header(self, name: str, value: Any) -> RequestBuilder:
        self._header_params[name.lower()] = value
        return self

    def path_params(self, values: Mapping[str, Any]) -> RequestBuilder:
        """Replace all path parameters with a copy of `values`."""
        self._path_params = dict(values)
        return self

    def query_params(self, values: Mapping[str, Any]) -> RequestBuilder:
        """Replace all query parameters with a copy of `values`."""
        self._query_params = dict(values)
        return self

    def header_params(self, values: Mapping[str, Any]) -> RequestBuilder:
        """Replace all headers with a copy of `values`, lower-casing names.

        If a body is already set and `values` has no content-type, the
        media type is kept as content-type, as body() would set it.
        """
        self._header_params = {name.lower(): value for name, value in values.items()}
        if self._body is not None:
            self._header_params.setdefault(CONTENT_TYPE_HEADER, self._settings.media_type)
        return self

    def build(self) -> RequestModel:
        return RequestModel(
            method=self._method,
            path=self._path,
            body=self._body,
            path_params=self._path_params,
            query_params=self._query_params,
            header_params=self._header_params,
            response_type=self._response_type,
        )

    def __repr__(self) -> str:
        return (
            f"RequestBuilder(method={self._method}, path={self._path!r}, body={self._body!r}, "
            f"response_type={self._response_type!r}, path_params={self._path_params!r}, "
            f"query_params={self._query_params!r}, header_params={self._header_params!r})"
        )


def merge(base: RequestModel, override: RequestModel) -> RequestModel:
    """Layer `override` over `base`.

    Keys of the path, query and header mappings are overwritten one by one,
    so entries only `base` has survive. Scalar fields (body, path template,
    method, response type) are taken from `override` when set.
    """
    merged = base.to_builder()
    for name, value in override.path_params.items():
        merged.path_param(name, value)
    for name, value in override.query_params.items():
        merged.query_param(name, value)
    for name, value in override.header_params.items():
        merged.header(name, value)

    if override.body is not None:
        merged.body(override.body)
    if override.path is not None:
        merged.path(override.path)
    if override.method is not None:
        merged.method(override.method)
    if override.response_type is not None:
        merged.response_type(override.response_type)

    return merged.build()
