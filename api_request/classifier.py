"""Parameter classification - turns declared parameters and fields into request parts.

Two sources are supported:

- Method calls: describe_method() reflects over a decorated function once
  and produces a MethodDescriptor; classify_call() resolves a call's
  arguments against it.
- Data objects: describe_object_type() finds the marked fields of a class;
  classify_object() reads them from an instance.

Both produce a Classification with the path, query and header mappings and
the serialized body. None values are dropped, collection values are joined
into one string, and header names are lower-cased.
"""

from __future__ import annotations

import inspect
import logging
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Sequence

from pydantic import BaseModel

from api_request.encoding import as_text
from api_request.errors import (
    BodySerializationError,
    FieldAccessError,
    InvalidMethodSignatureError,
)
from api_request.markers import ParamMarker, declared_path, http_methods
from api_request.models import (
    DEFAULT_SETTINGS,
    MethodDescriptor,
    ParamDescriptor,
    RequestSettings,
    Role,
)
from api_request.serialization import BodySerializer, default_serializer

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "accept"
COLLECTION_TYPES = (list, tuple, set, frozenset)

# Sentinel: no unannotated argument was declared
_MISSING = object()


@dataclass
class Classification:
    """Request parts resolved from one object or one call."""

    path_params: dict[str, Any] = field(default_factory=dict)
    query_params: dict[str, Any] = field(default_factory=dict)
    header_params: dict[str, Any] = field(default_factory=dict)
    body: str | None = None
    # The unannotated call argument, or _MISSING when the method declares none
    inferred_body: Any = _MISSING

    @property
    def has_inferred_body(self) -> bool:
        return self.inferred_body is not _MISSING and self.inferred_body is not None

    def mapping_for(self, role: Role) -> dict[str, Any]:
        if role is Role.PATH:
            return self.path_params
        if role is Role.QUERY:
            return self.query_params
        if role is Role.HEADER:
            return self.header_params
        raise ValueError(f"Role {role.value} has no parameter mapping")


# =============================================================================
# Type introspection
# =============================================================================


def _find_marker(hint: Any) -> ParamMarker | None:
    """Return the first ParamMarker in an Annotated hint's metadata."""
    if typing.get_origin(hint) is typing.Annotated:
        for meta in hint.__metadata__:
            if isinstance(meta, ParamMarker):
                return meta
    return None


def _strip_annotated(hint: Any) -> Any:
    if typing.get_origin(hint) is typing.Annotated:
        return typing.get_args(hint)[0]
    return hint


def _is_collection_hint(hint: Any) -> bool:
    """True for list/tuple/set hints, including Optional[...] wrappers."""
    hint = _strip_annotated(hint)
    origin = typing.get_origin(hint)
    if origin in COLLECTION_TYPES:
        return True
    if isinstance(hint, type) and issubclass(hint, COLLECTION_TYPES):
        return True
    # Optional[list[int]] / list[int] | None
    if origin is typing.Union or origin is types.UnionType:
        return any(
            _is_collection_hint(arg) for arg in typing.get_args(hint) if arg is not type(None)
        )
    return False


def _type_hints(target: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(target, include_extras=True)
    except (NameError, TypeError) as e:
        raise InvalidMethodSignatureError(f"Cannot resolve type hints ({e})", target) from e


def _descriptor_for(attribute: str, hint: Any, default: Any = None, required: bool = False) -> ParamDescriptor:
    marker = _find_marker(hint)
    if marker is None:
        return ParamDescriptor(attribute=attribute, role=Role.UNCLASSIFIED, default=default, required=required)
    return ParamDescriptor(
        attribute=attribute,
        role=marker.role,
        name=marker.name,
        is_collection=_is_collection_hint(hint),
        default=default,
        required=required,
    )


@lru_cache(maxsize=None)
def describe_method(func: Callable[..., Any]) -> MethodDescriptor:
    """Reflect over a decorated function and describe how to build its requests.

    The first parameter is skipped when it is named `self` or `cls`, so both
    plain functions and methods of an interface class can be described.

    Raises:
        InvalidMethodSignatureError: No HTTP method marker, more than one, or
            a signature using *args/**kwargs.
        AmbiguousBodyError: More than one body parameter (marked Body or
            without a marker).
    """
    methods = http_methods(func)
    if not methods:
        raise InvalidMethodSignatureError(
            "Method must be decorated with one of @get, @post, @put, @delete, @patch, @options or @head",
            func,
        )
    if len(set(methods)) > 1:
        names = ", ".join(m.value for m in methods)
        raise InvalidMethodSignatureError(f"Method declares more than one HTTP method ({names})", func)

    hints = _type_hints(func)
    signature = inspect.signature(func)
    parameters = list(signature.parameters.values())
    if parameters and parameters[0].name in ("self", "cls"):
        parameters = parameters[1:]

    params: list[ParamDescriptor] = []
    for parameter in parameters:
        if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise InvalidMethodSignatureError(
                f"Variadic parameter '{parameter.name}' cannot be mapped onto a request", func
            )
        required = parameter.default is inspect.Parameter.empty
        default = None if required else parameter.default
        params.append(_descriptor_for(parameter.name, hints.get(parameter.name), default, required))

    return_hint = hints.get("return", _MISSING)
    returns_value = return_hint is not _MISSING and return_hint is not type(None)

    descriptor = MethodDescriptor(
        name=func.__qualname__,
        http_method=methods[0],
        path=declared_path(func),
        params=params,
        returns_value=returns_value,
        response_type=_strip_annotated(return_hint) if returns_value else None,
    )
    logger.debug(
        "Described %s: %s %s with %d parameter(s)",
        descriptor.name,
        descriptor.http_method.value,
        descriptor.path,
        len(params),
    )
    return descriptor


@lru_cache(maxsize=None)
def describe_object_type(cls: type) -> tuple[ParamDescriptor, ...]:
    """Marked fields of a class, in declaration order. Unmarked fields are ignored.

    Pydantic models are read through model_fields, which keeps Annotated
    metadata on each FieldInfo; other classes through their type hints.
    """
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        descriptors = []
        for attribute, info in cls.model_fields.items():
            marker = next((m for m in info.metadata if isinstance(m, ParamMarker)), None)
            if marker is not None:
                descriptors.append(_descriptor_for(attribute, typing.Annotated[info.annotation, marker]))
        return tuple(descriptors)

    hints = _type_hints(cls)
    descriptors = []
    for attribute, hint in hints.items():
        if typing.get_origin(hint) is typing.ClassVar:
            continue
        if _find_marker(hint) is None:
            continue
        descriptors.append(_descriptor_for(attribute, hint))
    return tuple(descriptors)


def is_annotated_object(value: Any) -> bool:
    """True if the value's class declares at least one marked field."""
    if value is None or isinstance(value, (str, bytes, int, float, bool, Mapping, *COLLECTION_TYPES)):
        return False
    return bool(describe_object_type(type(value)))


# =============================================================================
# Value resolution
# =============================================================================


def render_param_value(value: Any, settings: RequestSettings = DEFAULT_SETTINGS) -> Any:
    """Value as stored in a request mapping.

    Collections become one string joined with the collection separator, with
    None elements left out. Any other value is kept as-is and rendered when
    the URI or headers are built.
    """
    if isinstance(value, COLLECTION_TYPES):
        return settings.collection_separator.join(as_text(item) for item in value if item is not None)
    return value


def _put(classification: Classification, descriptor: ParamDescriptor, value: Any, settings: RequestSettings) -> None:
    if value is None:
        return
    classification.mapping_for(descriptor.role)[descriptor.wire_name] = render_param_value(value, settings)


def _serialize(serializer: BodySerializer, value: Any) -> str:
    try:
        return serializer.serialize(value)
    except BodySerializationError:
        raise
    except Exception as e:
        raise BodySerializationError(f"Cannot serialize body of type {type(value).__qualname__}: {e}") from e


def classify_object(
    obj: Any,
    serializer: BodySerializer | None = None,
    settings: RequestSettings | None = None,
) -> Classification:
    """Resolve the marked fields of a data object.

    Fields marked Body are collected into one JSON object keyed by wire name
    (None values left out). An object with no Body field has no body.

    Raises:
        FieldAccessError: A declared field cannot be read.
        BodySerializationError: The body fields cannot be serialized.
    """
    settings = settings or DEFAULT_SETTINGS
    serializer = serializer or default_serializer(settings)
    classification = Classification()

    descriptors = describe_object_type(type(obj))
    body_fields: dict[str, Any] | None = None
    for descriptor in descriptors:
        try:
            value = getattr(obj, descriptor.attribute)
        except AttributeError as e:
            raise FieldAccessError(type(obj), descriptor.attribute) from e

        if descriptor.role is Role.BODY:
            if body_fields is None:
                body_fields = {}
            if value is not None:
                body_fields[descriptor.wire_name] = value
        else:
            _put(classification, descriptor, value, settings)

    if body_fields is not None:
        classification.body = _serialize(serializer, body_fields)

    logger.debug(
        "Classified %s: path=%s query=%s header=%s body=%s",
        type(obj).__qualname__,
        list(classification.path_params),
        list(classification.query_params),
        list(classification.header_params),
        classification.body is not None,
    )
    return classification


def bind_arguments(
    descriptor: MethodDescriptor,
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Map call arguments onto the descriptor's parameters by position and name.

    Omitted arguments take the declared default.

    Raises:
        TypeError: Too many positional arguments, an unknown keyword, the
            same parameter given twice, or a required argument left out.
    """
    kwargs = kwargs or {}
    if len(args) > len(descriptor.params):
        raise TypeError(
            f"{descriptor.name}() takes {len(descriptor.params)} argument(s) but {len(args)} were given"
        )

    bound = {p.attribute: p.default for p in descriptor.params}
    for param, value in zip(descriptor.params, args):
        bound[param.attribute] = value

    positional = {p.attribute for p in descriptor.params[: len(args)]}
    for name, value in kwargs.items():
        if name not in bound:
            raise TypeError(f"{descriptor.name}() got an unexpected keyword argument '{name}'")
        if name in positional:
            raise TypeError(f"{descriptor.name}() got multiple values for argument '{name}'")
        bound[name] = value

    missing = [
        p.attribute
        for p in descriptor.params
        if p.required and p.attribute not in positional and p.attribute not in kwargs
    ]
    if missing:
        names = ", ".join(f"'{name}'" for name in missing)
        raise TypeError(f"{descriptor.name}() missing required argument(s): {names}")
    return bound


def merge_accept(existing: Any, media_type: str) -> str:
    """Add a media type to an accept header value, keeping existing entries first."""
    values: list[str] = []
    if existing is not None:
        values = [v.strip() for v in as_text(existing).split(",") if v.strip()]
    values.append(media_type)
    return ", ".join(dict.fromkeys(values))


def classify_call(
    descriptor: MethodDescriptor,
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
    serializer: BodySerializer | None = None,
    settings: RequestSettings | None = None,
) -> Classification:
    """Resolve one call's arguments against a method descriptor.

    The unannotated argument, if the method declares one, is returned
    unprocessed in `inferred_body`; the caller decides whether it is an
    annotated object or a plain payload. A parameter marked Body is
    serialized here.

    Raises:
        BodySerializationError: The Body argument cannot be serialized.
        TypeError: The arguments do not fit the descriptor.
    """
    settings = settings or DEFAULT_SETTINGS
    serializer = serializer or default_serializer(settings)
    classification = Classification()

    bound = bind_arguments(descriptor, args, kwargs)
    for param in descriptor.params:
        value = bound[param.attribute]
        if param.role is Role.UNCLASSIFIED:
            classification.inferred_body = value
        elif param.role is Role.BODY:
            if value is not None:
                classification.body = _serialize(serializer, value)
        else:
            _put(classification, param, value, settings)

    if descriptor.returns_value:
        headers = classification.header_params
        headers[ACCEPT_HEADER] = merge_accept(headers.get(ACCEPT_HEADER), settings.media_type)

    return classification
