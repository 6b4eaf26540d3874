"""Markers declaring how parameters and fields map onto a request.

Parameters and fields are tagged with typing.Annotated:

    @get("/repos/{owner}/{repo}/pulls")
    def pulls(
        self,
        owner: Annotated[str, PathParam("owner")],
        state: Annotated[State | None, QueryParam("state")] = None,
        link: Annotated[str | None, HeaderParam("link")] = None,
    ) -> list[Pull]: ...

    @dataclass
    class PullFilter:
        owner: Annotated[str, PathParam("owner")]
        draft: Annotated[bool | None, Body("draft")] = None

HTTP methods are declared with the get/post/put/delete/patch/options/head
decorators, which optionally take the path template. `path` sets the
template on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from api_request.models import HttpMethod, Role

F = TypeVar("F", bound=Callable[..., Any])

METHODS_ATTRIBUTE = "__api_request_methods__"
PATH_ATTRIBUTE = "__api_request_path__"


@dataclass(frozen=True)
class ParamMarker:
    """Base marker: a role and a wire name."""

    name: str | None
    role: Role = Role.UNCLASSIFIED


@dataclass(frozen=True)
class PathParam(ParamMarker):
    name: str
    role: Role = Role.PATH


@dataclass(frozen=True)
class QueryParam(ParamMarker):
    name: str
    role: Role = Role.QUERY


@dataclass(frozen=True)
class HeaderParam(ParamMarker):
    name: str
    role: Role = Role.HEADER


@dataclass(frozen=True)
class Body(ParamMarker):
    """The value is (part of) the request body.

    On a field, `name` is the JSON key (defaults to the field name). On a
    method parameter the whole argument is the body and `name` is unused.
    """

    name: str | None = None
    role: Role = Role.BODY


def path(template: str) -> Callable[[F], F]:
    """Set the path template of a method."""

    def decorator(func: F) -> F:
        setattr(func, PATH_ATTRIBUTE, template)
        return func

    return decorator


def _method_marker(method: HttpMethod) -> Callable[..., Any]:
    def marker(template: str | F | None = None) -> Any:
        def decorator(func: F) -> F:
            methods = getattr(func, METHODS_ATTRIBUTE, ())
            setattr(func, METHODS_ATTRIBUTE, methods + (method,))
            if isinstance(template, str):
                setattr(func, PATH_ATTRIBUTE, template)
            return func

        # Bare use: @get
        if callable(template):
            func, template = template, None
            return decorator(func)
        return decorator

    marker.__name__ = method.value.lower()
    marker.__doc__ = f"Mark a method as an HTTP {method.value}, optionally setting its path template."
    return marker


get = _method_marker(HttpMethod.GET)
post = _method_marker(HttpMethod.POST)
put = _method_marker(HttpMethod.PUT)
delete = _method_marker(HttpMethod.DELETE)
patch = _method_marker(HttpMethod.PATCH)
options = _method_marker(HttpMethod.OPTIONS)
head = _method_marker(HttpMethod.HEAD)


def http_methods(func: Callable[..., Any]) -> tuple[HttpMethod, ...]:
    """HTTP methods declared on a function, in decoration order."""
    return getattr(func, METHODS_ATTRIBUTE, ())


def declared_path(func: Callable[..., Any]) -> str | None:
    return getattr(func, PATH_ATTRIBUTE, None)
