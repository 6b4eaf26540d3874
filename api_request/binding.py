"""Interface binding - call methods of a declared interface to get RequestModels.

An interface is any class whose methods carry the HTTP method decorators:

    class PullsClient:
        @get("/repos/{owner}/{repo}/pulls")
        def pulls(self, owner: Annotated[str, PathParam("owner")], ...) -> list[Pull]: ...

    client = bind(PullsClient)
    request = client.pulls("apache", ...)

Descriptors for every decorated method are computed once, when bind() is
called, so signature mistakes surface at registration rather than on the
first call. Nothing is intercepted at runtime: a call looks up the
descriptor and hands the arguments to RequestModel.from_call().
"""

from __future__ import annotations

import inspect
from typing import Any, Callable

from api_request.classifier import describe_method
from api_request.markers import http_methods
from api_request.models import MethodDescriptor, RequestSettings
from api_request.request import RequestModel
from api_request.serialization import BodySerializer


def describe_interface(interface: type) -> dict[str, MethodDescriptor]:
    """Descriptors for every decorated method of `interface`, keyed by method name.

    Raises:
        InvalidMethodSignatureError: A decorated method has an invalid signature.
        AmbiguousBodyError: A decorated method has more than one body parameter.
    """
    table: dict[str, MethodDescriptor] = {}
    for name, member in inspect.getmembers(interface, inspect.isfunction):
        if http_methods(member):
            table[name] = describe_method(member)
    return table


class BoundInterface:
    """Callable view of an interface: each method returns a RequestModel."""

    def __init__(
        self,
        descriptors: dict[str, MethodDescriptor],
        serializer: BodySerializer | None = None,
        settings: RequestSettings | None = None,
    ) -> None:
        self._descriptors = descriptors
        self._serializer = serializer
        self._settings = settings

    @property
    def descriptors(self) -> dict[str, MethodDescriptor]:
        return dict(self._descriptors)

    def __getattr__(self, name: str) -> Callable[..., RequestModel]:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            descriptor = self._descriptors[name]
        except KeyError:
            raise AttributeError(f"Interface has no request method '{name}'") from None

        def call(*args: Any, **kwargs: Any) -> RequestModel:
            return RequestModel.from_call(
                descriptor, args, kwargs, serializer=self._serializer, settings=self._settings
            )

        call.__name__ = name
        return call

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._descriptors))


def bind(
    interface: type | dict[str, MethodDescriptor],
    serializer: BodySerializer | None = None,
    settings: RequestSettings | None = None,
) -> BoundInterface:
    """Bind an interface class, or a ready-made descriptor table, for calling."""
    descriptors = interface if isinstance(interface, dict) else describe_interface(interface)
    return BoundInterface(descriptors, serializer=serializer, settings=settings)
