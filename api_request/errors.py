"""Errors raised while synthesizing a request.

Every error here indicates a programming or configuration mistake in the
caller (a malformed interface, a missing path value, an unserializable body).
None of them are retried internally and no partial RequestModel is returned.
"""

from __future__ import annotations

from typing import Any


class RequestSynthesisError(Exception):
    """Base class for request synthesis errors."""


class InvalidMethodSignatureError(RequestSynthesisError):
    """Raised when a method cannot be converted into a request.

    Covers a missing or duplicated HTTP method marker and methods whose
    signature cannot be introspected.
    """

    def __init__(self, message: str, method: Any = None) -> None:
        self.method = method
        if method is not None:
            message = f"{message}: {_describe(method)}"
        super().__init__(message)


class AmbiguousBodyError(InvalidMethodSignatureError):
    """Raised when more than one argument (Body-marked or unannotated) could be the body."""


class ExcessPathParametersError(RequestSynthesisError):
    """Raised when more positional path values are given than the template declares."""

    def __init__(self, path: str, expected: int, supplied: int) -> None:
        self.path = path
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"Excess path parameters supplied. Path {path} contains {expected} "
            f"parameters, but {supplied} were supplied."
        )


class MissingPathParameterError(RequestSynthesisError):
    """Raised when a path template references a value that was never supplied."""

    def __init__(self, name: str, path: str) -> None:
        self.name = name
        self.path = path
        super().__init__(f"No value supplied for path parameter '{name}' in {path}")


class BodySerializationError(RequestSynthesisError):
    """Raised when the body serializer cannot serialize a value."""


class FieldAccessError(RequestSynthesisError):
    """Raised when a declared field cannot be read from an object."""

    def __init__(self, owner: type, field: str) -> None:
        self.owner = owner
        self.field = field
        super().__init__(f"Cannot get value of field: {owner.__qualname__}.{field}")


class EncodingConfigurationError(RequestSynthesisError):
    """Raised when an unknown character encoding is requested."""


def _describe(method: Any) -> str:
    qualname = getattr(method, "__qualname__", None)
    if qualname is None:
        return str(method)
    module = getattr(method, "__module__", None)
    return f"{module}.{qualname}" if module else qualname
