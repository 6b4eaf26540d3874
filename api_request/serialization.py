"""Body serialization.

The synthesis core only needs `serialize(value) -> str`. The default
implementation writes JSON through pydantic-core, which understands Pydantic
models, dataclasses, enums, datetimes, UUIDs and the usual containers.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic_core import PydanticSerializationError, to_json

from api_request.errors import BodySerializationError
from api_request.models import DEFAULT_SETTINGS, RequestSettings


@runtime_checkable
class BodySerializer(Protocol):
    """Turns a body value into the string sent on the wire."""

    def serialize(self, value: Any) -> str: ...


class JsonBodySerializer:
    """Serializes bodies as JSON.

    Pydantic model fields whose value is None are left out, so an unset
    optional field never appears as `null` in the payload.
    """

    def __init__(self, settings: RequestSettings | None = None) -> None:
        self._indent = (settings or DEFAULT_SETTINGS).body_indent

    def serialize(self, value: Any) -> str:
        """Serialize a value to JSON text.

        Raises:
            BodySerializationError: If the value cannot be represented as JSON.
        """
        try:
            return to_json(value, indent=self._indent, exclude_none=True).decode("utf-8")
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise BodySerializationError(
                f"Cannot serialize body of type {type(value).__qualname__}: {e}"
            ) from e


def default_serializer(settings: RequestSettings | None = None) -> BodySerializer:
    return JsonBodySerializer(settings)
