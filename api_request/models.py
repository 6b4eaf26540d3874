"""Internal data models for api-request.

Enums and Pydantic v2 models describing how declared parameters map onto a
request, plus the runtime settings. The RequestModel itself lives in
request.py because it is an immutable value with a builder rather than a
validated record.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from api_request.errors import AmbiguousBodyError


# =============================================================================
# Enums
# =============================================================================


class HttpMethod(str, Enum):
    """HTTP methods a request can carry."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class Role(str, Enum):
    """Where a declared parameter or field ends up in the request."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"
    UNCLASSIFIED = "unclassified"


NAMED_ROLES = frozenset({Role.PATH, Role.QUERY, Role.HEADER})
BODY_ROLES = frozenset({Role.BODY, Role.UNCLASSIFIED})


# =============================================================================
# Descriptor Models
# =============================================================================


class ParamDescriptor(BaseModel):
    """One declared parameter (of a method) or field (of a data object).

    `attribute` is the Python name used to look the value up; `name` is the
    wire name. PATH, QUERY and HEADER require a wire name. BODY fields use it
    as the JSON key when present.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    attribute: str = Field(description="Python parameter or field name")
    role: Role = Field(description="Request role")
    name: str | None = Field(default=None, description="Wire name")
    is_collection: bool = Field(
        default=False, description="Declared as a list, tuple or set type"
    )
    default: Any = Field(default=None, description="Value used when a call omits the argument")
    required: bool = Field(default=False, description="A call must supply the argument")

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower()
        return v

    @model_validator(mode="after")
    def check_wire_name(self) -> Self:
        if self.role in NAMED_ROLES and not self.name:
            raise ValueError(f"{self.role.value} parameter '{self.attribute}' requires a name")
        return self

    @property
    def wire_name(self) -> str:
        """Name used on the wire. Header names are lower case."""
        name = self.name or self.attribute
        if self.role is Role.HEADER:
            return name.lower()
        return name


class MethodDescriptor(BaseModel):
    """Everything needed to turn a call into a request, computed once per method.

    Built either by reflecting over an annotated function
    (classifier.describe_method) or from a declarative endpoint table
    (config_loader.load_endpoints).
    """

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True, populate_by_name=True)

    name: str = Field(description="Method or endpoint name")
    http_method: HttpMethod = Field(alias="method", description="HTTP method (`method` in endpoint tables)")
    path: str | None = Field(default=None, description="Path template")
    params: list[ParamDescriptor] = Field(default_factory=list, description="Declared parameters in call order")
    returns_value: bool = Field(default=False, description="Non-void return, adds an accept header")
    response_type: Any = Field(default=None, description="Declared return type, if any")

    @field_validator("http_method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @model_validator(mode="after")
    def check_single_body(self) -> Self:
        body_like = [p.attribute for p in self.params if p.role in BODY_ROLES]
        if len(body_like) > 1:
            raise AmbiguousBodyError(
                "Client interface methods may only have one body parameter (Body or non-annotated). "
                f"Found {len(body_like)} ({', '.join(body_like)}) in '{self.name}'"
            )
        return self

    def param(self, attribute: str) -> ParamDescriptor | None:
        for p in self.params:
            if p.attribute == attribute:
                return p
        return None


# =============================================================================
# Configuration Models
# =============================================================================


class RequestSettings(BaseModel):
    """Runtime settings shared by the builder, classifier and serializer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    media_type: str = Field(
        default="application/json",
        description="content-type set with a body, and the media type added to accept",
    )
    collection_separator: str = Field(
        default=",", description="Joins collection values bound to path, query or header"
    )
    body_indent: int | None = Field(
        default=2, ge=0, description="JSON indentation of serialized bodies (None for compact)"
    )


DEFAULT_SETTINGS = RequestSettings()


class EndpointTable(BaseModel):
    """A declarative endpoint table, as loaded from YAML."""

    model_config = ConfigDict(extra="forbid")

    settings: RequestSettings = Field(default_factory=RequestSettings)
    endpoints: dict[str, MethodDescriptor] = Field(default_factory=dict)
