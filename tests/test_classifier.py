"""Tests for api_request.classifier.

Tests cover:
- describe_method: markers, parameter roles, defaults, signature errors
- describe_object_type / classify_object for dataclasses and Pydantic models
- classify_call: argument binding and the accept header
- Collection rendering and None handling
"""

import json
from dataclasses import dataclass
from typing import Annotated, ClassVar, Optional

import pytest

from api_request.classifier import (
    bind_arguments,
    classify_call,
    classify_object,
    describe_method,
    describe_object_type,
    is_annotated_object,
    merge_accept,
    render_param_value,
)
from api_request.errors import (
    AmbiguousBodyError,
    BodySerializationError,
    FieldAccessError,
    InvalidMethodSignatureError,
)
from api_request.markers import Body, HeaderParam, PathParam, QueryParam, get, path, post
from api_request.models import HttpMethod, RequestSettings, Role
from tests.request_fixtures import (
    CollectionClient,
    Color,
    Draft,
    FilteredPullsClient,
    Label,
    PullFilter,
    PullsClient,
    State,
)


# =============================================================================
# Interfaces used only here
# =============================================================================


class BrokenClient:
    def unmarked(self, owner: Annotated[str, PathParam("owner")]) -> None: ...

    @get("/a")
    @post("/a")
    def two_methods(self) -> None: ...

    @post("/a")
    def two_bodies(self, first: dict, second: dict) -> None: ...

    @get("/a")
    def variadic(self, *values: str) -> None: ...

    @post("/a")
    def two_body_params(
        self, first: Annotated[dict, Body()], second: Annotated[dict, Body()]
    ) -> None: ...

    @post("/a")
    def body_and_payload(self, payload: Annotated[dict, Body()], extra: dict) -> None: ...


class RepoClient:
    @get("/repos/{owner}")
    def repo(self, owner: Annotated[str, PathParam("owner")]) -> dict: ...

    @get("/repos/{owner}")
    def repo_as(
        self,
        owner: Annotated[str, PathParam("owner")],
        accept: Annotated[str, HeaderParam("Accept")],
    ) -> dict: ...

    @get
    def bare(self, page: Annotated[int, QueryParam("page")] = 1) -> None: ...

    @path("/users/{name}")
    @get
    def user(self, name: Annotated[str, PathParam("name")]) -> dict: ...

    @post("/repos/{owner}/labels")
    def create_label(
        self,
        owner: Annotated[str, PathParam("owner")],
        label: Annotated[Label, Body()],
    ) -> Label: ...

    @get("/search")
    def search(self, tags: Annotated[Optional[list[str]], QueryParam("tags")] = None): ...


@get("/status")
def status(verbose: Annotated[bool, QueryParam("verbose")] = False) -> str: ...


class Unreadable:
    """Declares a field that instances never set."""

    token: Annotated[str, HeaderParam("token")]


@dataclass
class Mixed:
    kind: ClassVar[str] = "mixed"
    note: str = ""
    page: Annotated[int | None, QueryParam("page")] = None


@dataclass
class Payload:
    value: Annotated[object, Body("value")] = None


# =============================================================================
# describe_method
# =============================================================================


class TestDescribeMethod:
    def test_roles_and_names(self) -> None:
        descriptor = describe_method(PullsClient.pulls)

        assert descriptor.http_method is HttpMethod.GET
        assert descriptor.path == "/repos/{owner}/{repo}/pulls"
        roles = {p.attribute: p.role for p in descriptor.params}
        assert roles == {
            "owner": Role.PATH,
            "repo": Role.PATH,
            "state": Role.QUERY,
            "head": Role.QUERY,
            "base": Role.QUERY,
            "sort": Role.QUERY,
            "direction": Role.QUERY,
            "link": Role.HEADER,
            "draft": Role.UNCLASSIFIED,
        }

    def test_self_is_skipped(self) -> None:
        descriptor = describe_method(FilteredPullsClient.pulls)
        assert [p.attribute for p in descriptor.params][0] == "repo"

    def test_void_return(self) -> None:
        descriptor = describe_method(PullsClient.pulls)
        assert descriptor.returns_value is False
        assert descriptor.response_type is None

    def test_value_return(self) -> None:
        descriptor = describe_method(RepoClient.repo)
        assert descriptor.returns_value is True
        assert descriptor.response_type is dict

    def test_missing_return_annotation_is_void(self) -> None:
        assert describe_method(RepoClient.search).returns_value is False

    def test_plain_function(self) -> None:
        descriptor = describe_method(status)
        assert descriptor.path == "/status"
        assert descriptor.params[0].default is False

    def test_bare_decorator(self) -> None:
        descriptor = describe_method(RepoClient.bare)
        assert descriptor.http_method is HttpMethod.GET
        assert descriptor.path is None
        assert descriptor.params[0].default == 1

    def test_path_decorator(self) -> None:
        descriptor = describe_method(RepoClient.user)
        assert descriptor.http_method is HttpMethod.GET
        assert descriptor.path == "/users/{name}"

    def test_collection_detected(self) -> None:
        assert describe_method(CollectionClient.query_param).params[0].is_collection
        assert describe_method(RepoClient.search).params[0].is_collection
        assert not describe_method(RepoClient.repo).params[0].is_collection

    def test_result_is_cached(self) -> None:
        assert describe_method(PullsClient.pulls) is describe_method(PullsClient.pulls)

    def test_no_method_marker(self) -> None:
        with pytest.raises(InvalidMethodSignatureError, match="must be decorated") as exc_info:
            describe_method(BrokenClient.unmarked)
        assert "BrokenClient.unmarked" in str(exc_info.value)

    def test_two_method_markers(self) -> None:
        with pytest.raises(InvalidMethodSignatureError, match="more than one HTTP method"):
            describe_method(BrokenClient.two_methods)

    def test_two_unannotated_parameters(self) -> None:
        with pytest.raises(AmbiguousBodyError):
            describe_method(BrokenClient.two_bodies)

    def test_variadic_parameters(self) -> None:
        with pytest.raises(InvalidMethodSignatureError, match="Variadic"):
            describe_method(BrokenClient.variadic)

    def test_two_body_parameters(self) -> None:
        with pytest.raises(AmbiguousBodyError, match="first, second"):
            describe_method(BrokenClient.two_body_params)

    def test_body_parameter_and_unannotated_parameter(self) -> None:
        with pytest.raises(AmbiguousBodyError, match="payload, extra"):
            describe_method(BrokenClient.body_and_payload)

    def test_required_recorded(self) -> None:
        required = {p.attribute: p.required for p in describe_method(FilteredPullsClient.pulls).params}
        assert required["repo"] is True
        assert required["base"] is False
        assert required["pull_filter"] is False


# =============================================================================
# Data objects
# =============================================================================


class TestDescribeObjectType:
    def test_declaration_order(self) -> None:
        attributes = [d.attribute for d in describe_object_type(PullFilter)]
        assert attributes == ["owner", "repo", "state", "head", "base", "sort", "direction", "link", "draft"]

    def test_unmarked_and_class_vars_ignored(self) -> None:
        assert [d.attribute for d in describe_object_type(Mixed)] == ["page"]

    def test_pydantic_model(self) -> None:
        roles = {d.attribute: d.role for d in describe_object_type(Label)}
        assert roles == {"owner": Role.PATH, "name": Role.BODY, "color": Role.BODY, "trace": Role.HEADER}

    def test_is_annotated_object(self) -> None:
        assert is_annotated_object(Color(red=1))
        assert is_annotated_object(Label(owner="me", name="bug"))
        assert not is_annotated_object({"draft": True})
        assert not is_annotated_object([1, 2])
        assert not is_annotated_object("text")
        assert not is_annotated_object(None)
        assert not is_annotated_object(object())


class TestClassifyObject:
    def test_query_only_object_has_no_body(self) -> None:
        classification = classify_object(Color(red=255, green=165, blue=0))
        assert classification.query_params == {"red": 255, "green": 165, "blue": 0}
        assert classification.body is None

    def test_none_fields_dropped(self) -> None:
        classification = classify_object(Color(red=1))
        assert classification.query_params == {"red": 1}

    def test_every_role(self, pull_filter: PullFilter) -> None:
        classification = classify_object(pull_filter)

        assert classification.path_params == {"owner": "apache", "repo": "orange"}
        assert list(classification.query_params) == ["state", "head", "base", "sort", "direction"]
        assert classification.query_params["state"] is State.CLOSED
        assert classification.header_params == {"link": "http://bar.example.com/"}
        assert json.loads(classification.body) == {"draft": True}

    def test_body_field_unset(self) -> None:
        """A declared Body field still yields a (empty) body object."""
        classification = classify_object(Draft())
        assert json.loads(classification.body) == {}

    def test_pydantic_model(self) -> None:
        classification = classify_object(Label(owner="me", name="bug", trace="t1"))

        assert classification.path_params == {"owner": "me"}
        assert classification.header_params == {"x-trace-id": "t1"}
        assert json.loads(classification.body) == {"name": "bug"}

    def test_compact_body(self) -> None:
        classification = classify_object(Draft(draft=True), settings=RequestSettings(body_indent=None))
        assert classification.body == '{"draft":true}'

    def test_unreadable_field(self) -> None:
        with pytest.raises(FieldAccessError) as exc_info:
            classify_object(Unreadable())
        assert exc_info.value.field == "token"
        assert "Unreadable.token" in str(exc_info.value)

    def test_unserializable_body(self) -> None:
        with pytest.raises(BodySerializationError):
            classify_object(Payload(value=object()))


# =============================================================================
# Calls
# =============================================================================


class TestBindArguments:
    def test_positional_and_keyword(self) -> None:
        descriptor = describe_method(RepoClient.repo_as)
        bound = bind_arguments(descriptor, ("apache",), {"accept": "text/plain"})
        assert bound == {"owner": "apache", "accept": "text/plain"}

    def test_defaults_fill_omitted(self) -> None:
        assert bind_arguments(describe_method(RepoClient.bare)) == {"page": 1}

    def test_too_many_positional(self) -> None:
        with pytest.raises(TypeError, match="takes 1 argument"):
            bind_arguments(describe_method(RepoClient.repo), ("a", "b"))

    def test_unknown_keyword(self) -> None:
        with pytest.raises(TypeError, match="unexpected keyword"):
            bind_arguments(describe_method(RepoClient.repo), (), {"repo": "x"})

    def test_duplicate_argument(self) -> None:
        with pytest.raises(TypeError, match="multiple values"):
            bind_arguments(describe_method(RepoClient.repo), ("a",), {"owner": "b"})

    def test_missing_required_argument(self) -> None:
        with pytest.raises(TypeError, match=r"missing required argument\(s\): 'accept'"):
            bind_arguments(describe_method(RepoClient.repo_as), ("apache",))

    def test_every_missing_argument_listed(self) -> None:
        with pytest.raises(TypeError, match="'owner', 'accept'"):
            bind_arguments(describe_method(RepoClient.repo_as), (), {})


class TestClassifyCall:
    def test_unannotated_argument_left_unprocessed(self) -> None:
        draft = Draft(draft=True)
        classification = classify_call(
            describe_method(FilteredPullsClient.pulls), kwargs={"repo": "a", "pull_filter": draft}
        )

        assert classification.inferred_body is draft
        assert classification.has_inferred_body
        assert classification.body is None

    def test_none_inferred_argument(self) -> None:
        classification = classify_call(describe_method(FilteredPullsClient.pulls), kwargs={"repo": "a"})
        assert not classification.has_inferred_body

    def test_body_parameter_serialized(self) -> None:
        label = Label(owner="me", name="bug")
        classification = classify_call(describe_method(RepoClient.create_label), ("me", label))
        assert json.loads(classification.body) == {"owner": "me", "name": "bug"}

    def test_accept_header_added_for_value_return(self) -> None:
        classification = classify_call(describe_method(RepoClient.repo), ("apache",))
        assert classification.header_params == {"accept": "application/json"}

    def test_accept_header_merged(self) -> None:
        classification = classify_call(describe_method(RepoClient.repo_as), ("apache", "text/plain"))
        assert classification.header_params == {"accept": "text/plain, application/json"}

    def test_no_accept_header_for_void(self) -> None:
        classification = classify_call(describe_method(RepoClient.bare))
        assert classification.header_params == {}
        assert classification.query_params == {"page": 1}

    def test_collections_joined(self) -> None:
        classification = classify_call(describe_method(CollectionClient.query_param), ([2, 3, 5],))
        assert classification.query_params == {"excluded": "2,3,5"}

    def test_custom_separator(self) -> None:
        settings = RequestSettings(collection_separator="|")
        classification = classify_call(
            describe_method(CollectionClient.header_param), ([2, 3],), settings=settings
        )
        assert classification.header_params == {"excluded": "2|3"}


class TestHelpers:
    def test_merge_accept(self) -> None:
        assert merge_accept(None, "application/json") == "application/json"
        assert merge_accept("text/plain", "application/json") == "text/plain, application/json"
        assert merge_accept("application/json, text/plain", "application/json") == "application/json, text/plain"

    def test_render_param_value(self) -> None:
        assert render_param_value([2, 3, 5]) == "2,3,5"
        assert render_param_value((State.OPEN, State.CLOSED)) == "open,closed"
        assert render_param_value([]) == ""
        assert render_param_value([1, None, 2]) == "1,2"
        assert render_param_value(7) == 7
        assert render_param_value("a,b") == "a,b"
