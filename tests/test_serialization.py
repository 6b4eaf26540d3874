"""Tests for api_request.serialization."""

import json
from dataclasses import dataclass
from datetime import date
from uuid import UUID

import pytest

from api_request.errors import BodySerializationError
from api_request.models import RequestSettings
from api_request.serialization import BodySerializer, JsonBodySerializer, default_serializer
from tests.request_fixtures import Label, State


@dataclass
class Milestone:
    title: str
    due: date | None = None


class TestJsonBodySerializer:
    def test_is_a_body_serializer(self) -> None:
        assert isinstance(default_serializer(), BodySerializer)

    def test_indented_by_default(self) -> None:
        assert JsonBodySerializer().serialize({"a": 1}) == '{\n  "a": 1\n}'

    def test_compact(self) -> None:
        assert JsonBodySerializer(RequestSettings(body_indent=None)).serialize({"a": 1}) == '{"a":1}'

    def test_rich_values(self) -> None:
        value = {"state": State.OPEN, "id": UUID(int=1), "due": date(2024, 5, 1)}
        assert json.loads(JsonBodySerializer().serialize(value)) == {
            "state": "open",
            "id": "00000000-0000-0000-0000-000000000001",
            "due": "2024-05-01",
        }

    def test_dataclass(self) -> None:
        assert json.loads(JsonBodySerializer().serialize(Milestone(title="v1", due=date(2024, 5, 1)))) == {
            "title": "v1",
            "due": "2024-05-01",
        }

    def test_none_model_fields_left_out(self) -> None:
        assert json.loads(JsonBodySerializer().serialize(Label(owner="me", name="bug"))) == {
            "owner": "me",
            "name": "bug",
        }

    def test_unserializable(self) -> None:
        with pytest.raises(BodySerializationError, match="object"):
            JsonBodySerializer().serialize(object())
