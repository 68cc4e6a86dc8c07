"""Tests for payload serialization and the negative marker."""

import json
from dataclasses import dataclass

import pytest
from pydantic import BaseModel, ValidationError

from flightcache.codec import (
    NEGATIVE_MARKER,
    dumps,
    is_empty,
    loads,
    loads_list,
    unwrap,
)


@dataclass
class Point:
    x: int
    y: int


class User(BaseModel):
    id: int
    name: str


class TestNegativeMarker:
    def test_marker_is_not_json(self) -> None:
        with pytest.raises(json.JSONDecodeError):
            json.loads(NEGATIVE_MARKER)

    def test_unwrap(self) -> None:
        assert unwrap(NEGATIVE_MARKER) is None
        assert unwrap(None) is None
        assert unwrap('{"a":1}') == '{"a":1}'


class TestIsEmpty:
    @pytest.mark.parametrize("value", [None, [], (), set(), frozenset()])
    def test_empty(self, value: object) -> None:
        assert is_empty(value)

    @pytest.mark.parametrize("value", ["", b"", 0, False, [0], {}, {"a": 1}])
    def test_not_empty(self, value: object) -> None:
        assert not is_empty(value)


class TestDumpsLoads:
    def test_plain_json(self) -> None:
        assert loads(dumps({"a": 1})) == {"a": 1}

    def test_dataclass_and_model(self) -> None:
        assert loads(dumps(Point(1, 2)), Point) == Point(1, 2)
        assert loads(dumps(User(id=1, name="ann")), User) == User(id=1, name="ann")

    def test_typed_validation_failure(self) -> None:
        with pytest.raises(ValidationError):
            loads('{"id": "x"}', User)

    def test_loads_list(self) -> None:
        assert loads_list("[1, 2]") == [1, 2]
        assert loads_list('[{"id": 1, "name": "a"}]', User) == [User(id=1, name="a")]

    def test_loads_list_rejects_non_list(self) -> None:
        with pytest.raises(ValueError, match="Expected a JSON list"):
            loads_list('{"a": 1}')
