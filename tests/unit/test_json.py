"""Tests for JSON helpers."""

from dataclasses import dataclass

import pytest

from fetchkit.core.json import (
    JSONEncodeError,
    JSONParseError,
    canonical_dumps,
    dumps,
    parse_json,
    to_jsonable,
)

from support import Todo


@dataclass
class Point:
    y: int
    x: int


@pytest.mark.unit
def test_canonical_dumps_sorted_compact():
    """Test canonical encoding sorts keys at every depth."""
    assert canonical_dumps({"b": 1, "a": {"d": [1, 2], "c": None}}) == b'{"a":{"c":null,"d":[1,2]},"b":1}'


@pytest.mark.unit
def test_canonical_dumps_models_and_dataclasses():
    """Test models and dataclasses encode as sorted objects."""
    assert canonical_dumps(Todo(id=1, title="t")) == b'{"done":false,"id":1,"title":"t"}'
    assert canonical_dumps(Point(y=2, x=1)) == b'{"x":1,"y":2}'


@pytest.mark.unit
def test_canonical_dumps_big_integers():
    """Test integers outside 64-bit range still encode canonically."""
    assert canonical_dumps({"b": 2**70, "a": "é"}) == '{"a":"é","b":1180591620717411303424}'.encode("utf-8")


@pytest.mark.unit
def test_canonical_dumps_rejects_cycles():
    """Test cyclic structures raise JSONEncodeError."""
    cyclic: list = []
    cyclic.append(cyclic)

    with pytest.raises(JSONEncodeError):
        canonical_dumps(cyclic)


@pytest.mark.unit
def test_dumps_text():
    """Test wire encoding returns text."""
    assert dumps({"text": "hi"}) == '{"text":"hi"}'

    with pytest.raises(JSONEncodeError):
        dumps(object())


@pytest.mark.unit
def test_parse_json():
    """Test decoding text and bytes."""
    assert parse_json('{"id": 7, "tags": ["a"]}') == {"id": 7, "tags": ["a"]}
    assert parse_json(b"[1, 2]") == [1, 2]


@pytest.mark.unit
@pytest.mark.parametrize("text", ["{", "not json", '{"a": 1} trailing'])
def test_parse_json_invalid(text):
    """Test malformed JSON raises JSONParseError."""
    with pytest.raises(JSONParseError) as exc_info:
        parse_json(text)

    assert exc_info.value.original is not None


@pytest.mark.unit
def test_to_jsonable():
    """Test conversion of structured values."""
    assert to_jsonable(Todo(id=1, title="t")) == {"id": 1, "title": "t", "done": False}
    assert to_jsonable(Point(y=2, x=1)) == {"y": 2, "x": 1}
    assert to_jsonable([1]) == [1]
