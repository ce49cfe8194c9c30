"""Fast JSON encoding/decoding with a canonical mode for key derivation."""

from dataclasses import asdict, is_dataclass
from typing import Any
import json

import msgspec
import orjson
from pydantic import BaseModel

_CANONICAL_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS | orjson.OPT_PASSTHROUGH_DATACLASS

_decoder = msgspec.json.Decoder()


class JSONParseError(Exception):
    """JSON parsing failed."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


class JSONEncodeError(Exception):
    """Value cannot be encoded as JSON."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


def _default(obj: Any) -> Any:
    """Fallback hook for types orjson does not know."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def to_jsonable(obj: Any) -> Any:
    """
    Convert models and dataclasses into plain JSON-compatible values.

    Args:
        obj: Value to convert

    Returns:
        dict/list/scalar tree
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    return obj


def canonical_dumps(obj: Any) -> bytes:
    """
    Encode to canonical JSON bytes: sorted object keys, compact separators.

    Structurally-equal inputs always encode to the same bytes regardless of
    dict insertion order.

    Raises:
        JSONEncodeError: For unsupported types or cyclic structures
    """
    try:
        return orjson.dumps(obj, default=_default, option=_CANONICAL_OPTIONS)
    except orjson.JSONEncodeError as e:
        if "Integer exceeds 64-bit range" not in str(e):
            raise JSONEncodeError(str(e), e) from e

    # Integers outside 64-bit range
    try:
        return json.dumps(
            obj, default=_default, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise JSONEncodeError(str(e), e) from e


def dumps(obj: Any) -> str:
    """
    Encode object to compact JSON text (wire format).

    Raises:
        JSONEncodeError: If the value cannot be encoded
    """
    try:
        return orjson.dumps(obj, default=_default).decode("utf-8")
    except orjson.JSONEncodeError as e:
        raise JSONEncodeError(str(e), e) from e


def parse_json(text: str | bytes) -> Any:
    """
    Decode JSON text into plain Python values.

    Raises:
        JSONParseError: If the text is not valid JSON
    """
    data = text.encode("utf-8") if isinstance(text, str) else text
    try:
        return _decoder.decode(data)
    except msgspec.DecodeError as e:
        raise JSONParseError(f"Invalid JSON: {e}", e) from e


__all__ = [
    "JSONParseError",
    "JSONEncodeError",
    "to_jsonable",
    "canonical_dumps",
    "dumps",
    "parse_json",
]
