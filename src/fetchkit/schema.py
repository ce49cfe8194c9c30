"""
Endpoint descriptors.

A schema generator produces one descriptor per declared endpoint. The runtime
only needs the shapes below to derive keys, build URLs, validate parameters
and decode responses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from pydantic import TypeAdapter, ValidationError

from .core.errors import ParamSerializationError


class HttpMethod(str, Enum):
    """Supported HTTP methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @classmethod
    def parse(cls, method: "str | HttpMethod") -> "HttpMethod":
        """Parse a verb case-insensitively; unknown verbs fall back to GET."""
        try:
            return cls(str(method.value if isinstance(method, HttpMethod) else method).upper())
        except ValueError:
            return cls.GET


@dataclass(frozen=True)
class RequestParams:
    """Per-call parameters: path placeholders, query string and JSON body."""

    path: Any = None
    query: Any = None
    body: Any = None


def _validate(part: str, declared: Any, value: Any) -> Any:
    """Validate a parameter value against its declared type."""
    if declared is None:
        return value
    if value is None:
        raise ParamSerializationError(part, f"missing required {part} parameters")

    try:
        return TypeAdapter(declared).validate_python(value)
    except ValidationError as e:
        raise ParamSerializationError(part, str(e), e) from e


@dataclass(frozen=True)
class Endpoint:
    """
    Request/response endpoint descriptor.

    Types set to None mean "no such part" (unit). The name namespaces cache
    keys and the slot registry entry shared by every caller of the endpoint.

    Examples:
        >>> todo = Endpoint("get_todo", HttpMethod.GET, "/todos/{id}", path_params=TodoPath, response=Todo)
    """

    name: str
    method: HttpMethod
    path: str
    path_params: Any = None
    query: Any = None
    body: Any = None
    response: Any = None

    def validate(self, params: RequestParams) -> RequestParams:
        """
        Check presence and shape of every declared parameter part.

        Raises:
            ParamSerializationError: naming the failing part
        """
        return RequestParams(
            path=_validate("path", self.path_params, params.path),
            query=_validate("query", self.query, params.query) if params.query is not None else None,
            body=_validate("body", self.body, params.body),
        )


@dataclass(frozen=True)
class StreamEndpoint:
    """WebSocket endpoint descriptor with a closed set of message variants."""

    name: str
    path: str
    path_params: Any = None
    query: Any = None
    messages: tuple[Any, ...] = field(default_factory=tuple)
    send: Any = None

    @property
    def message_type(self) -> Any:
        """Union of the declared message variants (Any if none declared)."""
        if not self.messages:
            return Any
        if len(self.messages) == 1:
            return self.messages[0]
        return Union[self.messages]

    def validate(self, params: RequestParams) -> RequestParams:
        """Check presence and shape of path/query parameters."""
        return RequestParams(
            path=_validate("path", self.path_params, params.path),
            query=_validate("query", self.query, params.query) if params.query is not None else None,
        )


__all__ = ["HttpMethod", "RequestParams", "Endpoint", "StreamEndpoint"]
