"""Fetch error taxonomy.

Every fallible runtime operation reports one of these errors, either raised
(pure helpers) or wrapped in a ``returns`` ``Failure`` (orchestrator, transport,
multiplexer). None of them is fatal to the host.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Discriminator for fetch errors."""

    URL_PARSING = "url_parsing"
    PARAM_SERIALIZATION = "param_serialization"
    HEADER = "header"
    NETWORK = "network"
    HTTP = "http"
    RESPONSE_PARSE = "response_parse"
    RESPONSE_DESERIALIZATION = "response_deserialization"
    UNKNOWN = "unknown"


class FetchError(Exception):
    """Base class for data-fetching failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original = original

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FetchError):
            return NotImplemented
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self), self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class UrlParsingError(FetchError):
    """Resulting URL is not valid."""

    kind = ErrorKind.URL_PARSING


class ParamSerializationError(FetchError):
    """Path, query or body parameters could not be serialized."""

    kind = ErrorKind.PARAM_SERIALIZATION

    def __init__(self, part: str, message: str, original: Exception | None = None) -> None:
        super().__init__(f"{part} serialization error: {message}", original)
        self.part = part


# Key derivation reports serialization failures under this name too.
SerializationError = ParamSerializationError


class HeaderError(FetchError):
    """Request headers could not be built or mutated."""

    kind = ErrorKind.HEADER


class NetworkError(FetchError):
    """Transport failure, abort, or missing/closed socket."""

    kind = ErrorKind.NETWORK


class HttpError(FetchError):
    """Server answered with a non-2xx status."""

    kind = ErrorKind.HTTP

    def __init__(self, status: int, reason: str = "") -> None:
        super().__init__(f"Http Error: {status}: {reason}".rstrip(": "))
        self.status = status
        self.reason = reason


class ResponseParseError(FetchError):
    """Response body is not valid JSON."""

    kind = ErrorKind.RESPONSE_PARSE


class ResponseDeserializationError(FetchError):
    """JSON does not match the declared response shape."""

    kind = ErrorKind.RESPONSE_DESERIALIZATION


class UnknownError(FetchError):
    """Anything the taxonomy does not cover."""

    kind = ErrorKind.UNKNOWN


__all__ = [
    "ErrorKind",
    "FetchError",
    "UrlParsingError",
    "ParamSerializationError",
    "SerializationError",
    "HeaderError",
    "NetworkError",
    "HttpError",
    "ResponseParseError",
    "ResponseDeserializationError",
    "UnknownError",
]
