"""Core utilities and infrastructure."""

from .config import Settings, get_settings, ClientOptions
from .logging_config import configure_logging, get_logger, LogContext
from .errors import (
    ErrorKind,
    FetchError,
    UrlParsingError,
    ParamSerializationError,
    SerializationError,
    HeaderError,
    NetworkError,
    HttpError,
    ResponseParseError,
    ResponseDeserializationError,
    UnknownError,
)
from .json import canonical_dumps, dumps, parse_json, JSONParseError, JSONEncodeError
from .hash import Algorithm, create_hasher, hash_parts
from .cache import CachePolicy, CacheEntry, TTLCache, Stats
from .signal import Signal

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "ClientOptions",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    # Errors
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
    # JSON
    "canonical_dumps",
    "dumps",
    "parse_json",
    "JSONParseError",
    "JSONEncodeError",
    # Hashing
    "Algorithm",
    "create_hasher",
    "hash_parts",
    # Caching
    "CachePolicy",
    "CacheEntry",
    "TTLCache",
    "Stats",
    # Reactive
    "Signal",
]
