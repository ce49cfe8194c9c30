"""
fetchkit
Caching data-fetching runtime for schema-generated API clients
"""

from .clients import FetchClient, QueryHandle, QueryOptions, ConnectionHandle, HttpTransport
from .core import CachePolicy, ClientOptions, FetchError, Settings, Signal, configure_logging
from .schema import Endpoint, HttpMethod, RequestParams, StreamEndpoint
from .streaming import ReadyState, Subscriber

__version__ = "0.1.0"

__all__ = [
    "FetchClient",
    "QueryHandle",
    "QueryOptions",
    "ConnectionHandle",
    "HttpTransport",
    "CachePolicy",
    "ClientOptions",
    "FetchError",
    "Settings",
    "Signal",
    "configure_logging",
    "Endpoint",
    "HttpMethod",
    "RequestParams",
    "StreamEndpoint",
    "ReadyState",
    "Subscriber",
]
