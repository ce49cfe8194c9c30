"""
Client modules for HTTP and WebSocket endpoints
"""

from .http import HttpTransport, Middleware
from .fetch import FetchClient, QueryHandle, QueryOptions, ConnectionHandle, PreparedRequest

__all__ = [
    "HttpTransport",
    "Middleware",
    "FetchClient",
    "QueryHandle",
    "QueryOptions",
    "ConnectionHandle",
    "PreparedRequest",
]
