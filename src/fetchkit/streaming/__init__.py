"""
Streaming connections
Multiplexes WebSocket endpoints over one socket per connection identity
"""

from .multiplexer import (
    ConnectionMultiplexer,
    MultiplexerRegistry,
    ReadyState,
    Subscriber,
    SocketConnector,
    websockets_connector,
)

__all__ = [
    "ConnectionMultiplexer",
    "MultiplexerRegistry",
    "ReadyState",
    "Subscriber",
    "SocketConnector",
    "websockets_connector",
]
