"""
Connection Multiplexer
One live socket per connection identity, fanned out to every subscriber
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol

from pydantic import TypeAdapter, ValidationError
from returns.result import Failure, Result, Success
from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from ..core.errors import (
    FetchError,
    NetworkError,
    ParamSerializationError,
    ResponseDeserializationError,
    ResponseParseError,
)
from ..core.json import JSONEncodeError, JSONParseError, dumps, parse_json, to_jsonable
from ..core.logging_config import get_logger
from ..monitoring.metrics import MetricsCollector

logger = get_logger(__name__)

_SOCKET_ERRORS = (WebSocketException, OSError, asyncio.TimeoutError)


class ReadyState(IntEnum):
    """Socket readiness, numbered like the browser WebSocket API."""

    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3


class Socket(Protocol):
    """Minimal duplex text socket."""

    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        ...


SocketConnector = Callable[[str], Awaitable[Socket]]


async def websockets_connector(url: str) -> Socket:
    """Open a client socket with the websockets asyncio implementation."""
    return await connect(url)


@dataclass(eq=False)
class Subscriber:
    """
    Callbacks of one consumer of a shared connection.

    Compared by identity: the same object subscribed twice is registered once.
    """

    on_open: Callable[[], None] | None = None
    on_message: Callable[[Any], None] | None = None
    on_error: Callable[[FetchError], None] | None = None
    on_close: Callable[[], None] | None = None


class ConnectionMultiplexer:
    """
    Shares one socket between every subscriber of a connection identity.

    The socket is opened by the first subscribe and closed when the last
    subscriber leaves. Events are delivered to a snapshot of the subscriber
    list taken when the event arrives. Subscribers arriving while that close
    is pending wait for it and then get a fresh socket.
    """

    def __init__(
        self,
        url: str,
        identity: str,
        connector: SocketConnector = websockets_connector,
        message_type: Any = Any,
        metrics: MetricsCollector | None = None,
        on_empty: Callable[["ConnectionMultiplexer"], None] | None = None,
    ) -> None:
        self.url = url
        self.identity = identity
        self._connector = connector
        self._adapter: TypeAdapter[Any] = TypeAdapter(message_type)
        self._metrics = metrics
        self._on_empty = on_empty

        self._subscribers: list[Subscriber] = []
        self._waiting: list[Subscriber] = []
        self._socket: Socket | None = None
        self._state = ReadyState.CLOSED
        self._reader: asyncio.Task[None] | None = None
        self._closing: asyncio.Task[None] | None = None

    @property
    def ready_state(self) -> ReadyState:
        return self._state

    @property
    def closing(self) -> asyncio.Task[None] | None:
        """Pending shutdown scheduled by the last unsubscribe."""
        return self._closing

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers) + len(self._waiting)

    def subscribe(self, subscriber: Subscriber) -> None:
        """
        Register subscriber and open the socket if none is live.

        Must be called from a running event loop.
        """
        if any(existing is subscriber for existing in self._subscribers + self._waiting):
            return

        if self._closing is not None:
            self._waiting.append(subscriber)
            return

        self._subscribers.append(subscriber)

        if self._reader is None:
            self._open()
        elif self._state == ReadyState.OPEN:
            self._call(subscriber.on_open)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove subscriber; the socket is closed once nobody is left."""
        if any(existing is subscriber for existing in self._waiting):
            self._waiting = [existing for existing in self._waiting if existing is not subscriber]
            return

        remaining = [existing for existing in self._subscribers if existing is not subscriber]
        if len(remaining) == len(self._subscribers):
            return

        self._subscribers = remaining
        if remaining:
            return

        logger.debug("socket_last_unsubscribe", identity=self.identity)
        if self._reader is not None and self._closing is None:
            self._closing = asyncio.get_running_loop().create_task(self._close_idle())
        if self._on_empty is not None:
            self._on_empty(self)

    async def send(self, payload: Any) -> Result[None, FetchError]:
        """
        Serialize payload to JSON text and write it to the socket.

        Returns:
            ``Failure(NetworkError)`` if the socket is missing or not open
        """
        socket = self._socket
        if socket is None or self._state != ReadyState.OPEN:
            return self._fail(NetworkError(f"socket is not open ({self._state.name})"))

        try:
            text = dumps(to_jsonable(payload))
        except JSONEncodeError as e:
            return Failure(ParamSerializationError("body", str(e), e))

        try:
            await socket.send(text)
        except _SOCKET_ERRORS as e:
            return self._fail(NetworkError(str(e) or type(e).__name__, e))

        return Success(None)

    async def close(self) -> None:
        """Close the socket and wait for the reader to finish."""
        closing = self._closing
        if closing is not None and closing is not asyncio.current_task():
            await closing

        reader, socket = self._reader, self._socket
        if reader is None:
            return

        self._state = ReadyState.CLOSING
        if socket is not None:
            try:
                await socket.close()
            except _SOCKET_ERRORS as e:
                logger.warning("socket_close_failed", identity=self.identity, error=str(e))

        if not reader.done():
            reader.cancel()
        try:
            await reader
        except asyncio.CancelledError:
            pass

        self._reader = None
        self._socket = None
        self._state = ReadyState.CLOSED

    async def _close_idle(self) -> None:
        """Close after the last unsubscribe, then reopen for late arrivals."""
        try:
            await self.close()
        finally:
            self._closing = None

        waiting, self._waiting = self._waiting, []
        if waiting:
            logger.debug("socket_reopen", identity=self.identity, subscribers=len(waiting))
            self._subscribers.extend(waiting)
            self._open()

    def _open(self) -> None:
        self._state = ReadyState.CONNECTING
        self._reader = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            socket = await self._connector(self.url)
        except _SOCKET_ERRORS as e:
            logger.warning("socket_connect_failed", url=self.url, error=str(e))
            self._state = ReadyState.CLOSED
            self._reader = None
            self._fail(NetworkError(str(e) or type(e).__name__, e))
            return

        self._socket = socket
        self._state = ReadyState.OPEN
        if self._metrics is not None:
            self._metrics.socket_opened()
        logger.info("socket_open", url=self.url, subscribers=len(self._subscribers))

        try:
            if not self._subscribers:
                await socket.close()
                return

            for subscriber in list(self._subscribers):
                self._call(subscriber.on_open)

            async for raw in socket:
                self._dispatch(raw)
        except _SOCKET_ERRORS as e:
            logger.warning("socket_error", url=self.url, error=str(e))
            self._fail(NetworkError(str(e) or type(e).__name__, e))
        finally:
            self._socket = None
            self._state = ReadyState.CLOSED
            self._reader = None
            if self._metrics is not None:
                self._metrics.socket_closed()
            logger.info("socket_closed", url=self.url)

            for subscriber in list(self._subscribers):
                self._call(subscriber.on_close)

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            value = parse_json(raw)
        except JSONParseError as e:
            self._fail(ResponseParseError(f"{raw!r} --- {e}", e))
            return

        try:
            message = self._adapter.validate_python(value)
        except ValidationError as e:
            self._fail(ResponseDeserializationError(f"{value!r} --- {e}", e))
            return

        if self._metrics is not None:
            self._metrics.record_stream_message(type(message).__name__)
        for subscriber in list(self._subscribers):
            self._call(subscriber.on_message, message)

    def _fail(self, error: FetchError) -> Failure:
        """Report error to every current subscriber and wrap it."""
        if self._metrics is not None:
            self._metrics.record_stream_error(error.kind.value)
        for subscriber in list(self._subscribers):
            self._call(subscriber.on_error, error)
        return Failure(error)

    def _call(self, callback: Callable[..., None] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error("subscriber_callback_failed", identity=self.identity, error=str(e), exc_info=True)


class MultiplexerRegistry:
    """
    Connection identity -> multiplexer.

    Multiplexers are created on first use and dropped as soon as their last
    subscriber leaves, so the next subscriber gets a fresh socket.
    """

    def __init__(
        self,
        connector: SocketConnector = websockets_connector,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._connector = connector
        self._metrics = metrics
        self._multiplexers: dict[str, ConnectionMultiplexer] = {}
        self._retired: set[ConnectionMultiplexer] = set()

    def get_or_create(self, identity: str, url: str, message_type: Any = Any) -> ConnectionMultiplexer:
        multiplexer = self._multiplexers.get(identity)
        if multiplexer is None:
            multiplexer = ConnectionMultiplexer(
                url,
                identity,
                connector=self._connector,
                message_type=message_type,
                metrics=self._metrics,
                on_empty=self._discard,
            )
            self._multiplexers[identity] = multiplexer
        return multiplexer

    def get(self, identity: str) -> ConnectionMultiplexer | None:
        return self._multiplexers.get(identity)

    def _discard(self, multiplexer: ConnectionMultiplexer) -> None:
        if self._multiplexers.get(multiplexer.identity) is multiplexer:
            del self._multiplexers[multiplexer.identity]

        closing = multiplexer.closing
        if closing is not None and not closing.done():
            self._retired.add(multiplexer)
            closing.add_done_callback(lambda _task: self._release(multiplexer))

    def _release(self, multiplexer: ConnectionMultiplexer) -> None:
        # Reopened for subscribers that arrived mid-close; close_all still owns it
        if not multiplexer.subscriber_count:
            self._retired.discard(multiplexer)

    async def close_all(self) -> None:
        """Close every socket, including ones still shutting down."""
        multiplexers = list(self._multiplexers.values()) + list(self._retired)
        self._multiplexers.clear()
        self._retired.clear()
        for multiplexer in multiplexers:
            await multiplexer.close()

    def __contains__(self, identity: str) -> bool:
        return identity in self._multiplexers

    def __len__(self) -> int:
        return len(self._multiplexers)


__all__ = [
    "ReadyState",
    "Socket",
    "SocketConnector",
    "websockets_connector",
    "Subscriber",
    "ConnectionMultiplexer",
    "MultiplexerRegistry",
]
