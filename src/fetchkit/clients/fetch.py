"""
Fetch Client
Typed endpoint calls backed by a shared TTL cache, slot registry and sockets
"""

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError
from returns.pipeline import is_successful
from returns.result import Failure, Result, Success

from ..core.cache import CacheEntry, CachePolicy, Clock, TTLCache
from ..core.config import ClientOptions, Settings, get_settings
from ..core.errors import FetchError, NetworkError, ParamSerializationError, UnknownError
from ..core.logging_config import LogContext, get_logger
from ..core.signal import Signal
from ..monitoring.metrics import MetricsCollector
from ..query.keys import build_url, derive_cache_key, derive_connection_identity, join_url, ws_base_url
from ..query.orchestrator import (
    AbortHandle,
    FetchOrchestrator,
    FetchState,
    RequestCoalescer,
    ResponseDecoder,
)
from ..query.slots import EndpointScope, SlotRegistry, SlotScope
from ..schema import Endpoint, RequestParams, StreamEndpoint
from ..streaming.multiplexer import (
    ConnectionMultiplexer,
    MultiplexerRegistry,
    ReadyState,
    SocketConnector,
    Subscriber,
    websockets_connector,
)
from .http import HttpTransport, Middleware

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PreparedRequest:
    """Validated parameters plus everything derived from them."""

    endpoint: Endpoint
    params: RequestParams
    cache_key: str
    url: httpx.URL


@dataclass(frozen=True)
class QueryOptions:
    """
    Per-query overrides.

    Attributes:
        policy: Cache policy (None = the client's default)
        ttl: Cache entry TTL in seconds (None = the client's default)
        on_success: Called with every value the query publishes
        on_error: Called with every error the query publishes
    """

    policy: CachePolicy | None = None
    ttl: float | None = None
    on_success: Callable[[Any], None] | None = None
    on_error: Callable[[FetchError], None] | None = None


class QueryHandle(Generic[T]):
    """
    Live state of one query.

    ``data``, ``loading`` and ``error`` are signals; errors never clear
    ``data``. The handle joins its endpoint's shared registry entry on the
    first trigger, so ``FetchClient.update`` reaches it from then on.
    """

    def __init__(self, client: "FetchClient", endpoint: Endpoint, options: QueryOptions | None = None):
        self.endpoint = endpoint
        self.options = options or QueryOptions()
        self.data: Signal[T | None] = Signal(None)
        self.loading: Signal[bool] = Signal(False)
        self.error: Signal[FetchError | None] = Signal(None)

        self._client = client
        self._params: RequestParams | None = None
        self._abort: AbortHandle | None = None
        self._slot: tuple[str, int] | None = None
        self._closed = False

        self.data.subscribe(self._notify_success)
        self.error.subscribe(self._notify_error)

    def _notify_success(self, value: T | None) -> None:
        if value is not None and self.options.on_success is not None:
            self.options.on_success(value)

    def _notify_error(self, error: FetchError | None) -> None:
        if error is not None and self.options.on_error is not None:
            self.options.on_error(error)

    @property
    def params(self) -> RequestParams | None:
        """Parameters of the last trigger."""
        return self._params

    @property
    def closed(self) -> bool:
        return self._closed

    async def trigger(self, params: RequestParams | None = None) -> Result[T | None, FetchError]:
        """Run the query with params (default: the previous params)."""
        if self._closed:
            return Failure(UnknownError(f"query handle for {self.endpoint.name} is closed"))

        params = params or self._params or RequestParams()
        self._params = params

        prepared = self._client.prepare(self.endpoint, params)
        if not is_successful(prepared):
            self.error.set(prepared.failure())
            return prepared

        request = prepared.unwrap()
        self._attach(request.cache_key)

        self._abort = AbortHandle()
        return await self._client.execute(
            request,
            policy=self.options.policy,
            ttl=self.options.ttl,
            abort=self._abort,
            on_data=self.data.set,
            on_error=self.error.set,
            on_state=lambda state: self.loading.set(state == FetchState.LOADING),
        )

    async def refetch(self) -> Result[T | None, FetchError]:
        return await self.trigger(self._params)

    def cancel(self) -> None:
        """Abort the in-flight request, if any."""
        if self._abort is not None:
            self._abort.abort()

    def close(self) -> None:
        """Abort and leave the shared registry entry."""
        self.cancel()
        self._detach()
        self._closed = True

    def _attach(self, cache_key: str) -> None:
        entry_key = self._client.scope.entry_key(self.endpoint.name, cache_key)
        if self._slot is not None and self._slot[0] == entry_key:
            return
        self._detach()
        self._slot = (entry_key, self._client.queries.insert(entry_key, self.data))

    def _detach(self) -> None:
        if self._slot is not None:
            self._client.queries.remove(*self._slot)
            self._slot = None


class ConnectionHandle:
    """One subscriber's view of a shared socket."""

    def __init__(
        self,
        client: "FetchClient",
        endpoint: StreamEndpoint,
        multiplexer: ConnectionMultiplexer,
        subscriber: Subscriber,
    ) -> None:
        self.endpoint = endpoint
        self.subscriber = subscriber
        self._client = client
        self._multiplexer = multiplexer
        self._send_adapter = TypeAdapter(endpoint.send) if endpoint.send is not None else None
        self._slot_id: int | None = client.connections.insert(multiplexer.identity, self)

    @property
    def identity(self) -> str:
        return self._multiplexer.identity

    @property
    def ready_state(self) -> ReadyState:
        return self._multiplexer.ready_state

    async def send(self, payload: Any) -> Result[None, FetchError]:
        """Validate payload against the declared send type and write it."""
        if self._send_adapter is not None:
            try:
                payload = self._send_adapter.validate_python(payload)
            except ValidationError as e:
                return Failure(ParamSerializationError("body", str(e), e))
        return await self._multiplexer.send(payload)

    def close(self) -> None:
        """Unsubscribe; the socket closes when its last subscriber leaves."""
        if self._slot_id is None:
            return
        self._client.connections.remove(self.identity, self._slot_id)
        self._slot_id = None
        self._multiplexer.unsubscribe(self.subscriber)


class FetchClient:
    """
    Runtime behind generated API clients.

    Owns the TTL cache, the slot registries, the HTTP transport and the
    socket multiplexers. Use as an async context manager, or call ``start``
    and ``aclose`` explicitly.

    Examples:
        >>> async with FetchClient("https://api.example.com") as client:
        ...     result = await client.fetch_with_policy(get_todo, RequestParams(path={"id": 7}))
    """

    def __init__(
        self,
        base_url: str | None = None,
        options: ClientOptions | None = None,
        *,
        transport: HttpTransport | None = None,
        middlewares: Sequence[Middleware] = (),
        connector: SocketConnector = websockets_connector,
        scope: SlotScope | None = None,
        metrics: MetricsCollector | None = None,
        clock: Clock = time.time,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize fetch client.

        Args:
            base_url: Base URL of the API (default: settings.base_url)
            options: Cache options (default: built from settings)
            transport: Pre-built HTTP transport
            middlewares: Request middlewares for the default transport
            connector: Socket factory for streaming endpoints
            scope: Slot sharing scope (default: one entry per endpoint name)
            metrics: Optional Prometheus collector
            clock: Time source for cache expiry
            settings: Settings (default: environment)
        """
        self.settings = settings or get_settings()
        self.options = options or ClientOptions.from_settings(self.settings)
        self.base_url = (base_url or self.settings.base_url).rstrip("/")
        self.metrics = metrics
        self.scope = scope or EndpointScope()

        self.cache = TTLCache(
            policy=self.options.resolved_policy,
            default_ttl=self.options.default_ttl,
            sweep_interval=self.options.sweep_interval,
            clock=clock,
            on_sweep=metrics.record_sweep if metrics is not None else None,
        )
        self.transport = transport or HttpTransport(
            self.base_url, timeout=self.settings.request_timeout, middlewares=middlewares
        )
        self.orchestrator = FetchOrchestrator(self.cache, metrics)
        self.coalescer = RequestCoalescer()
        self.queries: SlotRegistry[Signal[Any]] = SlotRegistry()
        self.connections: SlotRegistry[ConnectionHandle] = SlotRegistry()
        self.multiplexers = MultiplexerRegistry(connector, metrics)

        self._decoders: dict[str, ResponseDecoder[Any]] = {}

        logger.info(
            "client_init",
            url=self.base_url,
            policy=self.cache.policy.value,
            ttl=self.cache.default_ttl,
        )

    # ========================================================================
    # Request/response endpoints
    # ========================================================================

    def prepare(self, endpoint: Endpoint, params: RequestParams | None = None) -> Result[PreparedRequest, FetchError]:
        """Validate params, derive the cache key and build the URL."""
        params = params or RequestParams()
        template = join_url(self.base_url, endpoint.path)
        try:
            validated = endpoint.validate(params)
            cache_key = derive_cache_key(
                endpoint.method,
                template,
                validated.path,
                validated.query,
                validated.body,
                namespace=endpoint.name,
                algorithm=self.settings.hash_algorithm,
            )
            url = build_url(template, validated.path, validated.query)
        except FetchError as e:
            logger.warning("prepare_failed", endpoint=endpoint.name, error=e.message)
            return Failure(e)

        return Success(PreparedRequest(endpoint, validated, cache_key, url))

    async def execute(
        self,
        request: PreparedRequest,
        *,
        policy: CachePolicy | None = None,
        ttl: float | None = None,
        abort: AbortHandle | None = None,
        on_data: Callable[[Any], None] | None = None,
        on_error: Callable[[FetchError], None] | None = None,
        on_state: Callable[[FetchState], None] | None = None,
    ) -> Result[Any, FetchError]:
        """Run a prepared request under a cache policy."""
        endpoint = request.endpoint
        resolved = CachePolicy(policy or self.cache.policy)

        async def network() -> Result[str, FetchError]:
            shared = await self.coalescer.run(
                request.cache_key,
                lambda shared_abort: self.transport.request(
                    endpoint.method, request.url, request.params.body, shared_abort
                ),
                abort,
            )
            if shared is None:
                return Failure(NetworkError("request aborted"))
            return shared

        start = time.perf_counter()
        with LogContext(endpoint=endpoint.name, policy=resolved.value):
            result = await self.orchestrator.run(
                request.cache_key,
                resolved,
                network,
                self._decoder(endpoint),
                ttl=ttl,
                on_data=on_data,
                on_error=on_error,
                on_state=on_state,
            )

            if not is_successful(result):
                logger.warning("fetch_failed", error=result.failure().message)

        if self.metrics is not None:
            self.metrics.record_fetch(
                endpoint.name,
                resolved.value,
                "success" if is_successful(result) else "error",
                time.perf_counter() - start,
            )
        return result

    async def fetch_with_policy(
        self,
        endpoint: Endpoint,
        params: RequestParams | None = None,
        *,
        policy: CachePolicy | None = None,
        ttl: float | None = None,
        abort: AbortHandle | None = None,
        on_data: Callable[[Any], None] | None = None,
        on_error: Callable[[FetchError], None] | None = None,
        on_state: Callable[[FetchState], None] | None = None,
    ) -> Result[Any, FetchError]:
        """
        Fetch endpoint under a cache policy.

        Args:
            endpoint: Endpoint descriptor
            params: Path/query/body parameters
            policy: Cache policy (None = the client's default)
            ttl: Cache entry TTL override in seconds
            abort: Abort handle for the network call
            on_data: Receives every published value (cached, then fresh)
            on_error: Receives every error
            on_state: Receives state transitions

        Returns:
            Final value or error; ``Success(None)`` for a CACHE_ONLY miss
        """
        prepared = self.prepare(endpoint, params)
        if not is_successful(prepared):
            if on_error is not None:
                on_error(prepared.failure())
            if on_state is not None:
                on_state(FetchState.ERROR)
            return prepared

        return await self.execute(
            prepared.unwrap(),
            policy=policy,
            ttl=ttl,
            abort=abort,
            on_data=on_data,
            on_error=on_error,
            on_state=on_state,
        )

    async def use_query(
        self,
        endpoint: Endpoint,
        params: RequestParams | None = None,
        options: QueryOptions | None = None,
    ) -> QueryHandle[Any]:
        """
        Create a query handle; with params it is triggered right away.

        Without params the handle stays idle until ``trigger`` is awaited.
        """
        handle: QueryHandle[Any] = QueryHandle(self, endpoint, options)
        if params is not None:
            await handle.trigger(params)
        return handle

    def update(self, endpoint_name: str, value: Any) -> int:
        """
        Push value into every live query sharing the endpoint's entry.

        Returns:
            Number of notified queries
        """
        notified = 0
        for entry_key in self.scope.broadcast_keys(endpoint_name, self.queries):
            for signal in self.queries.payloads(entry_key):
                signal.set(value)
                notified += 1
        logger.debug("query_update", endpoint=endpoint_name, notified=notified)
        return notified

    def invalidate(self, endpoint_name: str) -> int:
        """Drop every cache entry of the endpoint; returns the count."""
        removed = self.cache.remove_namespace(endpoint_name)
        logger.debug("cache_invalidate", endpoint=endpoint_name, removed=removed)
        return removed

    def cache_entries(self) -> list[tuple[str, CacheEntry]]:
        """Snapshot of the cache (diagnostics)."""
        return self.cache.iterate()

    # ========================================================================
    # Streaming endpoints
    # ========================================================================

    def open_connection(
        self,
        endpoint: StreamEndpoint,
        params: RequestParams | None = None,
        *,
        on_open: Callable[[], None] | None = None,
        on_message: Callable[[Any], None] | None = None,
        on_error: Callable[[FetchError], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> Result[ConnectionHandle, FetchError]:
        """
        Subscribe to a streaming endpoint, sharing the socket with every
        other subscriber of the same URL and parameters.

        Must be called from a running event loop.
        """
        params = params or RequestParams()
        template = join_url(ws_base_url(self.base_url), endpoint.path)
        try:
            validated = endpoint.validate(params)
            url = build_url(template, validated.path, validated.query)
            identity = derive_connection_identity(
                "ws", template, validated.path, validated.query, algorithm=self.settings.hash_algorithm
            )
        except FetchError as e:
            logger.warning("open_connection_failed", endpoint=endpoint.name, error=e.message)
            if on_error is not None:
                on_error(e)
            return Failure(e)

        multiplexer = self.multiplexers.get_or_create(identity, str(url), endpoint.message_type)
        subscriber = Subscriber(on_open=on_open, on_message=on_message, on_error=on_error, on_close=on_close)
        handle = ConnectionHandle(self, endpoint, multiplexer, subscriber)
        multiplexer.subscribe(subscriber)
        return Success(handle)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def start(self) -> None:
        """Start the periodic cache sweep."""
        self.cache.start()

    async def aclose(self) -> None:
        """Stop the sweep, close every socket and the HTTP client."""
        await self.cache.stop()
        await self.multiplexers.close_all()
        self.connections.clear()
        self.queries.clear()
        await self.transport.aclose()
        logger.info("client_closed", url=self.base_url)

    async def __aenter__(self) -> "FetchClient":
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def _decoder(self, endpoint: Endpoint) -> ResponseDecoder[Any]:
        decoder = self._decoders.get(endpoint.name)
        if decoder is None:
            decoder = self._decoders[endpoint.name] = ResponseDecoder(endpoint.response)
        return decoder


__all__ = [
    "FetchClient",
    "QueryHandle",
    "QueryOptions",
    "ConnectionHandle",
    "PreparedRequest",
]
