"""Policy-driven fetch orchestration.

Given a cache policy, a cache key and a network function, decide whether to
read the cache, go to the network, or both, and in which order. Successful
network responses are parsed, written back to the cache, then decoded into
the declared response type.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Generic, TypeVar, get_args, get_origin

from pydantic import TypeAdapter, ValidationError
from returns.pipeline import is_successful
from returns.result import Failure, Result, Success

from ..core.cache import CachePolicy, TTLCache
from ..core.errors import FetchError, ResponseDeserializationError, ResponseParseError
from ..core.json import JSONParseError, parse_json
from ..core.logging_config import get_logger
from ..monitoring.metrics import MetricsCollector

logger = get_logger(__name__)

T = TypeVar("T")

NetworkFn = Callable[[], Awaitable[Result[str, FetchError]]]


class FetchState(str, Enum):
    """Lifecycle of one orchestrated fetch."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class AbortHandle:
    """
    Per-invocation cancellation flag checked by the transport.

    Aborting never rolls back a cache write that already happened.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def abort(self) -> None:
        self._event.set()

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Block until aborted."""
        await self._event.wait()


class ResponseDecoder(Generic[T]):
    """Decodes parsed JSON into the declared response type."""

    def __init__(self, response_type: Any = None):
        """
        Args:
            response_type: Declared type; None accepts any JSON value as-is
        """
        self.response_type = Any if response_type is None else response_type
        self._adapter: TypeAdapter[T] = TypeAdapter(self.response_type)

    def decode(self, value: Any) -> Result[T, FetchError]:
        try:
            return Success(self._adapter.validate_python(value))
        except ValidationError as e:
            return Failure(ResponseDeserializationError(f"{value!r} --- {e}", e))

    def default(self) -> Result[T | None, FetchError]:
        """Default value of the response type, used for empty bodies."""
        declared = self.response_type
        if declared is Any or declared is type(None) or type(None) in get_args(declared):
            return Success(None)

        factory = get_origin(declared) or declared
        try:
            return Success(self._adapter.validate_python(factory()))
        except (TypeError, ValidationError) as e:
            return Failure(
                ResponseDeserializationError(f"empty response has no default for {declared!r}", e)
            )


class _Flight:
    """One shared network call and the callers waiting on it."""

    def __init__(self, task: "asyncio.Future[Any]", abort: AbortHandle) -> None:
        self.task = task
        self.abort = abort
        self.waiters = 0


class RequestCoalescer:
    """
    Share one in-flight network call between concurrent identical requests.

    The shared call gets its own abort handle. Each caller races its own
    handle against the shared result; the shared call is only aborted once
    every waiting caller has given up.
    """

    def __init__(self) -> None:
        self._flights: dict[str, _Flight] = {}

    async def run(
        self,
        key: str,
        factory: Callable[[AbortHandle], Awaitable[T]],
        abort: AbortHandle | None = None,
    ) -> T | None:
        """
        Join (or start) the shared call for key.

        Args:
            key: Request identity
            factory: Starts the network call, given the shared abort handle
            abort: This caller's abort handle

        Returns:
            The shared result, or None if this caller aborted first
        """
        flight = self._flights.get(key)
        if flight is None:
            shared = AbortHandle()
            flight = _Flight(asyncio.ensure_future(factory(shared)), shared)
            self._flights[key] = flight
            flight.task.add_done_callback(lambda _task, key=key, flight=flight: self._forget(key, flight))
        else:
            logger.debug("request_coalesced", key=key)

        flight.waiters += 1
        try:
            if abort is None:
                return await asyncio.shield(flight.task)

            abort_task = asyncio.ensure_future(abort.wait())
            try:
                done, _ = await asyncio.wait(
                    {flight.task, abort_task}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                abort_task.cancel()

            if flight.task in done:
                return flight.task.result()
            logger.debug("coalesced_caller_aborted", key=key, waiters=flight.waiters - 1)
            return None
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                self._forget(key, flight)
                flight.abort.abort()

    def _forget(self, key: str, flight: _Flight) -> None:
        if self._flights.get(key) is flight:
            del self._flights[key]

    def in_flight(self, key: str) -> bool:
        return key in self._flights

    def __len__(self) -> int:
        return len(self._flights)


class FetchOrchestrator:
    """
    Runs one fetch under a cache policy.

    | Policy                 | Cache read              | Network        | Cache write        |
    |------------------------|-------------------------|----------------|--------------------|
    | STALE_WHILE_REVALIDATE | emit immediately if hit | always         | on success         |
    | CACHE_THEN_NETWORK     | emit and stop if hit    | only on miss   | on success         |
    | NETWORK_ONLY           | never                   | always         | on success         |
    | CACHE_ONLY             | read only               | never          | never              |
    """

    def __init__(self, cache: TTLCache, metrics: MetricsCollector | None = None):
        self.cache = cache
        self.metrics = metrics

    async def run(
        self,
        key: str,
        policy: CachePolicy | None,
        network_fn: NetworkFn,
        decoder: ResponseDecoder[T],
        *,
        ttl: float | None = None,
        on_data: Callable[[T], None] | None = None,
        on_error: Callable[[FetchError], None] | None = None,
        on_state: Callable[[FetchState], None] | None = None,
    ) -> Result[T | None, FetchError]:
        """
        Orchestrate one fetch.

        Args:
            key: Cache key of the request
            policy: Cache policy (None = the cache's default)
            network_fn: Performs the request, returning the raw body text
            decoder: Response type decoder
            ttl: Optional TTL override for the cache write
            on_data: Receives every emitted value (cached, then fresh)
            on_error: Receives every error (cached decode, network, parse)
            on_state: Receives state transitions

        Returns:
            Final outcome; ``Success(None)`` for a CACHE_ONLY miss
        """
        policy = CachePolicy(policy or self.cache.policy)

        def publish(result: Result[Any, FetchError]) -> None:
            if is_successful(result):
                if on_data is not None:
                    on_data(result.unwrap())
            elif on_error is not None:
                on_error(result.failure())

        def finish(result: Result[Any, FetchError]) -> Result[Any, FetchError]:
            if on_state is not None:
                on_state(FetchState.SUCCESS if is_successful(result) else FetchState.ERROR)
            return result

        if on_state is not None:
            on_state(FetchState.LOADING)

        cached: Result[T, FetchError] | None = None
        if policy != CachePolicy.NETWORK_ONLY:
            entry = self.cache.get_entry(key)
            if self.metrics is not None:
                if entry is None:
                    self.metrics.record_cache_miss()
                else:
                    self.metrics.record_cache_hit()
            if entry is not None:
                cached = decoder.decode(entry.value)
                publish(cached)

        if policy == CachePolicy.CACHE_ONLY:
            return finish(cached if cached is not None else Success(None))

        if policy == CachePolicy.CACHE_THEN_NETWORK and cached is not None:
            return finish(cached)

        fresh = await self._from_network(key, network_fn, decoder, ttl)
        publish(fresh)
        return finish(fresh)

    async def _from_network(
        self,
        key: str,
        network_fn: NetworkFn,
        decoder: ResponseDecoder[T],
        ttl: float | None,
    ) -> Result[T | None, FetchError]:
        raw = await network_fn()
        if not is_successful(raw):
            return raw

        text = raw.unwrap()
        if not text.strip():
            return decoder.default()

        try:
            value = parse_json(text)
        except JSONParseError as e:
            return Failure(ResponseParseError(f"{text!r} --- {e}", e))

        self.cache.set(key, value, ttl)
        return decoder.decode(value)


__all__ = [
    "FetchState",
    "AbortHandle",
    "ResponseDecoder",
    "RequestCoalescer",
    "FetchOrchestrator",
    "NetworkFn",
]
