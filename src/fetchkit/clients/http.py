"""HTTP Transport"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
from returns.result import Failure, Result, Success

from ..core.errors import (
    FetchError,
    HeaderError,
    HttpError,
    NetworkError,
    ParamSerializationError,
    UnknownError,
    UrlParsingError,
)
from ..core.json import JSONEncodeError, dumps, to_jsonable
from ..core.logging_config import get_logger
from ..query.keys import is_default_value
from ..query.orchestrator import AbortHandle
from ..schema import HttpMethod

logger = get_logger(__name__)

Middleware = Callable[[httpx.Request], Awaitable[None]]


class HttpTransport:
    """
    Sends endpoint requests over a shared httpx.AsyncClient.

    Every failure is mapped onto the fetch error taxonomy and returned as a
    ``Failure``; nothing is raised into the caller.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 10.0,
        middlewares: Sequence[Middleware] = (),
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize transport.

        Args:
            base_url: Base URL endpoint paths are joined to
            timeout: Request timeout in seconds
            middlewares: Async hooks applied to every request, in order
            client: Pre-built client (tests, custom pools)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.middlewares = list(middlewares)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

        logger.info("transport_init", url=self.base_url)

    def build_request(
        self,
        method: HttpMethod | str,
        url: httpx.URL | str,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Result[httpx.Request, FetchError]:
        """
        Build a request; the JSON body and its Content-Type are only set for
        non-default bodies.
        """
        method = HttpMethod.parse(method)

        content: bytes | None = None
        request_headers = dict(headers or {})
        if not is_default_value(body):
            try:
                content = dumps(to_jsonable(body)).encode("utf-8")
            except JSONEncodeError as e:
                return Failure(ParamSerializationError("body", str(e), e))
            request_headers["Content-Type"] = "application/json"

        try:
            request = self._client.build_request(
                method.value, url, content=content, headers=request_headers
            )
        except (TypeError, ValueError, UnicodeEncodeError) as e:
            return Failure(HeaderError(f"invalid request headers: {e}", e))
        except httpx.InvalidURL as e:
            return Failure(UrlParsingError(f"Invalid URL: {url}", e))

        return Success(request)

    async def _apply_middlewares(self, request: httpx.Request) -> Result[httpx.Request, FetchError]:
        for middleware in self.middlewares:
            try:
                await middleware(request)
            except (TypeError, ValueError, UnicodeEncodeError) as e:
                return Failure(HeaderError(f"middleware rejected request: {e}", e))
        return Success(request)

    async def send(
        self, request: httpx.Request, abort: AbortHandle | None = None
    ) -> Result[str, FetchError]:
        """
        Send request and return the response body text.

        Args:
            request: Built request
            abort: Optional abort handle; aborting yields NetworkError

        Returns:
            Body text, or NetworkError / HttpError / HeaderError / UnknownError
        """
        prepared = await self._apply_middlewares(request)
        if isinstance(prepared, Failure):
            return prepared

        if abort is not None and abort.aborted:
            return Failure(NetworkError("request aborted"))

        try:
            response = await self._send_abortable(request, abort)
        except httpx.TransportError as e:
            logger.warning("http_error", url=str(request.url), error=str(e))
            return Failure(NetworkError(str(e) or type(e).__name__, e))
        except Exception as e:
            logger.error("request_failed", url=str(request.url), error=str(e), exc_info=True)
            return Failure(UnknownError(str(e), e))

        if response is None:
            logger.debug("request_aborted", url=str(request.url))
            return Failure(NetworkError("request aborted"))

        if not response.is_success:
            logger.warning("http_status", url=str(request.url), status=response.status_code)
            return Failure(HttpError(response.status_code, response.reason_phrase))

        return Success(response.text)

    async def _send_abortable(
        self, request: httpx.Request, abort: AbortHandle | None
    ) -> httpx.Response | None:
        """Race the request against the abort handle; None if aborted first."""
        if abort is None:
            return await self._client.send(request)

        request_task = asyncio.ensure_future(self._client.send(request))
        abort_task = asyncio.ensure_future(abort.wait())
        try:
            done, _ = await asyncio.wait(
                {request_task, abort_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            abort_task.cancel()
            if not request_task.done():
                request_task.cancel()

        if request_task in done:
            return request_task.result()

        try:
            await request_task
        except (asyncio.CancelledError, httpx.HTTPError):
            pass
        return None

    async def request(
        self,
        method: HttpMethod | str,
        url: httpx.URL | str,
        body: Any = None,
        abort: AbortHandle | None = None,
    ) -> Result[str, FetchError]:
        """Build and send in one step."""
        built = self.build_request(method, url, body)
        if isinstance(built, Failure):
            return built
        return await self.send(built.unwrap(), abort)

    async def aclose(self) -> None:
        """Close HTTP client (only if this transport created it)."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


__all__ = ["HttpTransport", "Middleware"]
