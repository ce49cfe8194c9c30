"""Deterministic key derivation and URL building.

Cache keys identify one request's response (method, URL template and every
parameter, body included). Connection identities identify one logical
socket and ignore bodies. Both hash canonical JSON, so structurally-equal
inputs map to the same string regardless of dict insertion order.
"""

import re
from typing import Any

import httpx

from ..core.errors import ParamSerializationError, UrlParsingError
from ..core.hash import Algorithm, hash_parts
from ..core.json import JSONEncodeError, canonical_dumps, dumps, to_jsonable
from ..schema import HttpMethod

_PLACEHOLDER = re.compile(r"\{[A-Za-z_][A-Za-z0-9_]*\}")
_URL_SCHEMES = {"http", "https", "ws", "wss"}


def _canonical(part: str, value: Any) -> bytes:
    try:
        return canonical_dumps(value)
    except JSONEncodeError as e:
        raise ParamSerializationError(part, str(e), e) from e


def derive_cache_key(
    method: HttpMethod | str,
    url: str,
    path_params: Any = None,
    query_params: Any = None,
    body: Any = None,
    *,
    namespace: str | None = None,
    algorithm: Algorithm = Algorithm.XXHASH64,
) -> str:
    """
    Derive the cache key of one request.

    Args:
        method: HTTP method
        url: URL template (before placeholder substitution)
        path_params: Path parameters (model, dataclass, mapping or None)
        query_params: Query parameters
        body: Request body
        namespace: Endpoint name prefixed to the digest
        algorithm: Digest algorithm

    Returns:
        ``"<namespace>:<hex>"`` or ``"<hex>"`` without namespace

    Raises:
        ParamSerializationError: If a part cannot be canonically serialized
    """
    digest = hash_parts(
        HttpMethod.parse(method).value.encode("utf-8"),
        url.encode("utf-8"),
        _canonical("path", path_params),
        _canonical("query", query_params),
        _canonical("body", body),
        algorithm=algorithm,
    )
    return f"{namespace}:{digest}" if namespace else digest


def derive_connection_identity(
    kind: str,
    url: str,
    path_params: Any = None,
    query_params: Any = None,
    *,
    algorithm: Algorithm = Algorithm.XXHASH64,
) -> str:
    """
    Derive the identity of one logical streaming connection.

    Body-independent: every subscriber with the same URL and parameters
    shares the identity.
    """
    digest = hash_parts(
        kind.encode("utf-8"),
        url.encode("utf-8"),
        _canonical("path", path_params),
        _canonical("query", query_params),
        algorithm=algorithm,
    )
    return f"{kind}:{digest}"


def join_url(base_url: str, path: str) -> str:
    """Join base URL and endpoint path with exactly one slash."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def ws_base_url(base_url: str) -> str:
    """Map an http(s) base URL onto its ws(s) counterpart; ws(s) URLs pass through."""
    if base_url.startswith("https://"):
        return "wss://" + base_url[len("https://") :]
    if base_url.startswith("http://"):
        return "ws://" + base_url[len("http://") :]
    return base_url


def _as_mapping(part: str, params: Any) -> dict[str, Any]:
    value = to_jsonable(params)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ParamSerializationError(part, f"expected an object, got {type(value).__name__}")
    return value


def is_default_value(params: Any) -> bool:
    """True for None, empty containers and models equal to their default instance."""
    if params is None:
        return True
    if isinstance(params, (dict, list, tuple, str)) and not params:
        return True
    try:
        return params == type(params)()
    except Exception:
        return False


def _path_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return dumps(value)


def _query_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return dumps(value)


def _query_items(query_params: Any) -> list[tuple[str, str]]:
    items: list[tuple[str, str]] = []
    for key, value in _as_mapping("query", query_params).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            items.extend((key, _query_value(item)) for item in value)
        else:
            items.append((key, _query_value(value)))
    return items


def build_url(template: str, path_params: Any = None, query_params: Any = None) -> httpx.URL:
    """
    Substitute ``{name}`` placeholders and append the query string.

    String path values are inserted verbatim, other values as their JSON
    text. A query string is only added when the query parameters differ from
    their default.

    Raises:
        ParamSerializationError: If path/query parameters cannot be serialized
        UrlParsingError: If the result is not a valid absolute URL
    """
    url_text = template
    try:
        for name, value in _as_mapping("path", path_params).items():
            url_text = url_text.replace(f"{{{name}}}", _path_value(value))
    except JSONEncodeError as e:
        raise ParamSerializationError("path", str(e), e) from e

    if unresolved := _PLACEHOLDER.search(url_text):
        raise UrlParsingError(f"Invalid URL: unresolved placeholder {unresolved.group(0)} in {url_text}")

    params = None
    if not is_default_value(query_params):
        try:
            params = _query_items(query_params)
        except JSONEncodeError as e:
            raise ParamSerializationError("query", str(e), e) from e

    try:
        url = httpx.URL(url_text, params=params) if params else httpx.URL(url_text)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise UrlParsingError(f"Invalid URL: {url_text}", e) from e

    if url.scheme not in _URL_SCHEMES or not url.host:
        raise UrlParsingError(f"Invalid URL: {url_text}")

    return url


__all__ = [
    "derive_cache_key",
    "derive_connection_identity",
    "build_url",
    "join_url",
    "ws_base_url",
    "is_default_value",
]
