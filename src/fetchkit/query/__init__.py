"""
Query runtime
Key derivation, slot sharing and policy-driven fetch orchestration
"""

from .keys import build_url, derive_cache_key, derive_connection_identity, join_url
from .slots import SlotRegistry, SlotScope, EndpointScope, ParamsScope
from .orchestrator import AbortHandle, FetchOrchestrator, FetchState, RequestCoalescer, ResponseDecoder

__all__ = [
    "build_url",
    "derive_cache_key",
    "derive_connection_identity",
    "join_url",
    "SlotRegistry",
    "SlotScope",
    "EndpointScope",
    "ParamsScope",
    "AbortHandle",
    "FetchOrchestrator",
    "FetchState",
    "RequestCoalescer",
    "ResponseDecoder",
]
