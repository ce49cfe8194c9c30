"""Pytest configuration and fixtures."""

import os

import pytest

from fetchkit.core import get_settings
from fetchkit.core.cache import CachePolicy, TTLCache
from fetchkit.monitoring import MetricsCollector
from fetchkit.schema import Endpoint, HttpMethod, StreamEndpoint

from support import Chat, FakeClock, FakeConnector, NewTodo, Ping, Todo, TodoPath, TodoQuery


# ============================================================================
# Pytest Hooks
# ============================================================================

def pytest_configure(config):
    """Configure pytest with environment variables."""
    os.environ["FETCHKIT_BASE_URL"] = "https://api.test"
    os.environ["FETCHKIT_LOG_LEVEL"] = "DEBUG"
    get_settings.cache_clear()


# ============================================================================
# Core Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Simulated clock."""
    return FakeClock()


@pytest.fixture
def cache(clock):
    """TTL cache driven by the simulated clock."""
    return TTLCache(policy=CachePolicy.STALE_WHILE_REVALIDATE, default_ttl=600, clock=clock)


@pytest.fixture
def metrics():
    """Metrics collector with its own registry."""
    return MetricsCollector()


@pytest.fixture
def connector():
    """Fake socket connector."""
    return FakeConnector()


# ============================================================================
# Schema Fixtures
# ============================================================================

@pytest.fixture
def get_todo():
    """GET /todos/{id} -> Todo."""
    return Endpoint("get_todo", HttpMethod.GET, "/todos/{id}", path_params=TodoPath, response=Todo)


@pytest.fixture
def list_todos():
    """GET /todos?page -> list[Todo]."""
    return Endpoint("list_todos", HttpMethod.GET, "/todos", query=TodoQuery, response=list[Todo])


@pytest.fixture
def create_todo():
    """POST /todos -> Todo."""
    return Endpoint("create_todo", HttpMethod.POST, "/todos", body=NewTodo, response=Todo)


@pytest.fixture
def room_stream():
    """WS /rooms/{id} with ping/chat messages."""
    return StreamEndpoint(
        "room",
        "/rooms/{id}",
        path_params=TodoPath,
        messages=(Ping, Chat),
        send=Chat,
    )
