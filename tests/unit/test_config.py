"""Configuration tests."""

import pytest
from pydantic import ValidationError

from fetchkit.core import get_settings
from fetchkit.core.cache import CachePolicy
from fetchkit.core.config import ClientOptions, Settings
from fetchkit.core.hash import Algorithm


def test_settings_defaults(monkeypatch):
    """Test default settings load correctly."""
    monkeypatch.delenv("FETCHKIT_BASE_URL", raising=False)
    settings = Settings(_env_file=None)

    assert settings.base_url == "http://localhost:8000"
    assert settings.request_timeout == 10.0
    assert settings.cache_policy == CachePolicy.STALE_WHILE_REVALIDATE
    assert settings.cache_ttl_ms == 600_000
    assert settings.sweep_interval_ms == 60_000
    assert settings.hash_algorithm == Algorithm.XXHASH64
    assert settings.json_logs is False


def test_settings_from_environment(monkeypatch):
    """Test FETCHKIT_ prefixed variables override defaults."""
    monkeypatch.setenv("FETCHKIT_CACHE_POLICY", "network_only")
    monkeypatch.setenv("FETCHKIT_CACHE_TTL_MS", "1500")
    monkeypatch.setenv("FETCHKIT_HASH_ALGORITHM", "sha256")

    settings = Settings(_env_file=None)

    assert settings.cache_policy == CachePolicy.NETWORK_ONLY
    assert settings.cache_ttl_ms == 1500
    assert settings.hash_algorithm == Algorithm.SHA256


def test_settings_validation():
    """Test settings validation."""
    # Valid settings
    assert Settings(request_timeout=0.5).request_timeout == 0.5

    with pytest.raises(ValidationError):
        Settings(request_timeout=0)

    with pytest.raises(ValidationError):
        Settings(cache_ttl_ms=-1)


def test_get_settings_cached():
    """Test settings are built once."""
    assert get_settings() is get_settings()


def test_client_options_defaults():
    """Test unset options resolve to runtime defaults."""
    options = ClientOptions()

    assert options.resolved_policy == CachePolicy.STALE_WHILE_REVALIDATE
    assert options.default_ttl == 600
    assert options.sweep_interval == 60


def test_client_options_milliseconds():
    """Test millisecond options convert to seconds."""
    options = ClientOptions(policy=CachePolicy.CACHE_ONLY, default_ttl_ms=1500, sweep_interval_ms=250)

    assert options.resolved_policy == CachePolicy.CACHE_ONLY
    assert options.default_ttl == 1.5
    assert options.sweep_interval == 0.25

    with pytest.raises(ValidationError):
        ClientOptions(default_ttl_ms=0)


def test_client_options_from_settings():
    """Test options built from settings."""
    settings = Settings(_env_file=None, cache_policy=CachePolicy.CACHE_THEN_NETWORK, cache_ttl_ms=2000)
    options = ClientOptions.from_settings(settings)

    assert options.resolved_policy == CachePolicy.CACHE_THEN_NETWORK
    assert options.default_ttl == 2.0
