"""Configuration Management."""

from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .cache import CachePolicy, DEFAULT_SWEEP_INTERVAL_SECONDS, DEFAULT_TTL_SECONDS
from .hash import Algorithm


class Settings(BaseSettings):
    """Runtime settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="FETCHKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # Transport
    base_url: str = Field(default="http://localhost:8000", description="Default API base URL")
    request_timeout: float = Field(default=10.0, gt=0, description="HTTP request timeout (seconds)")

    # Caching
    cache_policy: CachePolicy = Field(
        default=CachePolicy.STALE_WHILE_REVALIDATE, description="Default cache policy"
    )
    cache_ttl_ms: int = Field(
        default=int(DEFAULT_TTL_SECONDS * 1000), gt=0, description="Default entry TTL (ms)"
    )
    sweep_interval_ms: int = Field(
        default=int(DEFAULT_SWEEP_INTERVAL_SECONDS * 1000), gt=0, description="Cache sweep period (ms)"
    )
    hash_algorithm: Algorithm = Field(default=Algorithm.XXHASH64, description="Cache key digest")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    json_logs: bool = Field(default=False, description="Use JSON log format")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class ClientOptions(BaseModel):
    """Constructor options for a fetch client's cache."""

    model_config = ConfigDict(frozen=True)

    policy: CachePolicy | None = None
    default_ttl_ms: int | None = Field(default=None, gt=0)
    sweep_interval_ms: int | None = Field(default=None, gt=0)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ClientOptions":
        """Build options from environment settings."""
        settings = settings or get_settings()
        return cls(
            policy=settings.cache_policy,
            default_ttl_ms=settings.cache_ttl_ms,
            sweep_interval_ms=settings.sweep_interval_ms,
        )

    @property
    def resolved_policy(self) -> CachePolicy:
        return self.policy or CachePolicy.STALE_WHILE_REVALIDATE

    @property
    def default_ttl(self) -> float:
        """Default TTL in seconds."""
        if self.default_ttl_ms is None:
            return DEFAULT_TTL_SECONDS
        return self.default_ttl_ms / 1000

    @property
    def sweep_interval(self) -> float:
        """Sweep interval in seconds."""
        if self.sweep_interval_ms is None:
            return DEFAULT_SWEEP_INTERVAL_SECONDS
        return self.sweep_interval_ms / 1000


__all__ = ["Settings", "get_settings", "ClientOptions"]
