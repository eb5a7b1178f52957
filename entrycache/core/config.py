"""Cache configuration (settings and environment).

Single source of truth for Redis pools, TTL policy and lock tuning. Uses
pydantic-settings with .env support. Values are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Cache settings loaded from environment and .env.

    Every setting has a default; validate_ttl_and_lock rejects values that
    would make the TTL policy or the rebuild lock meaningless.
    """

    # App
    app_name: str = "entrycache"
    app_version: str = "1.0.0"
    debug: bool = False

    # Redis: "default" pool from host/port/db; extra pools by URL
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_pools: dict[str, str] = {}
    redis_max_connections: int = 10
    redis_socket_timeout: float = 5.0

    # TTL policy (seconds). A random 0..cache_ttl_jitter is added on every persist.
    cache_default_ttl: int = 365 * 24 * 60 * 60
    cache_empty_ttl: int = 60
    cache_tombstone_ttl: int = 60
    cache_ttl_jitter: int = 10

    # Rebuild lock
    lock_ttl: int = 5
    lock_max_tries: int = 10
    lock_retry_interval: float = 0.1

    # Optional SQLAlchemy data source
    database_url: str = ""
    database_echo: bool = False

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_ttl_and_lock(self) -> "Settings":
        """Validate TTL and lock settings.

        - cache_default_ttl and jitter must not be negative (a TTL of 0 = no expiry).
        - cache_empty_ttl and cache_tombstone_ttl must be positive; they are
          always sent as SET EX, which Redis rejects for 0.
        - lock_ttl must be positive so a crashed rebuilder cannot wedge a key.
        - lock_max_tries and lock_retry_interval must not be negative.
        """
        for name in ("cache_default_ttl", "cache_ttl_jitter"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("cache_empty_ttl", "cache_tombstone_ttl"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)}")
        if self.lock_ttl <= 0:
            raise ValueError(f"lock_ttl must be > 0, got {self.lock_ttl}")
        if self.lock_max_tries < 0:
            raise ValueError(f"lock_max_tries must be >= 0, got {self.lock_max_tries}")
        if self.lock_retry_interval < 0:
            raise ValueError(
                f"lock_retry_interval must be >= 0, got {self.lock_retry_interval}"
            )
        if "default" in self.redis_pools:
            raise ValueError(
                "redis_pools must not redefine 'default'; use REDIS_HOST/REDIS_PORT/REDIS_DB."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    In tests, call get_settings.cache_clear() before overriding env vars so
    the next get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
