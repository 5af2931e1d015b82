"""
Cashbox — Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class StoreBackend(str, Enum):
    """Built-in cache stores."""

    MEMORY = "memory"
    REDIS = "redis"  # Requires redis
    MEMCACHED = "memcached"  # Requires pymemcache


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CacheConfig(BaseModel):
    """Cache store configuration."""

    store: StoreBackend = Field(default=StoreBackend.MEMORY, description="Cache store to use")

    # Redis-specific settings (only used when store=redis)
    redis_url: str | None = Field(default=None, description="Redis connection URL (overrides host/port)")
    redis_host: str = Field(default="localhost", description="Redis host")
    redis_port: int = Field(default=6379, ge=1, le=65535, description="Redis port")
    redis_database: int | None = Field(default=None, ge=0, description="Redis database index to select")
    redis_max_connections: int = Field(default=10, ge=1, description="Redis connection pool size")
    redis_socket_timeout: float = Field(default=5, gt=0, description="Redis socket timeout in seconds")

    # Memcached-specific settings (only used when store=memcached)
    memcached_locations: list[str] = Field(
        default_factory=lambda: ["localhost:11211"],
        description="Memcached servers as host:port",
    )
    memcached_pool_size: int = Field(default=10, ge=1, description="Memcached connections per server")
    memcached_timeout: float = Field(default=5, gt=0, description="Memcached socket timeout in seconds")

    @field_validator("memcached_locations", mode="before")
    @classmethod
    def split_locations(cls, v: Any) -> Any:
        """Accept a comma-separated string of servers."""
        if isinstance(v, str):
            return [location.strip() for location in v.split(",") if location.strip()]
        return v

    @field_validator("memcached_locations")
    @classmethod
    def validate_locations(cls, v: list[str]) -> list[str]:
        """Ensure at least one memcached server is configured."""
        if not v:
            raise ValueError("memcached_locations must name at least one server")
        return v

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)


class CashboxConfig(BaseModel):
    """Root configuration for Cashbox."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_json: bool = Field(default=False, description="Emit logs as JSON lines")

    cache: CacheConfig = Field(default_factory=CacheConfig)

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
