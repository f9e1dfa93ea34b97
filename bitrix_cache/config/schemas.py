"""
Bitrix Cache - Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration is defined here and validated when loaded.
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


class CacheEngineBackend(str, Enum):
    """Supported storage engines."""

    MEMORY = "memory"
    FILES = "files"
    REDIS = "redis"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CacheConfig(BaseModel):
    """Cache facade and engine configuration."""

    engine: CacheEngineBackend = Field(default=CacheEngineBackend.FILES, description="Storage engine to use")
    default_ttl: int = Field(default=3600, description="TTL in seconds used when set() gets no ttl")
    base_dir: str = Field(default="/bitrix/cache", description="First namespace segment")
    init_dir: str = Field(default="", description="Second namespace segment")
    falsy_as_miss: bool = Field(
        default=True,
        description="Return the caller's default when a cached value is falsy",
    )
    allowed_classes: list[str] = Field(
        default_factory=list,
        description="Dotted class paths allowed for object packing",
    )

    # Files engine
    files_root: str = Field(default=".", description="Directory the namespace paths are resolved against")

    # Memory engine
    max_size: int = Field(default=1000, ge=1, description="Max cache entries (memory engine)")

    # Redis engine (only used when engine=redis)
    redis_url: str | None = Field(default=None, validate_default=True, description="Redis connection URL")
    redis_prefix: str = Field(default="bitrix", description="Redis key prefix")
    redis_max_connections: int = Field(default=10, ge=1, description="Redis connection pool size")
    redis_socket_timeout: int = Field(default=5, ge=1, description="Redis socket timeout in seconds")

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str | None, info: Any) -> str | None:
        """Ensure redis_url is provided when engine is redis."""
        engine = info.data.get("engine")
        if engine == CacheEngineBackend.REDIS and not v:
            raise ValueError("redis_url is required when cache engine is 'redis'")
        return v


class BitrixCacheConfig(BaseModel):
    """Root configuration."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    cache: CacheConfig = Field(default_factory=CacheConfig)

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
