"""
Bitrix Cache - Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a singleton configuration instance for the runtime.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import BitrixCacheConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_config_instance: BitrixCacheConfig | None = None


def _env_list(name: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> BitrixCacheConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in the working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated BitrixCacheConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    if env_file:
        env_path = Path(env_file)
    else:
        env_path = Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    # Auto-detect engine: Redis if REDIS_URL is set, else files
    redis_url = os.getenv("REDIS_URL")
    engine = "redis" if redis_url else "files"

    try:
        config_dict = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "cache": {
                "engine": os.getenv("CACHE_ENGINE", engine),
                "default_ttl": int(os.getenv("CACHE_DEFAULT_TTL", "3600")),
                "base_dir": os.getenv("CACHE_BASE_DIR", "/bitrix/cache"),
                "init_dir": os.getenv("CACHE_INIT_DIR", ""),
                "falsy_as_miss": os.getenv("CACHE_FALSY_AS_MISS", "true").lower() == "true",
                "allowed_classes": _env_list("CACHE_ALLOWED_CLASSES"),
                "files_root": os.getenv("CACHE_FILES_ROOT", "."),
                "max_size": int(os.getenv("CACHE_MAX_SIZE", "1000")),
                "redis_url": redis_url,
                "redis_prefix": os.getenv("REDIS_PREFIX", "bitrix"),
                "redis_max_connections": int(os.getenv("REDIS_MAX_CONNECTIONS", "10")),
                "redis_socket_timeout": int(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
            },
        }
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid numeric setting in environment: {e}",
            details={"error": str(e)},
        ) from e

    try:
        _config_instance = BitrixCacheConfig(**config_dict)  # type: ignore[arg-type]
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment})",
            extra={"environment": _config_instance.environment, "cache_engine": _config_instance.cache.engine},
        )
        return _config_instance
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(), "config_dict_keys": list(config_dict.keys())},
            exc_info=True,
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": e.errors()},
        ) from e


def get_config() -> BitrixCacheConfig:
    """
    Get the current configuration instance.

    Loads it from the environment on first access.
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> BitrixCacheConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded BitrixCacheConfig instance
    """
    return load_config(env_file=env_file, reload=True)


def reset_config() -> None:
    """Drop the loaded configuration. Used by tests."""
    global _config_instance
    _config_instance = None


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger."""
    if level is None:
        level = str(get_config().log_level)
    logging.basicConfig(level=level, format=LOG_FORMAT)
