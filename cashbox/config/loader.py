"""
Cashbox — Configuration Loader

Loads and validates configuration from environment variables and .env files.
Keeps the loaded configuration for reuse; stores themselves are never global.
"""

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from .schemas import CashboxConfig

logger = logging.getLogger(__name__)

_config_instance: CashboxConfig | None = None


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_optional(name: str) -> str | None:
    value = os.getenv(name)
    return value if value else None


def _build_config_dict() -> dict[str, Any]:
    cache: dict[str, Any] = {
        "store": os.getenv("CACHE_STORE", "memory"),
        "redis_url": _env_optional("REDIS_URL"),
        "redis_host": os.getenv("REDIS_HOST", "localhost"),
        "redis_port": os.getenv("REDIS_PORT", "6379"),
        "redis_database": _env_optional("REDIS_DB"),
        "redis_max_connections": os.getenv("REDIS_MAX_CONNECTIONS", "10"),
        "redis_socket_timeout": os.getenv("REDIS_SOCKET_TIMEOUT", "5"),
        "memcached_pool_size": os.getenv("MEMCACHED_POOL_SIZE", "10"),
        "memcached_timeout": os.getenv("MEMCACHED_TIMEOUT", "5"),
    }
    locations = _env_optional("MEMCACHED_LOCATIONS")
    if locations:
        cache["memcached_locations"] = locations

    return {
        "environment": os.getenv("ENVIRONMENT", "development"),
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
        "log_json": _env_bool("LOG_JSON"),
        "cache": cache,
    }


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> CashboxConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in the working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated CashboxConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except OSError as e:
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    config_dict = _build_config_dict()

    try:
        _config_instance = CashboxConfig(**config_dict)
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(include_url=False)},
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": e.errors(include_url=False)},
        ) from e

    logger.info(
        f"Configuration loaded successfully (environment: {_config_instance.environment})",
        extra={"environment": _config_instance.environment, "cache_store": _config_instance.cache.store},
    )
    return _config_instance


def get_config() -> CashboxConfig:
    """
    Get the current configuration, loading it on first access.
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> CashboxConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded CashboxConfig instance
    """
    return load_config(env_file=env_file, reload=True)
