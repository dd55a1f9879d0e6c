"""
Storage Factory

Provides a single entry point for obtaining the document store.
The factory pattern lets the services stay agnostic about where the
JSON documents actually live.

Usage:
    from app.services.storage import get_storage

    storage = get_storage()
    coupons = storage.get_coupons()

Environment Switching:
    - ENV_MODE=development → FileStorage (data/*.json)
    - ENV_MODE=staging → RedisStorage
    - ENV_MODE=production → RedisStorage
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.storage.base import BaseStorage
from app.services.storage.file import FileStorage
from app.services.storage.redis import RedisStorage

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage() -> BaseStorage:
    """
    Get the configured document store.

    The instance is cached so every request shares one Redis connection
    pool (or one data directory).

    Returns:
        BaseStorage: FileStorage in development, RedisStorage otherwise
    """
    settings = get_settings()

    if settings.use_redis_storage:
        logger.info(
            f"Storage: Using RedisStorage "
            f"({settings.env_mode.value} mode)"
        )
        return RedisStorage()

    logger.info("Storage: Using FileStorage (development mode)")
    return FileStorage(
        data_directory=settings.data_directory,
        lock_timeout=settings.storage_lock_timeout,
    )


def reset_storage() -> None:
    """
    Clear the cached storage instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_storage.cache_clear()
    logger.debug("Storage cache cleared")


__all__ = [
    "get_storage",
    "reset_storage",
    "BaseStorage",
    "FileStorage",
    "RedisStorage",
]
