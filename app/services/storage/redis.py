"""
Redis Storage Implementation

Keeps every document as one JSON string value in Redis.
Used in staging and production (ENV_MODE=staging|production).

Atomic updates use Redis optimistic transactions: the key is WATCHed,
read, transformed and written inside MULTI/EXEC. If another client
writes the key in between, EXEC fails with WatchError and the whole
read-modify-write is replayed against the fresh value, up to
max_retries times.
"""

import copy
import json
import logging
from typing import Any, Optional

import redis
from redis.exceptions import RedisError, WatchError

from app.core.config import get_settings
from app.core.exceptions import StorageUnavailableError
from app.services.storage.base import BaseStorage, Mutator

logger = logging.getLogger(__name__)


class RedisStorage(BaseStorage):
    """
    Redis document store.

    Attributes:
        client: redis.Redis client (decode_responses=True)
        key_prefix: Namespace prepended to every document name
        max_retries: Optimistic transaction attempts per update
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        url: Optional[str] = None,
        key_prefix: Optional[str] = None,
        max_retries: Optional[int] = None,
    ):
        settings = get_settings()
        self.client = client or redis.Redis.from_url(
            url or settings.redis_url,
            decode_responses=True,
            socket_timeout=5,
        )
        self.key_prefix = settings.redis_key_prefix if key_prefix is None else key_prefix
        self.max_retries = max_retries or settings.redis_max_retries

        logger.info(
            f"RedisStorage initialized "
            f"(prefix={self.key_prefix!r}, max_retries={self.max_retries})"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "redis"

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @staticmethod
    def _decode(raw: Optional[str], default: Any) -> Any:
        if raw is None:
            return copy.deepcopy(default)
        return json.loads(raw)

    def read_document(self, key: str, default: Any) -> Any:
        try:
            return self._decode(self.client.get(self._key(key)), default)
        except RedisError as e:
            logger.error(f"Redis read failed for '{key}': {e}")
            raise StorageUnavailableError(f"Could not read '{key}' from Redis")

    def write_document(self, key: str, value: Any) -> None:
        try:
            self.client.set(self._key(key), json.dumps(value, ensure_ascii=False))
        except RedisError as e:
            logger.error(f"Redis write failed for '{key}': {e}")
            raise StorageUnavailableError(f"Could not write '{key}' to Redis")

    def update_document(self, key: str, mutator: Mutator, default: Any) -> Any:
        redis_key = self._key(key)

        for attempt in range(1, self.max_retries + 1):
            try:
                with self.client.pipeline() as pipe:
                    pipe.watch(redis_key)
                    current = self._decode(pipe.get(redis_key), default)
                    updated, result = mutator(current)
                    pipe.multi()
                    pipe.set(redis_key, json.dumps(updated, ensure_ascii=False))
                    pipe.execute()
                    return result
            except WatchError:
                logger.debug(f"Concurrent write on '{key}', retrying ({attempt}/{self.max_retries})")
            except RedisError as e:
                logger.error(f"Redis update failed for '{key}': {e}")
                raise StorageUnavailableError(f"Could not update '{key}' in Redis")

        logger.error(f"Gave up updating '{key}' after {self.max_retries} conflicting writes")
        raise StorageUnavailableError(
            f"Too many concurrent updates on '{key}', please retry"
        )

    def health_check(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
