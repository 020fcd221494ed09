"""Redis client and the option store built on top of it"""
import copy
import redis
import json
import logging
from typing import Any, Callable, Optional, Tuple, TypeVar

from stripe_cli_demo.core.config import settings
from stripe_cli_demo.core.exceptions import StorageUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Lazy initialization - no connection at import time
_client = None


def get_redis_client():
    """Get or create Redis client (lazy initialization)

    This prevents connection attempts during import, allowing mocks to be applied first.
    """
    global _client
    if _client is None:
        _client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


class RedisOptionStore:
    """Key/value option storage in Redis

    Values are stored JSON-encoded under ``<prefix>:<key>``. All Redis
    failures are raised as StorageUnavailableError.
    """

    def __init__(self, client, prefix: Optional[str] = None):
        self.client = client
        self.prefix = prefix or settings.OPTION_PREFIX

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    @staticmethod
    def _decode(raw: Optional[str], default: Any) -> Any:
        if raw is None:
            return copy.deepcopy(default)
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.error(f"Discarding undecodable option value: {raw[:100]!r}")
            return copy.deepcopy(default)

    def get(self, key: str, default: Any = None) -> Any:
        """Get an option value, or default when unset"""
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Failed to read option {key}: {e}")
            raise StorageUnavailableError(str(e)) from e
        return self._decode(raw, default)

    def set(self, key: str, value: Any) -> None:
        """Store an option value"""
        try:
            self.client.set(self._key(key), json.dumps(value))
        except redis.RedisError as e:
            logger.error(f"Failed to write option {key}: {e}")
            raise StorageUnavailableError(str(e)) from e

    def delete(self, key: str) -> None:
        """Remove an option"""
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Failed to delete option {key}: {e}")
            raise StorageUnavailableError(str(e)) from e

    def update(
        self,
        key: str,
        mutate: Callable[[Any], Tuple[Any, T]],
        default: Any = None,
    ) -> T:
        """Atomically read-modify-write an option

        ``mutate`` receives the current value (or ``default``) and returns
        ``(new_value, result)``. It runs inside WATCH/MULTI/EXEC and is called
        again if another writer touched the key in between, so it must not
        have side effects. Returns ``result`` from the successful attempt.
        """
        redis_key = self._key(key)
        outcome = {}

        def _transaction(pipe):
            current = self._decode(pipe.get(redis_key), default)
            new_value, outcome["result"] = mutate(current)
            pipe.multi()
            pipe.set(redis_key, json.dumps(new_value))

        try:
            self.client.transaction(_transaction, redis_key)
        except redis.RedisError as e:
            logger.error(f"Failed to update option {key}: {e}")
            raise StorageUnavailableError(str(e)) from e
        return outcome["result"]

    def ping(self) -> bool:
        """Check the connection"""
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            raise StorageUnavailableError(str(e)) from e
