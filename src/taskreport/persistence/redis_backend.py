"""Redis cache for schema snapshots and the statistics invalidation keys."""

from __future__ import annotations

import json
import logging
from typing import Any

import redis

from taskreport.core.exceptions import CacheError

logger = logging.getLogger(__name__)


class RedisCacheBackend:
    """Production ICacheBackend backed by Redis.

    Keys are stored under ``key_prefix`` so several deployments can share one
    Redis database. Values are text; ``get_json``/``set_json`` handle the JSON
    snapshots kept by the schema provider.
    """

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "") -> None:
        self._prefix = key_prefix
        self._client = redis.Redis(host=host, port=port, db=db, decode_responses=True)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(self._key(key))
        except redis.RedisError as exc:
            raise CacheError(f"Redis GET failed for key={key!r}: {exc}") from exc

    def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            self._client.setex(self._key(key), ttl, value)
        except redis.RedisError as exc:
            raise CacheError(f"Redis SETEX failed for key={key!r}: {exc}") from exc

    def delete(self, *keys: str) -> None:
        """Remove keys in a single round trip; missing keys are ignored."""
        if not keys:
            return
        try:
            self._client.delete(*(self._key(k) for k in keys))
        except redis.RedisError as exc:
            raise CacheError(f"Redis DELETE failed for keys={list(keys)!r}: {exc}") from exc

    def get_json(self, key: str) -> Any | None:
        """Decoded JSON value, or ``None`` on a miss or an unreadable entry."""
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable cache entry %s", key)
            self.delete(key)
            return None

    def set_json(self, key: str, ttl: int, value: Any) -> None:
        self.setex(key, ttl, json.dumps(value, ensure_ascii=False))
