"""
Key-value persistence port with Redis and in-process implementations
"""
import json
import logging
import time
from typing import Any, Dict, Optional, Protocol, Tuple

import redis

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """get/set/delete of string values by key"""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        ...

    def delete(self, key: str) -> bool:
        ...


class InMemoryKeyValueStore:
    """Dictionary-backed store; expired entries are dropped on read"""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)
        return True

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._data)


class RedisKeyValueStore:
    """Redis-backed store; errors are logged and treated as misses"""

    def __init__(self, client: "redis.Redis"):
        self.redis_client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5
        )
        return cls(client)

    def ping(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {str(e)}")
            return False

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis_client.get(key)
            if value is not None:
                logger.debug(f"Cache hit: {key}")
            return value
        except redis.RedisError as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        try:
            if ttl:
                self.redis_client.setex(key, ttl, value)
            else:
                self.redis_client.set(key, value)
            logger.debug(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except redis.RedisError as e:
            logger.error(f"Cache set error: {str(e)}")
            return False

    def delete(self, key: str) -> bool:
        try:
            self.redis_client.delete(key)
            return True
        except redis.RedisError as e:
            logger.error(f"Cache delete error: {str(e)}")
            return False


def create_key_value_store(redis_url: Optional[str]) -> KeyValueStore:
    """Connect to Redis when configured and reachable, else use process memory"""
    if redis_url:
        store = RedisKeyValueStore.from_url(redis_url)
        if store.ping():
            logger.info("Redis connection established")
            return store
        logger.warning("Redis unreachable. Falling back to in-memory key-value store.")
    return InMemoryKeyValueStore()


def get_json(store: KeyValueStore, key: str) -> Optional[Any]:
    """Read and decode a JSON value; undecodable values count as missing"""
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Discarding undecodable value at {key}: {str(e)}")
        return None


def set_json(store: KeyValueStore, key: str, value: Any, ttl: Optional[int] = None) -> bool:
    return store.set(key, json.dumps(value), ttl)
