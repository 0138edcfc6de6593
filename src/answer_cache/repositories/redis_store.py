"""Redis implementation of DurableStore.

Each entry is a JSON string under ``<prefix><cache key>``. Listing uses
SCAN over the prefix, so several caches can share one Redis database.
Satisfies the DurableStore protocol through structural typing.
"""

import json
from typing import Any

import redis

from answer_cache.config import get_redis_client, settings
from answer_cache.exceptions import DurableStoreError


class RedisDurableStore:
    """Redis-backed durable key -> JSON map."""

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        prefix: str | None = None,
    ) -> None:
        """Initialize the Redis durable store.

        Args:
            redis_client: Redis client instance. If None, creates default.
            prefix: Key prefix for every stored entry. Defaults to settings.
        """
        self._client = redis_client or get_redis_client()
        self._prefix = prefix or settings.cache_key_prefix

    @classmethod
    def create(cls, prefix: str | None = None) -> "RedisDurableStore":
        """Factory method to create RedisDurableStore with defaults.

        Args:
            prefix: Key prefix. If None, uses settings.

        Returns:
            Configured RedisDurableStore
        """
        return cls(prefix=prefix)

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    @staticmethod
    def _text(raw: Any) -> str:
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return str(raw)

    def _decode(self, raw: Any) -> dict[str, Any]:
        value = json.loads(self._text(raw))
        if not isinstance(value, dict):
            raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
        return value

    def read(self, key: str) -> dict[str, Any] | None:
        try:
            raw = self._client.get(self._full_key(key))
        except redis.RedisError as e:
            raise DurableStoreError(f"Redis read failed for {key!r}: {e}") from e
        if raw is None:
            return None
        try:
            return self._decode(raw)
        except ValueError as e:
            raise DurableStoreError(f"Corrupt cache value for {key!r}: {e}") from e

    def write(self, key: str, value: dict[str, Any]) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise DurableStoreError(f"Cache value for {key!r} is not JSON-serializable: {e}") from e
        try:
            self._client.set(self._full_key(key), payload)
        except redis.RedisError as e:
            raise DurableStoreError(f"Redis write failed for {key!r}: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            result: int = self._client.delete(self._full_key(key))  # type: ignore[assignment]
        except redis.RedisError as e:
            raise DurableStoreError(f"Redis delete failed for {key!r}: {e}") from e
        return result > 0

    def _scan_keys(self) -> list[str]:
        return [self._text(k) for k in self._client.scan_iter(match=f"{self._prefix}*")]

    def items(self) -> list[tuple[str, dict[str, Any] | None]]:
        try:
            full_keys = self._scan_keys()
            raw_values = self._client.mget(full_keys) if full_keys else []
        except redis.RedisError as e:
            raise DurableStoreError(f"Redis scan failed: {e}") from e

        result: list[tuple[str, dict[str, Any] | None]] = []
        for full_key, raw in zip(full_keys, raw_values):
            if raw is None:
                # Deleted between SCAN and MGET
                continue
            try:
                value: dict[str, Any] | None = self._decode(raw)
            except ValueError:
                value = None
            result.append((full_key[len(self._prefix):], value))
        return result

    def clear(self) -> int:
        try:
            full_keys = self._scan_keys()
            if not full_keys:
                return 0
            result: int = self._client.delete(*full_keys)  # type: ignore[assignment]
        except redis.RedisError as e:
            raise DurableStoreError(f"Redis clear failed: {e}") from e
        return result

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
