"""Redis-backed token cache.

Keys are ``<CACHE_KEY_PREFIX><short_token>`` and values are the bare
original URL. An empty string is stored on purpose for tokens the store
does not know (negative caching); ``get`` hands it back as ``""`` so the
caller can tell it apart from a missing key (``None``).

Key Behaviours
===============
- One TTL per cache instance, used for positive and negative entries alike.
- Redis errors and timeouts surface as CacheError; the caller decides
  whether they matter (the workflows treat them as best-effort).
"""

import asyncio

import redis.asyncio as redis
from redis.exceptions import RedisError

from shortener.config import get_settings
from shortener.exceptions import CacheError
from shortener.ports import URLCache

__all__ = ["NEGATIVE_CACHE_SENTINEL", "RedisURLCache"]

settings = get_settings()

NEGATIVE_CACHE_SENTINEL = ""


class RedisURLCache(URLCache):
    def __init__(
        self,
        client: redis.Redis,
        ttl: int = settings.CACHE_TTL_SECONDS,
        prefix: str = settings.CACHE_KEY_PREFIX,
        timeout: float = settings.CACHE_TIMEOUT_SECONDS,
    ) -> None:
        assert client is not None, "client must not be None"
        assert ttl > 0, f"ttl must be positive, got {ttl!r}"
        self._client = client
        self._ttl = ttl
        self._prefix = prefix
        self._timeout = timeout

    @property
    def ttl(self) -> int:
        return self._ttl

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        try:
            async with asyncio.timeout(self._timeout):
                return await self._client.get(self._key(key))
        except (RedisError, TimeoutError) as exc:
            raise CacheError(f"cache get failed for {key!r}: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        try:
            async with asyncio.timeout(self._timeout):
                await self._client.set(self._key(key), value, ex=self._ttl)
        except (RedisError, TimeoutError) as exc:
            raise CacheError(f"cache set failed for {key!r}: {exc}") from exc
