# =============================================================================
# IDENTITY API SCAFFOLD - REDIS ADAPTER
# =============================================================================
# File: db/adapters/redis_adapter.py
# Description: Redis adapter backing the access-token denylist and the
#              request rate limiter
# =============================================================================

from typing import Any, Optional

from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError

from db.base import IRedisAdapter
from core.config import settings
from core.exceptions import RedisConnectionError


class RedisAdapter(IRedisAdapter):
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    REDIS ADAPTER                                         │
    │  Thin async wrapper around redis-py with pooled connections             │
    └─────────────────────────────────────────────────────────────────────────┘

    Key Patterns:
        - denylist:{token_jti}     → Revoked access token marker
        - rate_limit:{ip}:{scope}  → Rate limit counter
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        **kwargs: Any
    ):
        """
        Args:
            redis_url: Optional Redis URL, defaults to settings.redis_url
            **kwargs: Additional redis-py options
                - max_connections: int - Pool size (default: 10)
                - socket_timeout: float - Socket timeout (default: 5.0)
                - socket_connect_timeout: float - Connection timeout (default: 5.0)
        """
        self._redis_url = redis_url or settings.redis_url
        self._options = {
            "max_connections": 10,
            "socket_timeout": 5.0,
            "socket_connect_timeout": 5.0,
            "retry_on_timeout": True,
            "decode_responses": True,  # Return strings instead of bytes
            **kwargs,
        }

        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[Redis] = None
        self._is_connected = False

    @classmethod
    def from_client(cls, client: Redis) -> "RedisAdapter":
        """
        Wrap an already-built client (e.g. fakeredis in tests).

        The adapter does not own a pool in this mode.
        """
        adapter = cls()
        adapter._client = client
        adapter._is_connected = True
        return adapter

    async def connect(self) -> None:
        """
        Create the connection pool and verify connectivity.

        Raises:
            RedisConnectionError: If the server cannot be reached
        """
        if self._is_connected:
            return

        try:
            self._pool = ConnectionPool.from_url(self._redis_url, **self._options)
            self._client = Redis(connection_pool=self._pool)
            await self._client.ping()
            self._is_connected = True
        except RedisError as exc:
            await self.disconnect()
            raise RedisConnectionError() from exc

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

        if self._pool:
            await self._pool.disconnect()
            self._pool = None

        self._is_connected = False

    def _ensure_connected(self) -> Redis:
        if not self._client or not self._is_connected:
            raise RuntimeError("Redis not connected. Call connect() first.")
        return self._client

    # =========================================================================
    # STRING OPERATIONS
    # =========================================================================

    async def get(self, key: str) -> Optional[str]:
        client = self._ensure_connected()
        return await client.get(key)

    async def set(
        self,
        key: str,
        value: str,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set string value with optional TTL in seconds.
        """
        client = self._ensure_connected()
        if ttl:
            return bool(await client.setex(key, ttl, value))
        return bool(await client.set(key, value))

    async def delete(self, key: str) -> bool:
        client = self._ensure_connected()
        return await client.delete(key) > 0

    async def exists(self, key: str) -> bool:
        client = self._ensure_connected()
        return await client.exists(key) > 0

    async def incr(self, key: str) -> int:
        client = self._ensure_connected()
        return await client.incr(key)

    async def ttl(self, key: str) -> int:
        """TTL in seconds, -1 if no TTL, -2 if key doesn't exist."""
        client = self._ensure_connected()
        return await client.ttl(key)

    async def expire(self, name: str, ttl: int) -> bool:
        client = self._ensure_connected()
        return bool(await client.expire(name, ttl))

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    async def check_health(self) -> bool:
        client = self._ensure_connected()
        return bool(await client.ping())

    @property
    def is_connected(self) -> bool:
        return self._is_connected

