# =============================================================================
# IDENTITY API SCAFFOLD - TOKEN DENYLIST STORAGE
# =============================================================================
# File: session/storage.py
# Description: Redis-backed denylist of access tokens revoked before expiry
# =============================================================================

from typing import Optional
import logging

from db.adapters.redis_adapter import RedisAdapter


logger = logging.getLogger(__name__)


class TokenDenylist:
    """
    ┌─────────────────────────────────────────────────────────────────────────┐
    │                    ACCESS TOKEN DENYLIST                                 │
    │  Remembers the jti of signed-out access tokens until they expire        │
    └─────────────────────────────────────────────────────────────────────────┘

    Key Pattern:
        - denylist:{token_jti} → "revoked", TTL = remaining token lifetime

    Without Redis the denylist is inert: logout still revokes refresh tokens
    and cookie sessions, but an already issued access token stays usable
    until it expires.
    """

    PREFIX = "denylist:"

    def __init__(self, redis: Optional[RedisAdapter]):
        self._redis = redis

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def revoke(self, token_jti: str, ttl: int) -> bool:
        """
        Deny a token for ``ttl`` seconds.

        Returns:
            bool: True if the token was recorded
        """
        if self._redis is None:
            logger.debug("Redis unavailable; access token %s not denylisted", token_jti)
            return False
        if ttl <= 0:
            return False
        return await self._redis.set(f"{self.PREFIX}{token_jti}", "revoked", ttl=ttl)

    async def is_revoked(self, token_jti: str) -> bool:
        if self._redis is None:
            return False
        return await self._redis.exists(f"{self.PREFIX}{token_jti}")
