"""
SatchelSessions - Redis store.

Each session is one signed string key with a native TTL:

    SETEX <prefix><session_id> <age_seconds> <signed envelope>

``touch`` re-arms the TTL with EXPIRE, so Redis itself evicts idle
sessions.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from ..core import session_fingerprint
from ..faults import SessionStoreUnavailableFault
from ..policy import RedisStoreConfig
from ..signing import MessageSigner
from .base import BaseStore

logger = logging.getLogger("satchel.sessions.stores.redis")


class RedisConnection:
    """
    Lazily created ``redis.asyncio`` client.

    One connection owns one connection pool; the SessionManager keeps a
    single instance and hands it to every request-scoped RedisStore.
    """

    def __init__(self, config: RedisStoreConfig, client: Optional[Any] = None):
        """
        Args:
            config: Redis connection settings
            client: Pre-built async client (tests, shared application pool)
        """
        self.config = config
        self._client = client

    async def get_client(self) -> Any:
        """Return the client, connecting on first use."""
        if self._client is not None:
            return self._client

        try:
            import redis.asyncio as aioredis
        except ImportError:
            raise ImportError(
                "Redis session store requires 'redis' package. "
                "Install with: pip install redis[hiredis]"
            )

        self._client = aioredis.from_url(
            self.config.url,
            max_connections=self.config.max_connections,
            socket_timeout=self.config.socket_timeout,
            decode_responses=False,
        )
        logger.info(f"Redis session store connected: {self.config.url}")
        return self._client

    async def close(self) -> None:
        """Close the connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class RedisStore(BaseStore):
    """
    Redis-backed session storage.

    Features:
    - Signed values bound to their session id
    - Server-side expiry via per-key TTL (set on write, refreshed on touch)
    - Shared connection pool through RedisConnection

    Example:
        >>> connection = RedisConnection(RedisStoreConfig(url="redis://cache:6379/1"))
        >>> store = RedisStore(connection, ttl_seconds=7200, signer=signer)
        >>> await store.write("sess_abc", values)
    """

    name = "redis"

    def __init__(
        self,
        connection: RedisConnection,
        ttl_seconds: int,
        signer: MessageSigner,
        key_prefix: str | None = None,
    ):
        self.connection = connection
        self.ttl_seconds = max(1, ttl_seconds)
        self.signer = signer
        self.key_prefix = connection.config.key_prefix if key_prefix is None else key_prefix

    def _full_key(self, session_id: str) -> str:
        """Build prefixed key."""
        return f"{self.key_prefix}{session_id}"

    async def _call(self, operation: Callable[[Any], Awaitable[Any]]) -> Any:
        client = await self.connection.get_client()
        try:
            return await operation(client)
        except Exception as e:
            logger.error(f"Redis session store error: {e}")
            raise SessionStoreUnavailableFault(store_name=self.name, cause=str(e)) from e

    async def read(self, session_id: str) -> dict[str, Any] | None:
        key = self._full_key(session_id)
        raw = await self._call(lambda client: client.get(key))
        if raw is None:
            return None

        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                return None

        values = self.signer.unsign(raw, purpose=session_id)
        if not isinstance(values, dict):
            logger.warning(
                f"Redis session for {session_fingerprint(session_id)} failed verification"
            )
            return None

        return values

    async def _write(self, session_id: str, values: dict[str, Any]) -> None:
        key = self._full_key(session_id)
        signed = self.signer.sign(values, purpose=session_id)
        await self._call(lambda client: client.setex(key, self.ttl_seconds, signed))

    async def destroy(self, session_id: str) -> None:
        key = self._full_key(session_id)
        await self._call(lambda client: client.delete(key))

    async def touch(self, session_id: str) -> None:
        key = self._full_key(session_id)
        await self._call(lambda client: client.expire(key, self.ttl_seconds))
