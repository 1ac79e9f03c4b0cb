"""
SatchelSessions - Session manager.

The SessionManager is app-scoped (one per process). It owns:
- the resolved SessionConfig
- the store registry (name -> factory)
- shared resources: memory table, Redis connection, signer, encrypter

and creates one Session bound to one fresh store per request.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TYPE_CHECKING

from .client import SessionClient
from .faults import UnknownSessionStoreFault
from .policy import SessionConfig
from .session import Session
from .signing import MessageEncrypter, MessageSigner
from .stores import CookieStore, FileStore, MemoryStore, RedisConnection, RedisStore
from .transport import CookieTransport, InMemoryContext

if TYPE_CHECKING:
    from .stores.base import SessionStore
    from .transport import HttpContext

logger = logging.getLogger("satchel.sessions.manager")

StoreFactory = Callable[[SessionConfig, Optional["HttpContext"]], "SessionStore"]


# ============================================================================
# StoreRegistry
# ============================================================================

class StoreRegistry:
    """
    Name -> factory registry of session stores.

    A factory receives the resolved config and the request context (None
    when no request is available) and returns a SessionStore.

    Example:
        >>> registry = StoreRegistry()
        >>> registry.extend("dynamo", lambda config, ctx: DynamoStore(config.stores["dynamo"]))
        >>> store = registry.create("dynamo", config, ctx)
    """

    def __init__(self):
        self._factories: dict[str, StoreFactory] = {}

    def extend(self, name: str, factory: StoreFactory) -> StoreRegistry:
        if name in self._factories:
            logger.debug(f"Replacing session store factory '{name}'")
        self._factories[name] = factory
        return self

    def has(self, name: str) -> bool:
        return name in self._factories

    def names(self) -> list[str]:
        return sorted(self._factories)

    def create(self, name: str, config: SessionConfig, ctx: HttpContext | None) -> SessionStore:
        """
        Instantiate the store registered under ``name``.

        Raises:
            UnknownSessionStoreFault: If no factory is registered
        """
        factory = self._factories.get(name)
        if factory is None:
            raise UnknownSessionStoreFault(name, available=self._factories)
        return factory(config, ctx)


# ============================================================================
# SessionManager
# ============================================================================

class SessionManager:
    """
    Creates request-scoped sessions from one resolved configuration.

    Built-in stores: memory, file, redis, cookie.

    Example:
        >>> manager = SessionManager(define_config(store="redis", secret=key))
        >>> session = manager.create(ctx)
        >>> await session.initiate()
        >>> ...
        >>> await session.commit()
    """

    def __init__(
        self,
        config: SessionConfig,
        *,
        registry: StoreRegistry | None = None,
        memory_table: dict[str, dict[str, Any]] | None = None,
        redis_client: Any = None,
    ):
        """
        Initialize session manager.

        Args:
            config: Resolved session configuration
            registry: Store registry (defaults to one seeded with built-ins)
            memory_table: Table shared by MemoryStore instances
            redis_client: Pre-built async Redis client for RedisStore
        """
        self.config = config
        self.registry = registry or StoreRegistry()
        self.memory_table = memory_table if memory_table is not None else {}

        self.signer = MessageSigner(config.secret)
        self.encrypter = MessageEncrypter(config.secret)
        self.transport = CookieTransport(self.signer, self.encrypter, config.cookie)
        self.redis = RedisConnection(config.redis, client=redis_client)

        self._event_handlers: list[Callable[[dict[str, Any]], None]] = []

        self._register_builtin_stores()

    def _register_builtin_stores(self) -> None:
        defaults: dict[str, StoreFactory] = {
            "memory": lambda config, ctx: MemoryStore(self.memory_table),
            "file": lambda config, ctx: FileStore(
                config.file.location, config.age_seconds, self.signer
            ),
            "redis": lambda config, ctx: RedisStore(
                self.redis, config.age_seconds, self.signer
            ),
            "cookie": lambda config, ctx: CookieStore(ctx or InMemoryContext(), self.transport),
        }
        for name, factory in defaults.items():
            if not self.registry.has(name):
                self.registry.extend(name, factory)

    def extend(self, name: str, factory: StoreFactory) -> SessionManager:
        """Register an additional store under ``name``."""
        self.registry.extend(name, factory)
        return self

    def is_enabled(self) -> bool:
        return self.config.enabled

    def on_event(self, handler: Callable[[dict[str, Any]], None]) -> None:
        """
        Register event handler for observability.

        Args:
            handler: Callable that receives event dict
        """
        self._event_handlers.append(handler)

    def create_store(self, ctx: HttpContext | None = None) -> SessionStore:
        """
        Build the configured store for one request.

        Raises:
            UnknownSessionStoreFault: If the configured store is not registered
        """
        return self.registry.create(self.config.store, self.config, ctx)

    def create(self, ctx: HttpContext) -> Session:
        """Create a session for the request, bound to a fresh store."""
        return Session(
            ctx,
            self.config,
            self.create_store(ctx),
            self.transport,
            event_handlers=self._event_handlers,
        )

    def client(self) -> SessionClient:
        """Session client that reads/writes this manager's store without HTTP."""
        return SessionClient(self.config, self.create_store, self.transport)

    async def shutdown(self) -> None:
        """Release shared store resources."""
        await self.redis.close()
