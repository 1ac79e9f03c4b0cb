"""
Shared test fixtures and helpers for Satchel test suite.
"""

import pytest
from typing import Any, Dict, Optional

from satchel.sessions.manager import SessionManager
from satchel.sessions.policy import define_config
from satchel.sessions.transport import InMemoryContext


SECRET = "test-secret-key-that-is-long-enough-1234"


# ============================================================================
# Fake Redis
# ============================================================================


class FakeRedis:
    """
    In-process stand-in for a ``redis.asyncio`` client.

    Records TTLs instead of expiring keys; set ``fail`` to make every
    command raise a connection error.
    """

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.ttls: Dict[str, int] = {}
        self.commands: list = []
        self.fail = False
        self.closed = False

    def _record(self, *command):
        self.commands.append(command)
        if self.fail:
            raise ConnectionError("Connection refused")

    async def get(self, key: str) -> Optional[bytes]:
        self._record("GET", key)
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._record("SETEX", key, ttl)
        self.data[key] = value.encode("utf-8") if isinstance(value, str) else value
        self.ttls[key] = ttl
        return True

    async def delete(self, key: str) -> int:
        self._record("DEL", key)
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    async def expire(self, key: str, ttl: int) -> bool:
        self._record("EXPIRE", key, ttl)
        if key not in self.data:
            return False
        self.ttls[key] = ttl
        return True

    async def aclose(self):
        self.closed = True


# ============================================================================
# Helpers
# ============================================================================


def make_ctx(
    manager: SessionManager,
    session_id: Optional[str] = None,
    input: Optional[Dict[str, Any]] = None,
) -> InMemoryContext:
    """Build a request context carrying a signed session id cookie."""
    cookies = {}
    if session_id is not None:
        cookies[manager.config.cookie_name] = manager.transport.sign_session_id(
            manager.config.cookie_name, session_id
        )
    return InMemoryContext.with_cookies(cookies, input)


def make_manager(store: str = "memory", **options) -> SessionManager:
    redis_client = options.pop("redis_client", None)
    options.setdefault("secret", SECRET)
    return SessionManager(define_config(store=store, **options), redis_client=redis_client)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def secret():
    return SECRET


@pytest.fixture
def config():
    return define_config(store="memory", secret=SECRET)


@pytest.fixture
def manager(config):
    return SessionManager(config)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_manager(fake_redis):
    return make_manager("redis", redis_client=fake_redis)


@pytest.fixture
def file_manager(tmp_path):
    return make_manager("file", file={"location": str(tmp_path / "sessions")})


@pytest.fixture
def cookie_manager():
    return make_manager("cookie")
