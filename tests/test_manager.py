"""
Session manager (sessions/manager.py)
"""

import pytest

from satchel.sessions.faults import UnknownSessionStoreFault
from satchel.sessions.manager import SessionManager, StoreRegistry
from satchel.sessions.policy import define_config
from satchel.sessions.session import Session
from satchel.sessions.stores import CookieStore, FileStore, MemoryStore, RedisStore
from satchel.sessions.transport import InMemoryContext

from conftest import SECRET, make_manager


class DictStore(MemoryStore):
    name = "dict"


# ============================================================================
# StoreRegistry
# ============================================================================

class TestStoreRegistry:

    def test_extend_and_create(self, config):
        registry = StoreRegistry()
        registry.extend("dict", lambda config, ctx: DictStore())
        assert registry.has("dict")
        assert isinstance(registry.create("dict", config, None), DictStore)

    def test_names_sorted(self):
        registry = StoreRegistry()
        registry.extend("b", lambda config, ctx: None).extend("a", lambda config, ctx: None)
        assert registry.names() == ["a", "b"]

    def test_unknown_store(self, config):
        registry = StoreRegistry()
        registry.extend("memory", lambda config, ctx: MemoryStore())
        with pytest.raises(UnknownSessionStoreFault) as exc:
            registry.create("dynamo", config, None)
        assert exc.value.code == "E_INVALID_SESSION_STORE"
        assert exc.value.message == "Unknown session store 'dynamo'. Registered stores: memory"


# ============================================================================
# SessionManager
# ============================================================================

class TestSessionManager:

    def test_builtin_stores(self, manager):
        assert manager.registry.names() == ["cookie", "file", "memory", "redis"]

    @pytest.mark.parametrize("store,expected", [
        ("memory", MemoryStore),
        ("redis", RedisStore),
        ("cookie", CookieStore),
    ])
    def test_create_store(self, store, expected):
        manager = make_manager(store)
        assert isinstance(manager.create_store(InMemoryContext()), expected)

    def test_create_file_store(self, file_manager, tmp_path):
        store = file_manager.create_store()
        assert isinstance(store, FileStore)
        assert store.location == tmp_path / "sessions"
        assert store.age_seconds == 7200

    def test_memory_table_shared(self, manager):
        assert manager.create_store().table is manager.create_store().table

    def test_redis_connection_shared(self):
        manager = make_manager("redis")
        assert manager.create_store().connection is manager.create_store().connection

    def test_cookie_store_binds_request(self):
        manager = make_manager("cookie")
        ctx = InMemoryContext()
        assert manager.create_store(ctx).ctx is ctx

    def test_create_session(self, manager):
        session = manager.create(InMemoryContext())
        assert isinstance(session, Session)
        assert isinstance(session.store, MemoryStore)

    def test_each_session_gets_fresh_store(self, manager):
        first = manager.create(InMemoryContext())
        second = manager.create(InMemoryContext())
        assert first.store is not second.store

    def test_extend_custom_store(self):
        manager = SessionManager(define_config(store="dict", secret=SECRET, dict={"table": "x"}))
        seen = {}

        def factory(config, ctx):
            seen["config"] = config.store_config()
            return DictStore()

        manager.extend("dict", factory)
        assert isinstance(manager.create(InMemoryContext()).store, DictStore)
        assert seen["config"] == {"table": "x"}

    def test_unknown_configured_store(self):
        manager = SessionManager(define_config(store="dynamo", secret=SECRET))
        with pytest.raises(UnknownSessionStoreFault):
            manager.create(InMemoryContext())

    def test_custom_registry_keeps_overrides(self):
        registry = StoreRegistry().extend("memory", lambda config, ctx: DictStore())
        manager = SessionManager(define_config(store="memory", secret=SECRET), registry=registry)
        assert isinstance(manager.create_store(), DictStore)
        assert manager.registry.has("redis")

    def test_is_enabled(self):
        assert make_manager().is_enabled()
        assert not make_manager(enabled=False).is_enabled()

    @pytest.mark.asyncio
    async def test_shutdown_closes_redis(self, redis_manager, fake_redis):
        await redis_manager.shutdown()
        assert fake_redis.closed

    @pytest.mark.asyncio
    async def test_shutdown_without_redis(self, manager):
        await manager.shutdown()
