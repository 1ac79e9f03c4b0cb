"""
Session stores (sessions/stores/)

Tests the memory, file, Redis and cookie stores against the shared
store contract, plus each store's own behavior.
"""

import os
import time
import pytest

from satchel.sessions.core import new_session_id
from satchel.sessions.faults import SessionStoreUnavailableFault
from satchel.sessions.policy import CookieOptions, RedisStoreConfig
from satchel.sessions.signing import MessageEncrypter, MessageSigner
from satchel.sessions.stores import (
    BaseStore,
    CookieStore,
    FileStore,
    MemoryStore,
    RedisConnection,
    RedisStore,
)
from satchel.sessions.transport import CookieTransport, InMemoryContext

from conftest import SECRET, FakeRedis


VALUES = {"user": {"t": "Object", "d": {"age": {"t": "Number", "d": 22}}}}


def make_signer():
    return MessageSigner(SECRET)


def make_transport():
    return CookieTransport(MessageSigner(SECRET), MessageEncrypter(SECRET), CookieOptions(max_age=60))


# ============================================================================
# BaseStore
# ============================================================================

class RecordingStore(BaseStore):
    name = "recording"

    def __init__(self):
        self.calls = []

    async def read(self, session_id):
        return None

    async def _write(self, session_id, values):
        self.calls.append(("write", session_id))

    async def destroy(self, session_id):
        self.calls.append(("destroy", session_id))

    async def touch(self, session_id):
        self.calls.append(("touch", session_id))


class TestBaseStore:

    @pytest.mark.asyncio
    async def test_empty_write_destroys(self):
        store = RecordingStore()
        await store.write("sess_a", {})
        assert store.calls == [("destroy", "sess_a")]

    @pytest.mark.asyncio
    async def test_non_empty_write(self):
        store = RecordingStore()
        await store.write("sess_a", VALUES)
        assert store.calls == [("write", "sess_a")]

    def test_cannot_instantiate_without_operations(self):
        with pytest.raises(TypeError):
            BaseStore()


# ============================================================================
# Shared contract
# ============================================================================

class StoreContract:
    """Behavior every store shares; subclasses provide ``make_store``."""

    def make_store(self, tmp_path, ctx):
        raise NotImplementedError

    async def reopen(self, store):
        return store

    @pytest.mark.asyncio
    async def test_read_unknown(self, tmp_path):
        store = self.make_store(tmp_path, InMemoryContext())
        assert await store.read(new_session_id()) is None

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        ctx = InMemoryContext()
        store = self.make_store(tmp_path, ctx)
        session_id = new_session_id()
        await store.write(session_id, VALUES)
        store = await self.reopen(store)
        assert await store.read(session_id) == VALUES

    @pytest.mark.asyncio
    async def test_destroy(self, tmp_path):
        ctx = InMemoryContext()
        store = self.make_store(tmp_path, ctx)
        session_id = new_session_id()
        await store.write(session_id, VALUES)
        store = await self.reopen(store)
        await store.destroy(session_id)
        store = await self.reopen(store)
        assert await store.read(session_id) is None

    @pytest.mark.asyncio
    async def test_destroy_unknown_is_noop(self, tmp_path):
        store = self.make_store(tmp_path, InMemoryContext())
        await store.destroy(new_session_id())

    @pytest.mark.asyncio
    async def test_empty_write_removes_record(self, tmp_path):
        ctx = InMemoryContext()
        store = self.make_store(tmp_path, ctx)
        session_id = new_session_id()
        await store.write(session_id, VALUES)
        store = await self.reopen(store)
        await store.write(session_id, {})
        store = await self.reopen(store)
        assert await store.read(session_id) is None


# ============================================================================
# MemoryStore
# ============================================================================

class TestMemoryStore(StoreContract):

    def make_store(self, tmp_path, ctx):
        return MemoryStore({})

    @pytest.mark.asyncio
    async def test_shared_table(self):
        table = {}
        await MemoryStore(table).write("sess_a", VALUES)
        assert await MemoryStore(table).read("sess_a") == VALUES

    @pytest.mark.asyncio
    async def test_isolated_copies(self):
        store = MemoryStore({})
        payload = {"n": {"t": "Number", "d": 1}}
        await store.write("sess_a", payload)
        payload["n"]["d"] = 2
        read = await store.read("sess_a")
        read["n"]["d"] = 3
        assert await store.read("sess_a") == {"n": {"t": "Number", "d": 1}}

    @pytest.mark.asyncio
    async def test_touch_is_noop(self):
        store = MemoryStore({})
        await store.touch("sess_missing")
        assert store.table == {}


# ============================================================================
# FileStore
# ============================================================================

class TestFileStore(StoreContract):

    def make_store(self, tmp_path, ctx):
        return FileStore(tmp_path / "sessions", age_seconds=60, signer=make_signer())

    @pytest.mark.asyncio
    async def test_file_layout(self, tmp_path):
        store = self.make_store(tmp_path, None)
        await store.write("sess_abc", VALUES)
        path = tmp_path / "sessions" / "sess_abc.txt"
        assert path.exists()
        # Signed, not encrypted
        assert "." in path.read_text()
        assert list((tmp_path / "sessions").iterdir()) == [path]

    @pytest.mark.asyncio
    async def test_expired_file_reads_as_missing(self, tmp_path):
        store = self.make_store(tmp_path, None)
        await store.write("sess_old", VALUES)
        path = tmp_path / "sessions" / "sess_old.txt"
        old = time.time() - 120
        os.utime(path, (old, old))
        assert await store.read("sess_old") is None
        assert path.exists()

    @pytest.mark.asyncio
    async def test_touch_refreshes_mtime(self, tmp_path):
        store = self.make_store(tmp_path, None)
        await store.write("sess_old", VALUES)
        path = tmp_path / "sessions" / "sess_old.txt"
        old = time.time() - 120
        os.utime(path, (old, old))
        await store.touch("sess_old")
        assert await store.read("sess_old") == VALUES

    @pytest.mark.asyncio
    async def test_touch_missing_is_noop(self, tmp_path):
        store = self.make_store(tmp_path, None)
        await store.touch("sess_missing")
        assert not (tmp_path / "sessions" / "sess_missing.txt").exists()

    @pytest.mark.asyncio
    async def test_file_copied_to_other_id_is_rejected(self, tmp_path):
        store = self.make_store(tmp_path, None)
        await store.write("sess_a", VALUES)
        directory = tmp_path / "sessions"
        (directory / "sess_b.txt").write_text((directory / "sess_a.txt").read_text())
        assert await store.read("sess_b") is None

    @pytest.mark.asyncio
    async def test_tampered_file_is_rejected(self, tmp_path):
        store = self.make_store(tmp_path, None)
        directory = tmp_path / "sessions"
        directory.mkdir()
        (directory / "sess_a.txt").write_text("forged.content")
        assert await store.read("sess_a") is None

    @pytest.mark.asyncio
    async def test_path_traversal_refused(self, tmp_path):
        store = self.make_store(tmp_path, None)
        with pytest.raises(ValueError):
            await store.read("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_os_error_becomes_fault(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = FileStore(blocker, age_seconds=60, signer=make_signer())
        with pytest.raises(SessionStoreUnavailableFault) as exc:
            await store.write("sess_a", VALUES)
        assert exc.value.retryable is True
        assert exc.value.metadata["store"] == "file"


# ============================================================================
# RedisStore
# ============================================================================

class TestRedisStore(StoreContract):

    def setup_method(self):
        self.redis = FakeRedis()

    def make_store(self, tmp_path, ctx):
        connection = RedisConnection(RedisStoreConfig(), client=self.redis)
        return RedisStore(connection, ttl_seconds=7200, signer=make_signer())

    @pytest.mark.asyncio
    async def test_setex_with_prefix_and_ttl(self):
        store = self.make_store(None, None)
        await store.write("sess_a", VALUES)
        assert ("SETEX", "satchel:session:sess_a", 7200) in self.redis.commands
        assert self.redis.ttls["satchel:session:sess_a"] == 7200

    @pytest.mark.asyncio
    async def test_custom_prefix(self):
        connection = RedisConnection(RedisStoreConfig(key_prefix="app:"), client=self.redis)
        store = RedisStore(connection, ttl_seconds=10, signer=make_signer())
        await store.write("sess_a", VALUES)
        assert "app:sess_a" in self.redis.data

    @pytest.mark.asyncio
    async def test_touch_rearms_ttl(self):
        store = self.make_store(None, None)
        await store.write("sess_a", VALUES)
        self.redis.ttls["satchel:session:sess_a"] = 5
        await store.touch("sess_a")
        assert self.redis.ttls["satchel:session:sess_a"] == 7200

    @pytest.mark.asyncio
    async def test_ttl_at_least_one_second(self):
        connection = RedisConnection(RedisStoreConfig(), client=self.redis)
        assert RedisStore(connection, ttl_seconds=0, signer=make_signer()).ttl_seconds == 1

    @pytest.mark.asyncio
    async def test_value_bound_to_session_id(self):
        store = self.make_store(None, None)
        await store.write("sess_a", VALUES)
        self.redis.data["satchel:session:sess_b"] = self.redis.data["satchel:session:sess_a"]
        assert await store.read("sess_b") is None

    @pytest.mark.asyncio
    async def test_connection_error_becomes_fault(self):
        store = self.make_store(None, None)
        self.redis.fail = True
        with pytest.raises(SessionStoreUnavailableFault) as exc:
            await store.read("sess_a")
        assert "Connection refused" in exc.value.message
        assert isinstance(exc.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_close(self):
        connection = RedisConnection(RedisStoreConfig(), client=self.redis)
        await connection.close()
        assert self.redis.closed


# ============================================================================
# CookieStore
# ============================================================================

class TestCookieStore(StoreContract):

    def make_store(self, tmp_path, ctx):
        return CookieStore(ctx, make_transport())

    async def reopen(self, store):
        return CookieStore(store.ctx.next_request(), store.transport)

    @pytest.mark.asyncio
    async def test_cookie_named_after_session_and_encrypted(self):
        ctx = InMemoryContext()
        store = self.make_store(None, ctx)
        await store.write("sess_a", VALUES)
        cookie = ctx.response.cookies["sess_a"]
        assert "user" not in cookie.value
        assert cookie.max_age == 60
        assert cookie.httponly is True

    @pytest.mark.asyncio
    async def test_cookie_for_other_id_is_rejected(self):
        ctx = InMemoryContext()
        store = self.make_store(None, ctx)
        await store.write("sess_a", VALUES)
        value = ctx.response.cookies["sess_a"].value
        forged = CookieStore(InMemoryContext.with_cookies({"sess_b": value}), store.transport)
        assert await forged.read("sess_b") is None

    @pytest.mark.asyncio
    async def test_destroy_only_clears_carried_cookie(self):
        ctx = InMemoryContext()
        store = self.make_store(None, ctx)
        await store.destroy("sess_a")
        assert ctx.response.cookies == {}

        next_ctx = InMemoryContext.with_cookies({"sess_a": "whatever"})
        await CookieStore(next_ctx, store.transport).destroy("sess_a")
        assert next_ctx.response.cookies["sess_a"].deleted

    @pytest.mark.asyncio
    async def test_touch_rewrites_cookie(self):
        ctx = InMemoryContext()
        store = self.make_store(None, ctx)
        await store.write("sess_a", VALUES)

        next_ctx = ctx.next_request()
        await CookieStore(next_ctx, store.transport).touch("sess_a")
        assert "sess_a" in next_ctx.response.cookies
        assert await CookieStore(next_ctx.next_request(), store.transport).read("sess_a") == VALUES

    @pytest.mark.asyncio
    async def test_touch_without_cookie_writes_nothing(self):
        ctx = InMemoryContext()
        await self.make_store(None, ctx).touch("sess_a")
        assert ctx.response.cookies == {}
