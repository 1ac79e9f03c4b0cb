"""
SatchelSessions - Session client.

Prepares or inspects session state without an HTTP server, through the
same store contract a request uses. Meant for tests and synthetic
clients:

    client = manager.client()
    cookie = await client.merge({"user_id": 1}).flash({"notice": "hi"}).commit()
    ctx = InMemoryContext.with_cookies(cookie.cookies)
    session = manager.create(ctx)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, TYPE_CHECKING

from .core import new_session_id, session_fingerprint
from .transport import CookieTransport, InMemoryContext
from .values import ValuesStore

if TYPE_CHECKING:
    from .policy import SessionConfig
    from .stores.base import SessionStore

logger = logging.getLogger("satchel.sessions")


@dataclass
class SessionCookie:
    """
    Cookies a client-prepared session needs on the next request.

    Attributes:
        cookie_name: Name of the session id cookie
        session_id: Plain session id
        signed_session_id: Value to send in the session id cookie
        cookies: Every cookie to send (id cookie plus cookie-store payloads)
    """

    cookie_name: str
    session_id: str
    signed_session_id: str
    cookies: dict[str, str] = field(default_factory=dict)


class SessionClient:
    """
    Drives a session store directly.

    Each client owns a new session id. ``merge``/``flash`` stage values,
    ``commit`` persists them, ``load`` reads a session back.
    """

    def __init__(
        self,
        config: SessionConfig,
        store_factory: Callable[[InMemoryContext], SessionStore],
        transport: CookieTransport,
    ):
        self.config = config
        self.transport = transport
        self._store_factory = store_factory
        self._ctx = InMemoryContext()

        self.session_id = new_session_id()
        self.store = ValuesStore()
        self.flash_store = ValuesStore()

    def merge(self, values: Mapping[str, Any]) -> SessionClient:
        """Merge values into the session."""
        self.store.merge(values)
        return self

    def flash(self, values: Mapping[str, Any]) -> SessionClient:
        """Merge flash messages into the session."""
        self.flash_store.merge(values)
        return self

    async def commit(self) -> SessionCookie:
        """
        Write staged values and flash messages to the store.

        Returns:
            Cookies to attach to the next request
        """
        if not self.flash_store.is_empty:
            self.store.set(self.config.flash_key, self.flash_store.all())

        ctx = self._ctx
        if not self.store.is_empty:
            await self._store_factory(ctx).write(self.session_id, self.store.to_json())
            logger.debug(f"Session client committed {session_fingerprint(self.session_id)}")

        signed = self.transport.sign_session_id(self.config.cookie_name, self.session_id)
        ctx.response.set_cookie(self.config.cookie_name, signed, **self.config.cookie.to_kwargs())
        self._ctx = ctx.next_request()

        return SessionCookie(
            cookie_name=self.config.cookie_name,
            session_id=self.session_id,
            signed_session_id=signed,
            cookies=dict(self._ctx.request.cookies),
        )

    async def destroy(self, session_id: str | None = None) -> None:
        """Remove a session from the store (defaults to this client's session)."""
        ctx = self._ctx
        await self._store_factory(ctx).destroy(session_id or self.session_id)
        self._ctx = ctx.next_request()

    async def load(self, session_id: str | None = None) -> dict[str, Any]:
        """
        Read a session back.

        Returns:
            ``{"values": ..., "flash_messages": ...}``
        """
        contents = await self._store_factory(self._ctx).read(session_id or self.session_id)
        values = ValuesStore.load(contents)
        flash_messages = values.pull(self.config.flash_key, {})
        return {"values": values.all(), "flash_messages": flash_messages}

    def use_cookies(self, cookies: Mapping[str, str]) -> SessionClient:
        """Read cookie-store sessions from these cookies (e.g. a response's Set-Cookie values)."""
        self._ctx = InMemoryContext.with_cookies(cookies)
        return self
