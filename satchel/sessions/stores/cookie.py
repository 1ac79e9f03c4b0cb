"""
SatchelSessions - Cookie store.

The whole encoded session travels with the client, encrypted inside a
cookie named after the session id. There is no server-side record.
"""

from __future__ import annotations

import logging
from typing import Any

from ..transport import CookieTransport, HttpContext
from .base import BaseStore

logger = logging.getLogger("satchel.sessions.stores.cookie")


class CookieStore(BaseStore):
    """
    Cookie-embedded session storage.

    - ``read`` decrypts the request cookie; anything that is not a dict
      (missing, tampered, encrypted for another id) reads as None
    - ``destroy`` only clears a cookie the request actually carried
    - ``touch`` rewrites the same value to refresh cookie expiry

    Keep payloads small: browsers cap a cookie at about 4 KB.
    """

    name = "cookie"

    def __init__(self, ctx: HttpContext, transport: CookieTransport):
        self.ctx = ctx
        self.transport = transport

    async def read(self, session_id: str) -> dict[str, Any] | None:
        values = self.transport.read_encrypted(self.ctx.request, session_id)
        if not isinstance(values, dict):
            return None
        return values

    async def _write(self, session_id: str, values: dict[str, Any]) -> None:
        self.transport.write_encrypted(self.ctx.response, session_id, values)

    async def destroy(self, session_id: str) -> None:
        if self.transport.has(self.ctx.request, session_id):
            self.transport.clear(self.ctx.response, session_id)

    async def touch(self, session_id: str) -> None:
        values = await self.read(session_id)
        if values is None:
            logger.debug("No readable session cookie to refresh")
            return
        self.transport.write_encrypted(self.ctx.response, session_id, values)
