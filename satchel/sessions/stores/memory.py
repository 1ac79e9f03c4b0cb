"""
SatchelSessions - In-memory store.
"""

from __future__ import annotations

import copy
from typing import Any

from .base import BaseStore


class MemoryStore(BaseStore):
    """
    In-memory session storage for development and testing.

    The backing table is passed in by its owner (usually the
    SessionManager) so every request-scoped MemoryStore sees the same
    data for as long as the owner lives. Records never expire on their
    own.

    NOT suitable for production (no persistence across restarts, not
    shared between processes).

    Example:
        >>> table = {}
        >>> await MemoryStore(table).write("sess_a", {"n": {"t": "Number", "d": 1}})
        >>> await MemoryStore(table).read("sess_a")
        {'n': {'t': 'Number', 'd': 1}}
    """

    name = "memory"

    def __init__(self, table: dict[str, dict[str, Any]] | None = None):
        self.table = table if table is not None else {}

    async def read(self, session_id: str) -> dict[str, Any] | None:
        values = self.table.get(session_id)
        return copy.deepcopy(values) if values is not None else None

    async def _write(self, session_id: str, values: dict[str, Any]) -> None:
        self.table[session_id] = copy.deepcopy(values)

    async def destroy(self, session_id: str) -> None:
        self.table.pop(session_id, None)

    async def touch(self, session_id: str) -> None:
        """No-op: memory records have no freshness to extend."""
