"""
SatchelSessions - Session storage abstraction.

Defines the SessionStore protocol and the BaseStore helper shared by the
built-in stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol


# ============================================================================
# SessionStore Protocol
# ============================================================================

class SessionStore(Protocol):
    """
    Abstract session storage interface.

    Stores are responsible ONLY for persistence - they do NOT know about
    flash messages, regeneration or dirtiness. That belongs to Session.

    Values passed to ``write`` and returned from ``read`` are the
    codec-encoded form produced by ``ValuesStore.to_json()``.

    All methods are async.
    """

    async def read(self, session_id: str) -> dict[str, Any] | None:
        """
        Read session values.

        Args:
            session_id: Session identifier

        Returns:
            Encoded values, or None when the id is unknown, expired or
            its payload fails verification

        Raises:
            SessionStoreUnavailableFault: Store is unavailable
        """
        ...

    async def write(self, session_id: str, values: dict[str, Any]) -> None:
        """
        Persist session values, replacing any previous record.

        Raises:
            SessionStoreUnavailableFault: Store is unavailable
        """
        ...

    async def destroy(self, session_id: str) -> None:
        """
        Remove every trace of the session. Unknown ids are a no-op.

        Raises:
            SessionStoreUnavailableFault: Store is unavailable
        """
        ...

    async def touch(self, session_id: str) -> None:
        """
        Extend the record's lifetime without changing its content.

        Raises:
            SessionStoreUnavailableFault: Store is unavailable
        """
        ...


# ============================================================================
# BaseStore
# ============================================================================

class BaseStore(ABC):
    """
    Base class for stores.

    ``write`` of an empty payload destroys the record instead of storing
    an empty one, for every store that inherits from this class. Reading
    a destroyed record and reading an empty one both yield an empty
    session, so the two are indistinguishable to callers.
    """

    name: str = "base"

    async def write(self, session_id: str, values: dict[str, Any]) -> None:
        if not values:
            await self.destroy(session_id)
            return
        await self._write(session_id, values)

    @abstractmethod
    async def _write(self, session_id: str, values: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def read(self, session_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        ...

    @abstractmethod
    async def touch(self, session_id: str) -> None:
        ...
