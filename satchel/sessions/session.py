"""
SatchelSessions - Session.

A Session is request-scoped. Its lifecycle:
1. Construction - Resolve the session id from the signed id cookie,
   or generate a fresh one (no store I/O)
2. Initiation - Read the store once, load values, consume flash messages
3. Mutation - Handler reads/writes values and stages flash messages
4. Commit - Regenerate the id if asked, fold staged flash messages,
   then write (modified) or touch (unchanged) the store

Concurrent requests sharing one session id are not coordinated: each
does its own read-modify-write and the last commit wins.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, TYPE_CHECKING

from .core import is_valid_session_id, new_session_id, session_fingerprint
from .faults import (
    SessionNotReadyFault,
    SessionReadonlyFault,
    SessionStoreUnavailableFault,
)
from .values import ReadOnlyValuesStore, ValuesStore

if TYPE_CHECKING:
    from .policy import SessionConfig
    from .stores.base import SessionStore
    from .transport import CookieTransport, HttpContext


logger = logging.getLogger("satchel.sessions")

# Input never replayed by flash_validation_errors()
SENSITIVE_INPUT = ["_csrf", "_method", "password", "password_confirmation"]


def _pick(values: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    keys = set(keys)
    return {key: value for key, value in values.items() if key in keys}


def _omit(values: Mapping[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    keys = set(keys)
    return {key: value for key, value in values.items() if key not in keys}


# ============================================================================
# Session
# ============================================================================

class Session:
    """
    Per-request session state machine.

    States: uninitiated -> initiated (mutable | readonly) -> committed.

    Example:
        >>> session = manager.create(ctx)
        >>> await session.initiate()
        >>> session.put("user.username", "virk")
        >>> session.flash("notification", "Profile updated")
        >>> await session.commit()
    """

    def __init__(
        self,
        ctx: HttpContext,
        config: SessionConfig,
        store: SessionStore,
        transport: CookieTransport,
        event_handlers: list[Callable[[dict[str, Any]], None]] | None = None,
    ):
        """
        Initialize session.

        Args:
            ctx: Request/response pair of the current request
            config: Resolved session configuration
            store: Store instance bound to this request
            transport: Cookie transport for the session id cookie
            event_handlers: Observability callbacks receiving event dicts
        """
        self.ctx = ctx
        self.config = config
        self.store = store
        self.transport = transport
        self._event_handlers = event_handlers if event_handlers is not None else []

        self._values: ValuesStore | None = None
        self._readonly = False
        self._regenerate = False
        self._committed = False

        # Messages flashed by the previous request (read-only)
        self.flash_messages = ReadOnlyValuesStore()
        # Messages staged for the next request
        self.response_flash_messages = ValuesStore()

        session_id = transport.read_session_id(ctx.request, config.cookie_name)
        if session_id and is_valid_session_id(session_id):
            self._session_id = session_id
            self._fresh = False
        else:
            self._session_id = new_session_id()
            self._fresh = True

    # ========================================================================
    # State
    # ========================================================================

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def fresh(self) -> bool:
        """True when no session id cookie came with the request."""
        return self._fresh

    @property
    def initiated(self) -> bool:
        return self._values is not None

    @property
    def readonly(self) -> bool:
        return self._readonly

    @property
    def has_regenerated(self) -> bool:
        return self._regenerate

    @property
    def committed(self) -> bool:
        return self._committed

    @property
    def is_empty(self) -> bool:
        return self._ensure_ready().is_empty

    @property
    def has_been_modified(self) -> bool:
        return self._ensure_ready().has_been_modified

    def _ensure_ready(self) -> ValuesStore:
        if self._values is None:
            raise SessionNotReadyFault()
        return self._values

    def _ensure_mutable(self) -> ValuesStore:
        values = self._ensure_ready()
        if self._readonly:
            raise SessionReadonlyFault()
        return values

    # ========================================================================
    # Initiation
    # ========================================================================

    async def initiate(self, readonly: bool = False) -> None:
        """
        Read the session from the store. Safe to call more than once.

        Args:
            readonly: Load values without consuming flash messages and
                reject every mutation

        Raises:
            SessionStoreUnavailableFault: Store read failed; the session
                stays uninitiated
        """
        if self._values is not None:
            return

        contents = await self.store.read(self._session_id)
        values = ValuesStore.load(contents)

        if not readonly:
            flash_key = self.config.flash_key
            if values.get(flash_key) is not None:
                bag = values.pull(flash_key)
                if isinstance(bag, Mapping):
                    self.flash_messages = ReadOnlyValuesStore(bag)

        self._values = values
        self._readonly = readonly

        logger.debug(
            f"Session initiated: {session_fingerprint(self._session_id)} "
            f"(fresh={self._fresh}, readonly={readonly})"
        )
        self._emit_event("session_initiated")

    # ========================================================================
    # Values
    # ========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        return self._ensure_ready().get(key, default)

    def all(self) -> dict[str, Any]:
        return self._ensure_ready().all()

    def has(self, key: str, check_array_length: bool = True) -> bool:
        return self._ensure_ready().has(key, check_array_length)

    def put(self, key: str, value: Any) -> None:
        self._ensure_mutable().set(key, value)

    def forget(self, key: str) -> None:
        self._ensure_mutable().unset(key)

    def pull(self, key: str, default: Any = None) -> Any:
        return self._ensure_mutable().pull(key, default)

    def increment(self, key: str, steps: int | float = 1) -> None:
        self._ensure_mutable().increment(key, steps)

    def decrement(self, key: str, steps: int | float = 1) -> None:
        self._ensure_mutable().decrement(key, steps)

    def merge(self, values: Mapping[str, Any]) -> None:
        self._ensure_mutable().merge(values)

    def clear(self) -> None:
        self._ensure_mutable().clear()

    # ========================================================================
    # Flash messages
    # ========================================================================

    def flash(self, key: str | Mapping[str, Any], value: Any = None) -> None:
        """
        Stage flash messages for the next request.

        Args:
            key: Message key, or a mapping merged into the staged messages
            value: Message value; falsy values are ignored
        """
        self._ensure_mutable()
        if isinstance(key, Mapping):
            self.response_flash_messages.merge(key)
        elif value:
            self.response_flash_messages.set(key, value)

    def flash_all(self) -> None:
        """Stage the whole original request input."""
        self._ensure_mutable()
        self.response_flash_messages.set("input", self.ctx.request.original())

    def flash_only(self, keys: Iterable[str]) -> None:
        self._ensure_mutable()
        self.response_flash_messages.set("input", _pick(self.ctx.request.original(), keys))

    def flash_except(self, keys: Iterable[str]) -> None:
        self._ensure_mutable()
        self.response_flash_messages.set("input", _omit(self.ctx.request.original(), keys))

    def flash_errors(self, errors: Mapping[str, str | list[str]]) -> None:
        """Stage an error collection under ``errorsBag``."""
        self.flash({"errorsBag": dict(errors)})

    def flash_validation_errors(self, messages: Iterable[Mapping[str, Any]]) -> None:
        """
        Stage validation errors together with the submitted input.

        Args:
            messages: Items shaped like ``{"field": "email", "message": "Required"}``
        """
        errors: dict[str, list[str]] = {}
        for message in messages:
            errors.setdefault(message["field"], []).append(message["message"])

        self.flash_except(SENSITIVE_INPUT)
        self.flash("inputErrorsBag", errors)
        self.flash("errors", errors)

    def reflash(self) -> None:
        """Carry this request's flash messages over to the next one."""
        self._ensure_mutable()
        self.response_flash_messages.set("reflashed", self.flash_messages.all())

    def reflash_only(self, keys: Iterable[str]) -> None:
        self._ensure_mutable()
        self.response_flash_messages.set("reflashed", _pick(self.flash_messages.all(), keys))

    def reflash_except(self, keys: Iterable[str]) -> None:
        self._ensure_mutable()
        self.response_flash_messages.set("reflashed", _omit(self.flash_messages.all(), keys))

    # ========================================================================
    # Regeneration + Commit
    # ========================================================================

    def regenerate(self) -> None:
        """
        Replace the session id at commit time.

        Call after a privilege change (login) to prevent session
        fixation. The old record is destroyed during commit.
        """
        self._ensure_mutable()
        self._regenerate = True

    async def commit(self) -> None:
        """
        Persist the session and refresh the session id cookie.

        - Never initiated: refresh cookie and store expiry only
        - Regenerated: destroy the old record, move values to a new id
        - Modified: write values
        - Unchanged: touch the store

        Raises:
            UnsupportedValueTypeFault: A stored value cannot be encoded
            SessionStoreUnavailableFault: Store write failed
        """
        cookie_name = self.config.cookie_name

        if self._values is None:
            self.transport.write_session_id(self.ctx.response, cookie_name, self._session_id)
            try:
                await self.store.touch(self._session_id)
            except SessionStoreUnavailableFault as fault:
                # initiate() already surfaced the store failure
                logger.warning(f"Session keep-alive failed: {fault}")
            return

        values = self._values

        if not self.response_flash_messages.is_empty:
            staged = self.response_flash_messages.all()
            staged_input = staged.pop("input", None) or {}
            reflashed = staged.pop("reflashed", None) or {}
            values.set(self.config.flash_key, {**reflashed, **staged_input, **staged})

        # Encode before touching the store so a bad value fails cleanly
        payload = values.to_json()

        if self._regenerate:
            old_id = self._session_id
            await self.store.destroy(old_id)
            self._session_id = new_session_id()
            logger.debug(
                f"Session regenerated: {session_fingerprint(old_id)} -> "
                f"{session_fingerprint(self._session_id)}"
            )
            self._emit_event("session_migrated")

        self.transport.write_session_id(self.ctx.response, cookie_name, self._session_id)

        if values.has_been_modified or self._regenerate:
            await self.store.write(self._session_id, payload)
            logger.debug(f"Session written: {session_fingerprint(self._session_id)}")
        else:
            await self.store.touch(self._session_id)
            logger.debug(f"Session touched: {session_fingerprint(self._session_id)}")

        self._committed = True
        self._emit_event("session_committed")

    # ========================================================================
    # Observability
    # ========================================================================

    def _emit_event(self, event_name: str) -> None:
        """
        Emit session event for observability.

        Args:
            event_name: Event name
        """
        event_data = {
            "event": event_name,
            "session_id_hash": session_fingerprint(self._session_id),
            "store": getattr(self.store, "name", type(self.store).__name__),
            "fresh": self._fresh,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        for handler in self._event_handlers:
            try:
                handler(event_data)
            except Exception as e:
                logger.error(f"Event handler error: {e}")

    def __repr__(self) -> str:
        state = "committed" if self._committed else "initiated" if self.initiated else "uninitiated"
        return f"Session({session_fingerprint(self._session_id)}, {state})"
