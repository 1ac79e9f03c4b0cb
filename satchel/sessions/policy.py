"""
SatchelSessions - Configuration types.

Session configuration is resolved once, at startup:
- SessionConfig: Master configuration record
- CookieOptions: Attributes of every cookie the session writes
- FileStoreConfig / RedisStoreConfig: Backend-specific settings

Durations ("2h", "2 hours", 7200) are normalized here so stores never
parse them per request.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any, Literal, Mapping

from .faults import SessionConfigFault


# ============================================================================
# Duration parsing
# ============================================================================

_UNIT_SECONDS = {
    "ms": 0.001, "msec": 0.001, "msecs": 0.001,
    "millisecond": 0.001, "milliseconds": 0.001,
    "": 1, "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
    "w": 604800, "wk": 604800, "wks": 604800, "week": 604800, "weeks": 604800,
    "y": 31557600, "yr": 31557600, "yrs": 31557600, "year": 31557600, "years": 31557600,
}

_AGE_TOKEN = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]*)")
_AGE_SEPARATOR = re.compile(r"[\s,]*")


def parse_age(value: int | float | str | timedelta) -> int:
    """
    Normalize a session age to whole seconds.

    Accepts numbers (seconds), timedeltas, numeric strings and time
    expressions such as "2h", "2 hours", "1d 12h" or "500ms".

    Raises:
        SessionConfigFault: If the value cannot be parsed or is negative
    """
    if isinstance(value, bool):
        raise SessionConfigFault(f"age must be a duration, got {value!r}")

    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if not text:
            raise SessionConfigFault(f"cannot parse age {value!r}")
        seconds = 0.0
        position = 0
        while position < len(text):
            match = _AGE_TOKEN.match(text, position)
            if match is None:
                raise SessionConfigFault(f"cannot parse age {value!r}")
            amount, unit = match.groups()
            if unit not in _UNIT_SECONDS:
                raise SessionConfigFault(f"unknown time unit {unit!r} in age {value!r}")
            seconds += float(amount) * _UNIT_SECONDS[unit]
            position = _AGE_SEPARATOR.match(text, match.end()).end()
    else:
        raise SessionConfigFault(f"age must be a duration, got {type(value).__name__}")

    if seconds < 0:
        raise SessionConfigFault(f"age cannot be negative ({value!r})")

    # A partial second rounds up; zero would emit a deletion cookie
    return math.ceil(round(seconds, 3))


# ============================================================================
# Sub-configs
# ============================================================================

@dataclass(frozen=True)
class CookieOptions:
    """
    Attributes applied to the session id cookie and to cookie-store cookies.

    Attributes:
        path: Cookie path
        domain: Cookie domain
        secure: Secure flag (HTTPS only)
        httponly: HttpOnly flag (prevents XSS)
        samesite: SameSite policy (CSRF protection)
        max_age: Max-Age in seconds; None makes it a browser-session cookie
    """

    path: str = "/"
    domain: str | None = None
    secure: bool = True
    httponly: bool = True
    samesite: Literal["strict", "lax", "none"] | None = "lax"
    max_age: int | None = None

    def to_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``SessionResponse.set_cookie``."""
        return {
            "max_age": self.max_age,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.httponly,
            "samesite": self.samesite,
        }


@dataclass(frozen=True)
class FileStoreConfig:
    """Directory holding one ``<session_id>.txt`` file per session."""

    location: str


@dataclass(frozen=True)
class RedisStoreConfig:
    """
    Connection settings for the Redis store.

    Attributes:
        url: Redis connection URL
        key_prefix: Prepended to every session id
        max_connections: Connection pool size
        socket_timeout: Socket timeout in seconds
    """

    url: str = "redis://localhost:6379/0"
    key_prefix: str = "satchel:session:"
    max_connections: int = 10
    socket_timeout: float = 5.0


# ============================================================================
# SessionConfig
# ============================================================================

@dataclass(frozen=True)
class SessionConfig:
    """
    Resolved session configuration.

    Validation and normalization happen in ``__post_init__`` so a bad
    configuration fails before the first request is served.

    Attributes:
        store: Name of the store to use (memory, file, redis, cookie, or a
            name registered with SessionManager.extend)
        secret: Application secret used for signing and encryption
        enabled: Whether sessions are attached to requests at all
        cookie_name: Name of the cookie holding the session id
        clear_with_browser: Drop the id cookie when the browser closes
        age: Session lifetime (seconds, timedelta or "2 hours"-style string)
        cookie: Cookie attributes
        file: FileStore settings (required when store == "file")
        redis: RedisStore settings
        flash_key: Reserved key holding flash messages
        stores: Settings for custom stores, keyed by store name
        age_seconds: ``age`` normalized to seconds (derived)
        age_milliseconds: ``age`` normalized to milliseconds (derived)

    Example:
        >>> config = SessionConfig(store="redis", secret="s3cr3t", age="2 hours")
        >>> config.age_seconds
        7200
    """

    store: str
    secret: str
    enabled: bool = True
    cookie_name: str = "satchel_session"
    clear_with_browser: bool = False
    age: int | float | str | timedelta = "2h"
    cookie: CookieOptions = field(default_factory=CookieOptions)
    file: FileStoreConfig | None = None
    redis: RedisStoreConfig | None = None
    flash_key: str = "__flash__"
    stores: dict[str, Any] = field(default_factory=dict)

    age_seconds: int = field(init=False)
    age_milliseconds: int = field(init=False)

    def __post_init__(self):
        if not self.store or not isinstance(self.store, str):
            raise SessionConfigFault("Missing store. Set 'store' to the session store name")

        if not self.secret:
            raise SessionConfigFault("Missing secret used to sign and encrypt session data")

        if not self.cookie_name:
            raise SessionConfigFault("Missing cookie_name")

        if self.cookie.samesite not in ("strict", "lax", "none", None):
            raise SessionConfigFault(f"invalid samesite value {self.cookie.samesite!r}")

        if self.store == "file" and (self.file is None or not self.file.location):
            raise SessionConfigFault("file store requires 'file.location'")

        age_seconds = parse_age(self.age)
        object.__setattr__(self, "age_seconds", age_seconds)
        object.__setattr__(self, "age_milliseconds", age_seconds * 1000)

        max_age = None if self.clear_with_browser else age_seconds
        object.__setattr__(self, "cookie", replace(self.cookie, max_age=max_age))

        if self.redis is None:
            object.__setattr__(self, "redis", RedisStoreConfig())

    def store_config(self, name: str | None = None) -> Any:
        """Backend-specific settings for ``name`` (defaults to the configured store)."""
        name = name or self.store
        if name == "file":
            return self.file
        if name == "redis":
            return self.redis
        return self.stores.get(name)

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> SessionConfig:
        """
        Create config from a (possibly nested) dictionary.

        Unknown top-level dict entries named after a store are collected
        into ``stores`` so custom stores can read their own settings.

        Args:
            config: Configuration dict, e.g. the ``sessions`` section
                of a config file

        Returns:
            SessionConfig instance

        Raises:
            SessionConfigFault: If required settings are missing or invalid
        """
        known = {
            "store", "secret", "secret_key", "enabled", "cookie_name",
            "clear_with_browser", "age", "cookie", "file", "redis",
            "flash_key", "stores",
        }

        cookie_config = dict(config.get("cookie") or {})
        cookie_config.pop("max_age", None)
        try:
            cookie = CookieOptions(**cookie_config)
        except TypeError as e:
            raise SessionConfigFault(f"invalid cookie options: {e}") from e

        file_config = config.get("file")
        if isinstance(file_config, str):
            file_config = {"location": file_config}
        try:
            file = FileStoreConfig(**file_config) if file_config else None
        except TypeError as e:
            raise SessionConfigFault(f"invalid file options: {e}") from e

        redis_config = config.get("redis")
        if isinstance(redis_config, str):
            redis_config = {"url": redis_config}
        try:
            redis = RedisStoreConfig(**redis_config) if redis_config else None
        except TypeError as e:
            raise SessionConfigFault(f"invalid redis options: {e}") from e

        stores = dict(config.get("stores") or {})
        for key, value in config.items():
            if key not in known and isinstance(value, Mapping):
                stores.setdefault(key, dict(value))

        return cls(
            store=config.get("store"),
            secret=config.get("secret") or config.get("secret_key"),
            enabled=config.get("enabled", True),
            cookie_name=config.get("cookie_name", "satchel_session"),
            clear_with_browser=config.get("clear_with_browser", False),
            age=config.get("age", "2h"),
            cookie=cookie,
            file=file,
            redis=redis,
            flash_key=config.get("flash_key", "__flash__"),
            stores=stores,
        )


def define_config(**options: Any) -> SessionConfig:
    """
    Build a SessionConfig with defaults.

    Example:
        >>> config = define_config(store="cookie", secret="s3cr3t", age="1d")
    """
    return SessionConfig.from_dict(options)
