"""
SatchelSessions - Storage backends.

- MemoryStore: Shared in-process table (dev/testing)
- FileStore: One signed file per session
- RedisStore: Signed keys with native TTL
- CookieStore: Encrypted, client-held session
"""

from .base import BaseStore, SessionStore
from .cookie import CookieStore
from .file import FileStore
from .memory import MemoryStore
from .redis import RedisConnection, RedisStore

__all__ = [
    "SessionStore",
    "BaseStore",
    "MemoryStore",
    "FileStore",
    "RedisConnection",
    "RedisStore",
    "CookieStore",
]
