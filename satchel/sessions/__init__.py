"""
SatchelSessions - Session management for async Python web applications.

This package provides request-scoped sessions with:
- Signed session id cookies and random, URL-safe session ids
- Pluggable stores (memory, file, Redis, encrypted cookie)
- A tagged value codec that survives round trips through any store
- Flash messages that live for exactly one follow-up request
- Session id regeneration against session fixation
- A session client for preparing sessions without HTTP

Typical request flow:

    manager = SessionManager(define_config(store="redis", secret=key))

    session = manager.create(ctx)
    await session.initiate()
    session.put("user.id", 42)
    await session.commit()
"""

from .client import SessionClient, SessionCookie
from .codec import ObjectId, ValueKind, decode, encode
from .core import SessionID, is_valid_session_id, new_session_id, session_fingerprint
from .faults import (
    MalformedEncodedValueFault,
    NotANumberFault,
    SessionConfigFault,
    SessionFault,
    SessionNotReadyFault,
    SessionReadonlyFault,
    SessionStoreUnavailableFault,
    UnknownSessionStoreFault,
    UnsupportedValueTypeFault,
)
from .manager import SessionManager, StoreRegistry
from .policy import (
    CookieOptions,
    FileStoreConfig,
    RedisStoreConfig,
    SessionConfig,
    define_config,
    parse_age,
)
from .session import Session
from .signing import MessageEncrypter, MessageSigner
from .stores import (
    BaseStore,
    CookieStore,
    FileStore,
    MemoryStore,
    RedisConnection,
    RedisStore,
    SessionStore,
)
from .transport import (
    CookieTransport,
    HttpContext,
    InMemoryContext,
    InMemoryRequest,
    InMemoryResponse,
    SessionRequest,
    SessionResponse,
)
from .values import ReadOnlyValuesStore, ValuesStore

__all__ = [
    # Engine
    "Session",
    "SessionManager",
    "StoreRegistry",
    "SessionClient",
    "SessionCookie",
    # Identity
    "SessionID",
    "new_session_id",
    "is_valid_session_id",
    "session_fingerprint",
    # Values
    "ValuesStore",
    "ReadOnlyValuesStore",
    "ObjectId",
    "ValueKind",
    "encode",
    "decode",
    # Config
    "SessionConfig",
    "CookieOptions",
    "FileStoreConfig",
    "RedisStoreConfig",
    "define_config",
    "parse_age",
    # Stores
    "SessionStore",
    "BaseStore",
    "MemoryStore",
    "FileStore",
    "RedisConnection",
    "RedisStore",
    "CookieStore",
    # Transport
    "CookieTransport",
    "SessionRequest",
    "SessionResponse",
    "HttpContext",
    "InMemoryContext",
    "InMemoryRequest",
    "InMemoryResponse",
    "MessageSigner",
    "MessageEncrypter",
    # Faults
    "SessionFault",
    "SessionNotReadyFault",
    "SessionReadonlyFault",
    "UnsupportedValueTypeFault",
    "MalformedEncodedValueFault",
    "NotANumberFault",
    "SessionStoreUnavailableFault",
    "SessionConfigFault",
    "UnknownSessionStoreFault",
]
