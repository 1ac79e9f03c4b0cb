"""
SatchelSessions - Fault definitions.

Defines session-specific faults that integrate with the SatchelFaults system.
All session errors are structured Faults, not bare exceptions.
"""

from __future__ import annotations

from typing import Iterable

from satchel.faults.core import Fault, FaultDomain, Severity


# Register session fault domain
FaultDomain.SESSION = FaultDomain("session", "Session lifecycle and storage faults")


# ============================================================================
# Session Fault Base
# ============================================================================

class SessionFault(Fault):
    """
    Base class for session-related faults.

    All session faults use FaultDomain.SESSION unless they override it.
    """

    domain = FaultDomain.SESSION


# ============================================================================
# Lifecycle Faults
# ============================================================================

class SessionNotReadyFault(SessionFault):
    """
    Session was used before ``initiate()`` completed.

    This is a programming error in the request pipeline, never retried.
    """

    code = "E_SESSION_NOT_READY"
    message = "Session store has not been initiated. Call initiate() before using the session"
    severity = Severity.ERROR
    public = False
    retryable = False


class SessionReadonlyFault(SessionFault):
    """Mutating call on a session initiated in readonly mode."""

    code = "E_SESSION_NOT_MUTABLE"
    message = "Session store is in readonly mode and cannot be mutated"
    severity = Severity.ERROR
    public = False
    retryable = False


# ============================================================================
# Value Faults
# ============================================================================

class UnsupportedValueTypeFault(SessionFault):
    """
    Value cannot be stored in a session.

    Raised by the value codec for anything outside the supported set
    (strings, numbers, booleans, datetimes, dicts, lists, ObjectIds).
    """

    code = "E_UNSUPPORTED_VALUE_TYPE"
    message = "Cannot store value in session"
    severity = Severity.ERROR
    public = False
    retryable = False

    def __init__(self, type_name: str, **kwargs):
        super().__init__(**kwargs)
        self.type_name = type_name
        self.message = f"Cannot store {type_name} data type in session"
        self.metadata["type"] = type_name


class MalformedEncodedValueFault(SessionFault):
    """
    Encoded value does not match any known type tag.

    ValuesStore.load() recovers from this by starting with an empty store.
    """

    code = "E_MALFORMED_ENCODED_VALUE"
    message = "Malformed encoded session value"
    severity = Severity.WARN
    public = False
    retryable = False

    def __init__(self, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.reason = reason
        self.message = f"Malformed encoded session value: {reason}"


class NotANumberFault(SessionFault):
    """increment()/decrement() on a value that is not numeric."""

    code = "E_NOT_A_NUMBER"
    message = "Session value is not a number"
    severity = Severity.ERROR
    public = False
    retryable = False

    def __init__(self, key: str, type_name: str, **kwargs):
        super().__init__(**kwargs)
        self.key = key
        self.type_name = type_name
        self.message = f'Cannot increment or decrement "{key}": value is a {type_name}, not a number'
        self.metadata.update({"key": key, "type": type_name})


# ============================================================================
# Storage Faults
# ============================================================================

class SessionStoreUnavailableFault(SessionFault):
    """
    Session store is unavailable.

    Examples: Redis connection failure, file system error.
    The core does not retry; the fault is marked retryable for callers.
    """

    code = "E_SESSION_STORE_UNAVAILABLE"
    message = "Session storage unavailable"
    domain = FaultDomain.IO
    severity = Severity.ERROR
    public = False
    retryable = True

    def __init__(self, store_name: str, cause: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.store_name = store_name
        self.cause = cause
        if cause:
            self.message = f"Session store '{store_name}' unavailable: {cause}"
        else:
            self.message = f"Session store '{store_name}' unavailable"
        self.metadata["store"] = store_name


# ============================================================================
# Configuration Faults
# ============================================================================

class SessionConfigFault(SessionFault):
    """Session configuration is missing or invalid."""

    code = "E_SESSION_CONFIG"
    message = "Invalid session configuration"
    domain = FaultDomain.CONFIG
    severity = Severity.FATAL
    public = False
    retryable = False

    def __init__(self, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.reason = reason
        self.message = f"Invalid session configuration: {reason}"


class UnknownSessionStoreFault(SessionFault):
    """No store factory is registered under the configured name."""

    code = "E_INVALID_SESSION_STORE"
    message = "Unknown session store"
    domain = FaultDomain.CONFIG
    severity = Severity.FATAL
    public = False
    retryable = False

    def __init__(self, name: str, available: Iterable[str] = (), **kwargs):
        super().__init__(**kwargs)
        self.name = name
        self.available = sorted(available)
        self.message = (
            f"Unknown session store '{name}'. "
            f"Registered stores: {', '.join(self.available) or 'none'}"
        )
