"""
SatchelSessions - Core types.

Defines the session identifier:
- SessionID: Opaque random identifier
- is_valid_session_id: Shape check for inbound identifiers
- session_fingerprint: Log-safe digest of an identifier
"""

from __future__ import annotations

import base64
import hashlib
import re
import secrets


_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,128}$")


# ============================================================================
# SessionID - Opaque Random Identifier
# ============================================================================

class SessionID:
    """
    Opaque session identifier with cryptographic randomness.

    Rules:
    - Never encode meaning (no user ID, no timestamps)
    - Cryptographically random (32 bytes = 256 bits entropy)
    - URL-safe encoding, usable as a file name and cookie name
    - Prefixed for identification (sess_)

    Example:
        >>> sid = SessionID()
        >>> str(sid)
        'sess_kJ8...'
    """

    __slots__ = ("_raw", "_encoded")

    def __init__(self, raw: bytes | None = None):
        """
        Create session ID.

        Args:
            raw: Raw bytes (32 bytes). If None, generates random bytes.
        """
        if raw is None:
            raw = secrets.token_bytes(32)
        elif len(raw) != 32:
            raise ValueError("Session ID must be exactly 32 bytes")

        self._raw = raw
        self._encoded = f"sess_{base64.urlsafe_b64encode(raw).decode().rstrip('=')}"

    def __str__(self) -> str:
        return self._encoded

    def __repr__(self) -> str:
        return f"SessionID({self._encoded[:16]}...)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SessionID):
            return False
        return self._raw == other._raw

    def __hash__(self) -> int:
        return hash(self._raw)

    @property
    def raw(self) -> bytes:
        """Get raw bytes (use with caution)."""
        return self._raw


def new_session_id() -> str:
    """Generate a fresh session id string."""
    return str(SessionID())


def is_valid_session_id(value: object) -> bool:
    """
    Check that an inbound session id is safe to use.

    Ids issued by other deployments are accepted as long as they are
    short url-safe tokens; anything else is treated as absent.
    """
    return isinstance(value, str) and bool(_SESSION_ID_PATTERN.match(value))


def session_fingerprint(session_id: str) -> str:
    """Hash session ID for logging (privacy)."""
    return f"sha256:{hashlib.sha256(session_id.encode()).hexdigest()[:16]}"
