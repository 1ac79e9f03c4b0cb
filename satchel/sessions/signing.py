"""
SatchelSessions - Message signing and encryption.

Both primitives wrap the value in a purpose-bound envelope:

    {"message": <value>, "purpose": <session id or cookie name>}

so a value signed or encrypted for one purpose cannot be replayed under
another (e.g. a session file copied under a different session id).

- MessageSigner: HMAC signature, value readable but tamper-evident
- MessageEncrypter: Fernet (AES-128-CBC + HMAC), value opaque to clients
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Any, Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

logger = logging.getLogger("satchel.sessions.signing")


def derive_key(secret: Union[str, bytes], info: str) -> bytes:
    """
    Derive a 32-byte sub-key from the application secret.

    Signing and encryption use different ``info`` labels so the same
    secret never keys two algorithms directly.
    """
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=None,
        info=info.encode("utf-8"),
    ).derive(secret)


def _b64encode(data: bytes) -> str:
    return urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(data: str) -> bytes:
    return urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _envelope(message: Any, purpose: Optional[str]) -> bytes:
    return json.dumps(
        {"message": message, "purpose": purpose},
        separators=(",", ":"),
    ).encode("utf-8")


def _open_envelope(raw: bytes, purpose: Optional[str]) -> Any:
    try:
        envelope = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None

    if not isinstance(envelope, dict) or "message" not in envelope:
        return None

    if envelope.get("purpose") != purpose:
        logger.warning("Rejected envelope with mismatched purpose")
        return None

    return envelope["message"]


# ============================================================================
# MessageSigner - HMAC
# ============================================================================

class MessageSigner:
    """
    HMAC-based signer for JSON-serializable values.

    Output format: ``<signature>.<envelope>``, both urlsafe base64
    without padding.

    Example:
        >>> signer = MessageSigner("app-secret")
        >>> token = signer.sign({"cart": 3}, purpose="sess_abc")
        >>> signer.unsign(token, purpose="sess_abc")
        {'cart': 3}
        >>> signer.unsign(token, purpose="sess_other") is None
        True
    """

    def __init__(self, secret_key: Union[str, bytes], algorithm: str = "sha256"):
        """
        Initialize signer.

        Args:
            secret_key: Application secret
            algorithm: Hash algorithm (sha256, sha384, sha512)
        """
        self.secret_key = derive_key(secret_key, "satchel.signing")
        self.algorithm = algorithm
        self._hash_func = getattr(hashlib, algorithm)

    def _signature(self, value: bytes) -> bytes:
        return hmac.new(self.secret_key, value, self._hash_func).digest()

    def sign(self, message: Any, purpose: Optional[str] = None) -> str:
        """
        Sign a value for the given purpose.

        Returns: base64-encoded signature.envelope
        """
        value_bytes = _envelope(message, purpose)
        return f"{_b64encode(self._signature(value_bytes))}.{_b64encode(value_bytes)}"

    def unsign(self, signed_value: str, purpose: Optional[str] = None) -> Any:
        """
        Verify a signed value.

        Returns: Original value if signature and purpose match, None otherwise
        """
        if not isinstance(signed_value, str) or "." not in signed_value:
            return None

        sig_b64, val_b64 = signed_value.split(".", 1)
        try:
            signature = _b64decode(sig_b64)
            value_bytes = _b64decode(val_b64)
        except ValueError:
            return None

        if not hmac.compare_digest(signature, self._signature(value_bytes)):
            logger.warning("Rejected value with invalid signature")
            return None

        return _open_envelope(value_bytes, purpose)


# ============================================================================
# MessageEncrypter - Fernet
# ============================================================================

class MessageEncrypter:
    """
    Encrypts JSON-serializable values using Fernet.

    Used by the cookie store, where the whole session travels to the
    client and must stay unreadable there.
    """

    def __init__(self, secret_key: Union[str, bytes]):
        self._fernet = Fernet(urlsafe_b64encode(derive_key(secret_key, "satchel.encryption")))

    def encrypt(self, message: Any, purpose: Optional[str] = None) -> str:
        return self._fernet.encrypt(_envelope(message, purpose)).decode("ascii")

    def decrypt(
        self,
        token: str,
        purpose: Optional[str] = None,
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Decrypt a token produced by :meth:`encrypt`.

        Args:
            token: Encrypted value
            purpose: Purpose the value was encrypted for
            ttl: Reject tokens older than this many seconds

        Returns:
            Original value, or None if the token is invalid, expired or
            was issued for another purpose
        """
        if not isinstance(token, str) or not token:
            return None
        try:
            raw = self._fernet.decrypt(token.encode("ascii"), ttl=ttl)
        except (InvalidToken, UnicodeEncodeError):
            return None
        return _open_envelope(raw, purpose)
