"""
SatchelSessions - Transport adapters.

The session engine never touches a concrete HTTP framework. It talks to:
- SessionRequest: read inbound cookies and the original request input
- SessionResponse: set and delete cookies
- HttpContext: a request/response pair

CookieTransport layers signing (session id cookie) and encryption
(cookie store) on top of those protocols. InMemoryContext is a
dependency-free implementation used by SessionClient and the tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from .policy import CookieOptions
from .signing import MessageEncrypter, MessageSigner


# ============================================================================
# Protocols
# ============================================================================

class SessionRequest(Protocol):
    """Inbound side of the HTTP collaborator."""

    def cookie(self, name: str) -> str | None:
        """Raw cookie value, or None if the request does not carry it."""
        ...

    def has_cookie(self, name: str) -> bool:
        ...

    def original(self) -> dict[str, Any]:
        """Request input (query + body) before any mutation."""
        ...


class SessionResponse(Protocol):
    """Outbound side of the HTTP collaborator."""

    def set_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = True,
        httponly: bool = True,
        samesite: str | None = "lax",
    ) -> None:
        ...

    def delete_cookie(self, name: str, path: str = "/", domain: str | None = None) -> None:
        ...


class HttpContext(Protocol):
    request: SessionRequest
    response: SessionResponse


# ============================================================================
# CookieTransport
# ============================================================================

class CookieTransport:
    """
    Cookie-based transport for the session id and cookie-store payloads.

    - Session id cookie: HMAC-signed, purpose bound to the cookie name
    - Data cookies: Fernet-encrypted, purpose bound to the cookie name
      (which is the session id for the cookie store)

    Example:
        >>> transport = CookieTransport(signer, encrypter, CookieOptions())
        >>> transport.write_session_id(ctx.response, "satchel_session", "sess_abc")
        >>> transport.read_session_id(next_ctx.request, "satchel_session")
        'sess_abc'
    """

    def __init__(
        self,
        signer: MessageSigner,
        encrypter: MessageEncrypter,
        options: CookieOptions,
    ):
        self.signer = signer
        self.encrypter = encrypter
        self.options = options

    # -- session id ---------------------------------------------------------

    def sign_session_id(self, cookie_name: str, session_id: str) -> str:
        return self.signer.sign(session_id, purpose=cookie_name)

    def read_session_id(self, request: SessionRequest, cookie_name: str) -> str | None:
        """Extract and verify the session id cookie."""
        raw = request.cookie(cookie_name)
        if not raw:
            return None
        value = self.signer.unsign(raw, purpose=cookie_name)
        return value if isinstance(value, str) else None

    def write_session_id(self, response: SessionResponse, cookie_name: str, session_id: str) -> None:
        response.set_cookie(
            cookie_name,
            self.sign_session_id(cookie_name, session_id),
            **self.options.to_kwargs(),
        )

    # -- encrypted payloads -------------------------------------------------

    def has(self, request: SessionRequest, name: str) -> bool:
        return request.has_cookie(name)

    def read_encrypted(self, request: SessionRequest, name: str) -> Any:
        """Decrypt a cookie value; None when missing, tampered or foreign."""
        raw = request.cookie(name)
        if not raw:
            return None
        return self.encrypter.decrypt(raw, purpose=name)

    def write_encrypted(self, response: SessionResponse, name: str, value: Any) -> None:
        response.set_cookie(
            name,
            self.encrypter.encrypt(value, purpose=name),
            **self.options.to_kwargs(),
        )

    def clear(self, response: SessionResponse, name: str) -> None:
        response.delete_cookie(name, path=self.options.path, domain=self.options.domain)


def parse_cookie_header(cookie_header: str) -> dict[str, str]:
    """
    Parse a ``Cookie`` header into a dict.

    Args:
        cookie_header: Cookie header value

    Returns:
        Dict of cookie name -> value
    """
    cookies = {}

    for part in cookie_header.split(";"):
        part = part.strip()
        if "=" in part:
            name, value = part.split("=", 1)
            cookies[name.strip()] = value.strip()

    return cookies


# ============================================================================
# In-memory HTTP collaborator
# ============================================================================

@dataclass
class SetCookie:
    """A cookie written to an InMemoryResponse."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = True
    httponly: bool = True
    samesite: str | None = "lax"

    @property
    def deleted(self) -> bool:
        return self.max_age == 0

    def to_header(self) -> str:
        """Render as a ``Set-Cookie`` header value."""
        cookie_parts = [f"{self.name}={self.value}"]

        if self.path:
            cookie_parts.append(f"Path={self.path}")
        if self.domain:
            cookie_parts.append(f"Domain={self.domain}")
        if self.max_age is not None:
            cookie_parts.append(f"Max-Age={self.max_age}")
        if self.deleted:
            cookie_parts.append("Expires=Thu, 01 Jan 1970 00:00:00 GMT")
        if self.httponly:
            cookie_parts.append("HttpOnly")
        if self.secure:
            cookie_parts.append("Secure")
        if self.samesite:
            cookie_parts.append(f"SameSite={self.samesite.capitalize()}")

        return "; ".join(cookie_parts)


class InMemoryRequest:
    """Request holding a plain cookie dict and an input dict."""

    def __init__(
        self,
        cookies: Mapping[str, str] | str | None = None,
        input: Mapping[str, Any] | None = None,
    ):
        if isinstance(cookies, str):
            cookies = parse_cookie_header(cookies)
        self.cookies: dict[str, str] = dict(cookies or {})
        self.input: dict[str, Any] = dict(input or {})

    def cookie(self, name: str) -> str | None:
        return self.cookies.get(name)

    def has_cookie(self, name: str) -> bool:
        return name in self.cookies

    def original(self) -> dict[str, Any]:
        return dict(self.input)


class InMemoryResponse:
    """Response recording every cookie written or deleted."""

    def __init__(self):
        self.cookies: dict[str, SetCookie] = {}

    def set_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        domain: str | None = None,
        secure: bool = True,
        httponly: bool = True,
        samesite: str | None = "lax",
    ) -> None:
        self.cookies[name] = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )

    def delete_cookie(self, name: str, path: str = "/", domain: str | None = None) -> None:
        self.set_cookie(
            name,
            "",
            max_age=0,
            path=path,
            domain=domain,
            secure=False,
            httponly=False,
            samesite=None,
        )

    def set_cookie_headers(self) -> list[str]:
        return [cookie.to_header() for cookie in self.cookies.values()]


@dataclass
class InMemoryContext:
    """
    Request/response pair without an HTTP server.

    ``next_request()`` plays the browser: it builds the following
    request's context from the cookies this response set or deleted.

    Example:
        >>> ctx = InMemoryContext()
        >>> session = manager.create(ctx)
        >>> ...
        >>> follow_up = ctx.next_request()
    """

    request: InMemoryRequest = field(default_factory=InMemoryRequest)
    response: InMemoryResponse = field(default_factory=InMemoryResponse)

    @classmethod
    def with_cookies(
        cls,
        cookies: Mapping[str, str] | str | None = None,
        input: Mapping[str, Any] | None = None,
    ) -> InMemoryContext:
        return cls(request=InMemoryRequest(cookies, input))

    def next_request(self, input: Mapping[str, Any] | None = None) -> InMemoryContext:
        cookies = dict(self.request.cookies)
        for name, cookie in self.response.cookies.items():
            if cookie.deleted:
                cookies.pop(name, None)
            else:
                cookies[name] = cookie.value
        return InMemoryContext.with_cookies(cookies, input)
