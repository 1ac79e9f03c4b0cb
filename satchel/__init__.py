"""
Satchel - Server-side sessions for async Python web applications

Complete integration of:
- Sessions: Request-scoped session state with pluggable stores
- Flash messages: Values that survive exactly one follow-up request
- Faults: Structured error handling with fault domains
- Config: Layered configuration from files, .env and environment
"""

__version__ = "0.1.0"

from .config import ConfigLoader
from .faults import Fault, FaultDomain, Severity
from .sessions import (
    CookieOptions,
    HttpContext,
    InMemoryContext,
    Session,
    SessionClient,
    SessionConfig,
    SessionManager,
    SessionStore,
    define_config,
)

__all__ = [
    "__version__",
    "ConfigLoader",
    "Fault",
    "FaultDomain",
    "Severity",
    "CookieOptions",
    "HttpContext",
    "InMemoryContext",
    "Session",
    "SessionClient",
    "SessionConfig",
    "SessionManager",
    "SessionStore",
    "define_config",
]
