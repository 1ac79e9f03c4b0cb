"""
SatchelFaults - Structured fault handling.

Errors in Satchel are typed fault signals with a stable code, a domain,
a severity and retry semantics, so callers can branch on ``fault.code``
instead of parsing messages.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain taxonomy
- Severity: Severity levels
"""

from .core import (
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    Severity,
)

__all__ = [
    "DOMAIN_DEFAULTS",
    "Fault",
    "FaultDomain",
    "Severity",
]
