"""
Faults (faults/, sessions/faults.py)

Tests the fault base class and the session fault taxonomy.
"""

import pytest

from satchel.faults import DOMAIN_DEFAULTS, Fault, FaultDomain, Severity
from satchel.sessions.faults import (
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


# ============================================================================
# Fault base
# ============================================================================

class TestFault:

    def test_explicit_fields(self):
        fault = Fault(
            code="STORE_OFFLINE",
            message="Session store is offline",
            domain=FaultDomain.IO,
            metadata={"store": "redis"},
        )
        assert str(fault) == "[STORE_OFFLINE] Session store is offline"
        assert fault.retryable is True
        assert fault.severity is Severity.WARN
        assert fault.public is False

    def test_domain_defaults(self):
        fault = Fault(code="X", message="x", domain=FaultDomain.CONFIG)
        assert fault.severity == DOMAIN_DEFAULTS[FaultDomain.CONFIG]["severity"]
        assert fault.retryable is False

    def test_custom_domain_defaults(self):
        domain = FaultDomain("billing", "Billing faults")
        fault = Fault(code="X", message="x", domain=domain)
        assert fault.severity is Severity.ERROR
        assert fault.retryable is False

    def test_explicit_argument_beats_class_attribute(self):
        fault = SessionNotReadyFault(severity=Severity.FATAL, public=True)
        assert fault.severity is Severity.FATAL
        assert fault.public is True
        assert fault.code == "E_SESSION_NOT_READY"

    def test_missing_required_fields(self):
        with pytest.raises(TypeError):
            Fault(message="no code")

    def test_to_dict(self):
        fault = SessionStoreUnavailableFault("redis", "timeout")
        assert fault.to_dict() == {
            "code": "E_SESSION_STORE_UNAVAILABLE",
            "message": "Session store 'redis' unavailable: timeout",
            "domain": "io",
            "severity": "error",
            "retryable": True,
            "public": False,
            "metadata": {"store": "redis"},
        }

    def test_repr(self):
        assert repr(SessionReadonlyFault()) == (
            "SessionReadonlyFault(code='E_SESSION_NOT_MUTABLE', domain=session, "
            "severity=error, public=False)"
        )

    def test_severity_levels(self):
        assert [level.value for level in Severity] == ["info", "warn", "error", "fatal"]

    def test_standard_domains(self):
        assert set(DOMAIN_DEFAULTS) == {FaultDomain.CONFIG, FaultDomain.IO}
        assert not hasattr(FaultDomain, "SECURITY")

    def test_domain_equality(self):
        assert FaultDomain("io") == FaultDomain.IO
        assert FaultDomain.IO == "io"
        assert hash(FaultDomain("io")) == hash(FaultDomain.IO)


# ============================================================================
# Session faults
# ============================================================================

class TestSessionFaults:

    @pytest.mark.parametrize("fault,code,domain", [
        (SessionNotReadyFault(), "E_SESSION_NOT_READY", "session"),
        (SessionReadonlyFault(), "E_SESSION_NOT_MUTABLE", "session"),
        (UnsupportedValueTypeFault("set"), "E_UNSUPPORTED_VALUE_TYPE", "session"),
        (MalformedEncodedValueFault("bad tag"), "E_MALFORMED_ENCODED_VALUE", "session"),
        (NotANumberFault("n", "str"), "E_NOT_A_NUMBER", "session"),
        (SessionStoreUnavailableFault("file"), "E_SESSION_STORE_UNAVAILABLE", "io"),
        (SessionConfigFault("missing"), "E_SESSION_CONFIG", "config"),
        (UnknownSessionStoreFault("x"), "E_INVALID_SESSION_STORE", "config"),
    ])
    def test_taxonomy(self, fault, code, domain):
        assert isinstance(fault, SessionFault)
        assert isinstance(fault, Exception)
        assert fault.code == code
        assert fault.domain.value == domain

    def test_only_store_faults_are_retryable(self):
        assert SessionStoreUnavailableFault("file").retryable is True
        assert SessionNotReadyFault().retryable is False
        assert SessionConfigFault("x").retryable is False

    def test_messages(self):
        assert UnsupportedValueTypeFault("set").message == "Cannot store set data type in session"
        assert SessionStoreUnavailableFault("file").message == "Session store 'file' unavailable"
        assert SessionConfigFault("no store").message == "Invalid session configuration: no store"
        assert UnknownSessionStoreFault("x").message == (
            "Unknown session store 'x'. Registered stores: none"
        )

    def test_severities(self):
        assert MalformedEncodedValueFault("x").severity is Severity.WARN
        assert SessionConfigFault("x").severity is Severity.FATAL

    def test_raise_and_catch_as_fault(self):
        with pytest.raises(Fault) as exc:
            raise SessionReadonlyFault()
        assert "readonly" in str(exc.value)
