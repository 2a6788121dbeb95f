"""Tests for msign_proxy.errors -- exception hierarchy and pickling."""

import pickle

from msign_proxy.errors import (
    CertificateError,
    CertificateLoadError,
    CertificateNotFoundError,
    ClientClosedError,
    CommunicationError,
    ConfigurationError,
    DisposalError,
    ErrorKind,
    GatewayFault,
    MSignError,
    ServiceUnavailableError,
)


def test_all_errors_inherit_base():
    for cls in (
        ConfigurationError,
        CertificateError,
        CertificateNotFoundError,
        CertificateLoadError,
        CommunicationError,
        GatewayFault,
        ServiceUnavailableError,
        DisposalError,
        ClientClosedError,
    ):
        assert issubclass(cls, MSignError)


def test_certificate_errors_share_parent():
    assert issubclass(CertificateNotFoundError, CertificateError)
    assert issubclass(CertificateLoadError, CertificateError)


def test_communication_error_default_kind():
    e = CommunicationError("broken")
    assert e.kind is ErrorKind.PROTOCOL
    assert str(e) == "broken"


def test_gateway_fault_kind_and_code():
    e = GatewayFault("Gateway fault: bad id", fault_code="s:Client")
    assert isinstance(e, CommunicationError)
    assert e.kind is ErrorKind.GATEWAY_FAULT
    assert e.fault_code == "s:Client"


def test_service_unavailable_inherits_last_kind():
    last = CommunicationError("timed out", kind=ErrorKind.TIMEOUT)
    e = ServiceUnavailableError("gave up", last_error=last, attempts=4)
    assert e.kind is ErrorKind.TIMEOUT
    assert e.last_error is last
    assert e.attempts == 4


def test_service_unavailable_without_last_error():
    e = ServiceUnavailableError("gave up")
    assert e.kind is ErrorKind.ENDPOINT_UNREACHABLE
    assert e.last_error is None
    assert e.attempts == 0


# ── pickling ─────────────────────────────────────────────────────────


def test_communication_error_pickle_roundtrip():
    e = CommunicationError("connection reset", kind=ErrorKind.CONNECTION_FAILED)
    restored = pickle.loads(pickle.dumps(e))
    assert isinstance(restored, CommunicationError)
    assert str(restored) == "connection reset"
    assert restored.kind is ErrorKind.CONNECTION_FAILED


def test_gateway_fault_pickle_roundtrip():
    e = GatewayFault("Gateway fault: rejected", fault_code="s:Server")
    restored = pickle.loads(pickle.dumps(e))
    assert isinstance(restored, GatewayFault)
    assert restored.kind is ErrorKind.GATEWAY_FAULT
    assert restored.fault_code == "s:Server"


def test_service_unavailable_pickle_roundtrip():
    last = CommunicationError("refused", kind=ErrorKind.ENDPOINT_UNREACHABLE)
    e = ServiceUnavailableError("gave up", last_error=last, attempts=4)
    restored = pickle.loads(pickle.dumps(e))
    assert isinstance(restored, ServiceUnavailableError)
    assert restored.kind is ErrorKind.ENDPOINT_UNREACHABLE
    assert restored.attempts == 4
    assert str(restored.last_error) == "refused"
