"""MSign proxy error types."""

from __future__ import annotations

import enum
from typing import Any

__all__ = [
    "CertificateError",
    "CertificateLoadError",
    "CertificateNotFoundError",
    "ClientClosedError",
    "CommunicationError",
    "ConfigurationError",
    "DisposalError",
    "ErrorKind",
    "GatewayFault",
    "MSignError",
    "ServiceUnavailableError",
]


class ErrorKind(str, enum.Enum):
    """Failure category attached to every communication error.

    The transport layer tags each failure with one of these; the retry
    policy decides transient vs. fatal from the tag alone.
    """

    CONNECTION_FAILED = "connection_failed"
    TIMEOUT = "timeout"
    ENDPOINT_UNREACHABLE = "endpoint_unreachable"
    TLS = "tls"
    PROTOCOL = "protocol"
    MALFORMED_REQUEST = "malformed_request"
    MESSAGE_TOO_LARGE = "message_too_large"
    GATEWAY_FAULT = "gateway_fault"


class MSignError(Exception):
    """Base error for MSign proxy operations."""


class ConfigurationError(MSignError):
    """A required setting is missing or invalid."""


class CertificateError(MSignError):
    """Client certificate could not be provided."""


class CertificateNotFoundError(CertificateError):
    """The resolved certificate file does not exist."""


class CertificateLoadError(CertificateError):
    """The certificate file exists but cannot be parsed with the given password."""


class CommunicationError(MSignError):
    """Failure talking to the signing gateway.

    Args:
        message: Human-readable error description.
        kind: Failure category used for retry classification.
    """

    def __init__(self, message: str, *, kind: ErrorKind = ErrorKind.PROTOCOL) -> None:
        super().__init__(message)
        self.kind = kind

    def __reduce__(self) -> tuple[Any, ...]:
        """Preserve kind across pickle/unpickle."""
        return (type(self), (str(self),), {"kind": self.kind})

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.kind = state.get("kind", ErrorKind.PROTOCOL)


class GatewayFault(CommunicationError):
    """The gateway answered with a SOAP fault (business or validation error)."""

    def __init__(self, message: str, *, fault_code: str | None = None) -> None:
        super().__init__(message, kind=ErrorKind.GATEWAY_FAULT)
        self.fault_code = fault_code

    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (str(self),), {"fault_code": self.fault_code})

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.fault_code = state.get("fault_code")


class ServiceUnavailableError(CommunicationError):
    """Transient failures persisted through every retry attempt.

    Args:
        message: Human-readable error description.
        last_error: The error raised by the final attempt.
        attempts: Total number of attempts made.
    """

    def __init__(
        self,
        message: str,
        *,
        last_error: CommunicationError | None = None,
        attempts: int = 0,
    ) -> None:
        kind = last_error.kind if last_error is not None else ErrorKind.ENDPOINT_UNREACHABLE
        super().__init__(message, kind=kind)
        self.last_error = last_error
        self.attempts = attempts

    def __reduce__(self) -> tuple[Any, ...]:
        return (
            type(self),
            (str(self),),
            {"kind": self.kind, "last_error": self.last_error, "attempts": self.attempts},
        )

    def __setstate__(self, state: dict[str, Any] | None) -> None:
        if state is None:
            return
        self.kind = state.get("kind", ErrorKind.ENDPOINT_UNREACHABLE)
        self.last_error = state.get("last_error")
        self.attempts = state.get("attempts", 0)


class DisposalError(MSignError):
    """Releasing a channel failed. Logged and never surfaced to callers."""


class ClientClosedError(MSignError):
    """The signing client was used after close()."""
