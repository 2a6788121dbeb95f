"""
msign_proxy -- Resilient relay to the MSign electronic signature gateway.

Submits PDF documents for signing and queries signing results over a
certificate-authenticated SOAP channel that is recreated automatically
after communication faults.
"""

from __future__ import annotations

from .client import SigningClient
from .constants import __version__
from .errors import (
    CertificateError,
    CertificateLoadError,
    CertificateNotFoundError,
    ClientClosedError,
    CommunicationError,
    ConfigurationError,
    ErrorKind,
    GatewayFault,
    MSignError,
    ServiceUnavailableError,
)
from .models import SignInitiateResult, SigningRequest, SignResponse, SignResult, SignStatus

__all__ = [
    "CertificateError",
    "CertificateLoadError",
    "CertificateNotFoundError",
    "ClientClosedError",
    "CommunicationError",
    "ConfigurationError",
    "ErrorKind",
    "GatewayFault",
    "MSignError",
    "ServiceUnavailableError",
    "SignInitiateResult",
    "SignResponse",
    "SignResult",
    "SignStatus",
    "SigningClient",
    "SigningRequest",
    "__version__",
]
