# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""
Client identity certificate loading.

The gateway authenticates the proxy by mutual TLS.  The identity is a
password-protected PKCS#12 bundle; ``cryptography`` decrypts it and
``asn1crypto`` reads the subject and validity window for logging and
display (it copes with BMPString-encoded DN fields that government CAs
like to issue).
"""

from __future__ import annotations

__all__ = [
    "ClientCertificate",
    "load_client_certificate",
    "load_pkcs12",
]

import datetime
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from asn1crypto import x509 as asn1_x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from ..config.settings import resolve_cert_path
from ..errors import CertificateLoadError, CertificateNotFoundError, ConfigurationError

if TYPE_CHECKING:
    from cryptography import x509
    from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

_logger = logging.getLogger(__name__)

_OID_CN = "2.5.4.3"


@dataclass(frozen=True)
class ClientCertificate:
    """Decrypted client identity, immutable for the life of the process."""

    path: Path
    subject: str
    common_name: str | None
    issuer: str
    serial_number: int
    not_valid_before: datetime.datetime
    not_valid_after: datetime.datetime
    fingerprint_sha256: str
    private_key: PrivateKeyTypes = field(repr=False, compare=False)
    certificate: x509.Certificate = field(repr=False, compare=False)
    chain: tuple[x509.Certificate, ...] = field(default=(), repr=False, compare=False)

    def is_valid_at(self, when: datetime.datetime | None = None) -> bool:
        when = when or datetime.datetime.now(datetime.timezone.utc)
        return self.not_valid_before <= when <= self.not_valid_after

    def export_pem(self, passphrase: bytes) -> tuple[bytes, bytes]:
        """Return (certificate chain PEM, private key PEM encrypted with passphrase)."""
        cert_pem = b"".join(
            c.public_bytes(serialization.Encoding.PEM) for c in (self.certificate, *self.chain)
        )
        key_pem = self.private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(passphrase),
        )
        return cert_pem, key_pem


def _describe(cert: x509.Certificate) -> dict[str, object]:
    """Read subject, issuer and validity through asn1crypto."""
    parsed = asn1_x509.Certificate.load(cert.public_bytes(serialization.Encoding.DER))

    common_name = None
    for rdn in parsed.subject.chosen:
        for attr in rdn:
            if attr["type"].dotted == _OID_CN:
                common_name = attr["value"].native

    return {
        "subject": parsed.subject.human_friendly,
        "common_name": common_name,
        "issuer": parsed.issuer.human_friendly,
        "serial_number": parsed.serial_number,
        "not_valid_before": parsed.not_valid_before,
        "not_valid_after": parsed.not_valid_after,
    }


def load_pkcs12(path: Path, password: str) -> ClientCertificate:
    """Decrypt a PKCS#12 file that is known to exist.

    Raises:
        CertificateLoadError: Wrong password, corrupt file, or no key/cert inside.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise CertificateLoadError(f"Cannot read certificate {path}: {e}") from e

    try:
        key, cert, extra = pkcs12.load_key_and_certificates(data, password.encode("utf-8"))
    except (ValueError, TypeError) as e:
        raise CertificateLoadError(
            f"Cannot open certificate {path}: wrong password or not a PKCS#12 file ({e})"
        ) from e

    if key is None or cert is None:
        raise CertificateLoadError(f"Certificate {path} must contain a private key and certificate")

    try:
        info = _describe(cert)
    except (ValueError, TypeError, KeyError) as e:
        raise CertificateLoadError(f"Cannot parse certificate subject in {path}: {e}") from e

    loaded = ClientCertificate(
        path=path,
        fingerprint_sha256=cert.fingerprint(hashes.SHA256()).hex(),
        private_key=key,
        certificate=cert,
        chain=tuple(extra),
        **info,  # type: ignore[arg-type]
    )

    now = datetime.datetime.now(datetime.timezone.utc)
    if now < loaded.not_valid_before:
        _logger.warning("Client certificate is not yet valid (notBefore: %s)", loaded.not_valid_before)
    elif now > loaded.not_valid_after:
        _logger.warning("Client certificate has expired (notAfter: %s)", loaded.not_valid_after)

    return loaded


def load_client_certificate(
    configured_path: str | None,
    password: str | None,
    base_dir: Path,
) -> ClientCertificate:
    """Resolve, check and load the client certificate.

    Args:
        configured_path: CertPath setting; relative paths are anchored at base_dir.
        password: CertPassword setting.
        base_dir: Content root of the application.

    Raises:
        ConfigurationError: If the path or password is not configured.
        CertificateNotFoundError: If the resolved file does not exist.
        CertificateLoadError: If the file cannot be opened with the password.
    """
    if not configured_path:
        raise ConfigurationError("CertPath is not configured.")
    if not password:
        raise ConfigurationError("CertPassword is not configured.")

    path = resolve_cert_path(configured_path, base_dir)
    if not path.is_file():
        raise CertificateNotFoundError(f"Certificate not found! Expected path: {path}")

    certificate = load_pkcs12(path, password)
    _logger.info(
        "Loaded client certificate %s (valid until %s)",
        certificate.subject,
        certificate.not_valid_after.date(),
    )
    return certificate
