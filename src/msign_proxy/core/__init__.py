"""Client identity handling."""

from __future__ import annotations

from .certificate import ClientCertificate, load_client_certificate, load_pkcs12

__all__ = ["ClientCertificate", "load_client_certificate", "load_pkcs12"]
