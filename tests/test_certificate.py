"""Tests for msign_proxy.core.certificate -- PKCS#12 loading."""

from __future__ import annotations

import datetime
import logging

import pytest

from msign_proxy.core.certificate import load_client_certificate, load_pkcs12
from msign_proxy.errors import (
    CertificateError,
    CertificateLoadError,
    CertificateNotFoundError,
    ConfigurationError,
)

from .conftest import CERT_COMMON_NAME, CERT_PASSWORD, make_pkcs12


def test_load_absolute_path(cert_file, tmp_path):
    cert = load_client_certificate(str(cert_file), CERT_PASSWORD, tmp_path / "other")
    assert cert.path == cert_file
    assert cert.common_name == CERT_COMMON_NAME
    assert CERT_COMMON_NAME in cert.subject
    assert cert.is_valid_at()
    assert len(cert.fingerprint_sha256) == 64


def test_load_relative_path_from_content_root(cert_file, tmp_path):
    cert = load_client_certificate("client.pfx", CERT_PASSWORD, tmp_path)
    assert cert.path == tmp_path / "client.pfx"


def test_missing_path_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="CertPath"):
        load_client_certificate(None, CERT_PASSWORD, tmp_path)


def test_missing_password_is_configuration_error(cert_file, tmp_path):
    with pytest.raises(ConfigurationError, match="CertPassword"):
        load_client_certificate(str(cert_file), "", tmp_path)


def test_file_not_found_names_resolved_path(tmp_path):
    with pytest.raises(CertificateNotFoundError) as exc_info:
        load_client_certificate("missing.pfx", CERT_PASSWORD, tmp_path)
    assert "Certificate not found! Expected path:" in str(exc_info.value)
    assert str(tmp_path / "missing.pfx") in str(exc_info.value)


def test_wrong_password(cert_file, tmp_path):
    with pytest.raises(CertificateLoadError, match="wrong password"):
        load_client_certificate(str(cert_file), "not-the-password", tmp_path)


def test_not_a_pkcs12_file(tmp_path):
    bogus = tmp_path / "bogus.pfx"
    bogus.write_bytes(b"definitely not DER")
    with pytest.raises(CertificateError):
        load_pkcs12(bogus, CERT_PASSWORD)


def test_expired_certificate_loads_with_warning(tmp_path, caplog):
    now = datetime.datetime.now(datetime.timezone.utc)
    path = tmp_path / "old.pfx"
    path.write_bytes(
        make_pkcs12(
            not_before=now - datetime.timedelta(days=60),
            not_after=now - datetime.timedelta(days=1),
        )
    )
    with caplog.at_level(logging.WARNING, logger="msign_proxy.core.certificate"):
        cert = load_pkcs12(path, CERT_PASSWORD)
    assert not cert.is_valid_at()
    assert "expired" in caplog.text


def test_export_pem_encrypts_key(client_certificate):
    cert_pem, key_pem = client_certificate.export_pem(b"passphrase")
    assert cert_pem.startswith(b"-----BEGIN CERTIFICATE-----")
    assert b"ENCRYPTED PRIVATE KEY" in key_pem


def test_repr_hides_key(client_certificate):
    assert "private_key" not in repr(client_certificate)
