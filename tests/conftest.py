"""Shared test fixtures for the MSign proxy test suite."""

from __future__ import annotations

import datetime
import io
import ssl
import threading
from unittest.mock import MagicMock, patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12
from cryptography.x509.oid import NameOID

from msign_proxy.constants import (
    ENV_CERT_PASSWORD,
    ENV_CERT_PATH,
    ENV_CONTENT_ROOT,
    ENV_ENDPOINT_URL,
    ENV_INSECURE_SKIP_VERIFY,
    ENV_LANGUAGE,
    ENV_LOG_LEVEL,
    ENV_REDIRECT_BASE_URL,
    ENV_SETTINGS_FILE,
)
from msign_proxy.network.channel import GatewayChannel

ENDPOINT = "https://msign.staging.egov.md:8443/MSign.svc"
CERT_PASSWORD = "s3cret"
CERT_COMMON_NAME = "MSign Test Client"

_ENV_VARS = (
    ENV_CERT_PASSWORD,
    ENV_CERT_PATH,
    ENV_ENDPOINT_URL,
    ENV_INSECURE_SKIP_VERIFY,
    ENV_LANGUAGE,
    ENV_LOG_LEVEL,
    ENV_REDIRECT_BASE_URL,
    ENV_SETTINGS_FILE,
)


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path, monkeypatch):
    """Point the content root at a temp dir and keep the real keychain out."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv(ENV_CONTENT_ROOT, str(tmp_path))
    with patch("msign_proxy.config.settings.get_keyring_password", return_value=None):
        yield


# ── SOAP responses ───────────────────────────────────────────────────

_SOAP_OPEN = '<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/"><s:Body>'
_SOAP_CLOSE = "</s:Body></s:Envelope>"


def post_sign_request_xml(identifier: str) -> str:
    return (
        f"{_SOAP_OPEN}"
        '<PostSignRequestResponse xmlns="https://msign.gov.md/">'
        f"<PostSignRequestResult>{identifier}</PostSignRequestResult>"
        "</PostSignRequestResponse>"
        f"{_SOAP_CLOSE}"
    )


def get_sign_response_xml(status: str, *, message: str | None = None, results: str = "") -> str:
    if message is None:
        message_xml = (
            '<Message i:nil="true" xmlns:i="http://www.w3.org/2001/XMLSchema-instance"/>'
        )
    else:
        message_xml = f"<Message>{message}</Message>"
    return (
        f"{_SOAP_OPEN}"
        '<GetSignResponseResponse xmlns="https://msign.gov.md/">'
        "<GetSignResponseResult>"
        f"{message_xml}"
        f"<Results>{results}</Results>"
        f"<Status>{status}</Status>"
        "</GetSignResponseResult>"
        "</GetSignResponseResponse>"
        f"{_SOAP_CLOSE}"
    )


def fault_xml(reason: str, code: str = "s:Client") -> str:
    return (
        f"{_SOAP_OPEN}"
        f"<s:Fault><faultcode>{code}</faultcode>"
        f'<faultstring xml:lang="en">{reason}</faultstring></s:Fault>'
        f"{_SOAP_CLOSE}"
    )


# ── Fake HTTPS connections ───────────────────────────────────────────


class FakeResponse:
    """Stands in for http.client.HTTPResponse."""

    def __init__(
        self,
        status: int = 200,
        body: bytes | str = b"",
        headers: dict[str, str] | None = None,
        will_close: bool = False,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.status = status
        self.will_close = will_close
        self._headers = {"Content-Type": "text/xml; charset=utf-8", **(headers or {})}
        self._buf = io.BytesIO(body)

    def read(self, amt: int = -1) -> bytes:
        return self._buf.read(amt)

    def getheader(self, name: str, default: str | None = None) -> str | None:
        return self._headers.get(name, default)


class FakeConnection:
    """Stands in for http.client.HTTPSConnection; replies come from the gateway script."""

    def __init__(self, gateway: FakeGateway, host: str, port: int | None) -> None:
        self.gateway = gateway
        self.host = host
        self.port = port
        self.sock: MagicMock | None = None
        self.closed = False
        self.send_error: BaseException | None = None

    def connect(self) -> None:
        self.sock = MagicMock()

    def request(self, method, url, body=None, headers=None) -> None:
        if self.send_error is not None:
            error, self.send_error = self.send_error, None
            raise error
        self.gateway.record(method, url, body, headers or {})

    def getresponse(self) -> FakeResponse:
        outcome = self.gateway.next_outcome()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True
        self.sock = None


class FakeGateway:
    """Connection factory replaying a script of responses and exceptions in order."""

    def __init__(self, *outcomes: FakeResponse | BaseException) -> None:
        self.outcomes = list(outcomes)
        self.connections: list[FakeConnection] = []
        self.requests: list[dict] = []
        self._lock = threading.Lock()

    def __call__(self, host, port, *, timeout, context) -> FakeConnection:
        conn = FakeConnection(self, host, port)
        with self._lock:
            self.connections.append(conn)
        return conn

    def add(self, *outcomes: FakeResponse | BaseException) -> None:
        with self._lock:
            self.outcomes.extend(outcomes)

    def record(self, method, url, body, headers) -> None:
        with self._lock:
            self.requests.append({"method": method, "url": url, "body": body, "headers": headers})

    def next_outcome(self) -> FakeResponse | BaseException:
        with self._lock:
            if not self.outcomes:
                raise AssertionError("Unexpected request to the fake gateway")
            return self.outcomes.pop(0)


class StubChannelFactory:
    """ChannelFactory replacement that skips TLS setup and talks to a FakeGateway."""

    def __init__(self, gateway: FakeGateway, settings=None) -> None:
        self.gateway = gateway
        self.settings = settings
        self.created: list[GatewayChannel] = []
        self._context = ssl.create_default_context()

    def create_channel(self) -> GatewayChannel:
        channel = GatewayChannel(
            ENDPOINT, self._context, self.settings, connection_factory=self.gateway
        )
        self.created.append(channel)
        return channel


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def channel_factory(gateway):
    return StubChannelFactory(gateway)


# ── Certificates ─────────────────────────────────────────────────────


def make_pkcs12(
    password: str = CERT_PASSWORD,
    *,
    common_name: str = CERT_COMMON_NAME,
    not_before: datetime.datetime | None = None,
    not_after: datetime.datetime | None = None,
) -> bytes:
    """Self-signed client identity packed as password-protected PKCS#12."""
    now = datetime.datetime.now(datetime.timezone.utc)
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "MD"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "MSign Proxy Tests"),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - datetime.timedelta(days=1))
        .not_valid_after(not_after or now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return pkcs12.serialize_key_and_certificates(
        b"msign-test",
        key,
        cert,
        None,
        BestAvailableEncryption(password.encode("utf-8")),
    )


@pytest.fixture(scope="session")
def pkcs12_bytes():
    return make_pkcs12()


@pytest.fixture
def cert_file(tmp_path, pkcs12_bytes):
    """PKCS#12 file inside the content root."""
    path = tmp_path / "client.pfx"
    path.write_bytes(pkcs12_bytes)
    return path


@pytest.fixture
def client_certificate(cert_file):
    from msign_proxy.core.certificate import load_pkcs12

    return load_pkcs12(cert_file, CERT_PASSWORD)
