"""
Stateful HTTPS channel to the signing gateway.

A channel follows the lifecycle ``Created -> Open -> {Faulted, Closed}``.
Only an open (or freshly created) channel accepts calls.  Any
transport-layer error moves it to ``Faulted`` for good; the health monitor
replaces faulted channels, nothing ever revives one.

Each channel keeps a small pool of persistent ``http.client`` connections
sharing one client-certificate ``SSLContext``, so parallel callers do not
queue behind a single socket.

Public API:
- ChannelFactory.create_channel() builds independent, unused channels
- GatewayChannel.call() performs one request/response exchange
- GatewayChannel.close() / abort() release the connections
"""

from __future__ import annotations

__all__ = [
    "TERMINAL_STATES",
    "ChannelFactory",
    "ChannelReply",
    "ChannelSettings",
    "ChannelState",
    "GatewayChannel",
    "build_ssl_context",
    "normalize_endpoint_url",
]

import enum
import errno
import http.client
import itertools
import logging
import os
import secrets
import socket
import ssl
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlparse

from ..constants import (
    BYTES_PER_MB,
    DEFAULT_MAX_RECEIVE_SIZE,
    DEFAULT_MAX_SEND_SIZE,
    DEFAULT_POOL_SIZE,
    DEFAULT_TIMEOUT_CLOSE,
    DEFAULT_TIMEOUT_OPEN,
    DEFAULT_TIMEOUT_RECEIVE,
    DEFAULT_TIMEOUT_SEND,
    RECV_BUFFER_SIZE,
)
from ..errors import (
    CertificateLoadError,
    CommunicationError,
    ConfigurationError,
    DisposalError,
    ErrorKind,
)

if TYPE_CHECKING:
    from ..core.certificate import ClientCertificate

_logger = logging.getLogger(__name__)

_channel_ids = itertools.count(1)

_UNREACHABLE_ERRNOS = frozenset({errno.EHOSTUNREACH, errno.ENETUNREACH, errno.EHOSTDOWN})


class ChannelState(str, enum.Enum):
    CREATED = "Created"
    OPEN = "Open"
    FAULTED = "Faulted"
    CLOSED = "Closed"


TERMINAL_STATES = frozenset({ChannelState.FAULTED, ChannelState.CLOSED})


@dataclass(frozen=True)
class ChannelSettings:
    """Timeouts (seconds) and size limits (bytes) applied to every channel."""

    open_timeout: float = DEFAULT_TIMEOUT_OPEN
    send_timeout: float = DEFAULT_TIMEOUT_SEND
    receive_timeout: float = DEFAULT_TIMEOUT_RECEIVE
    close_timeout: float = DEFAULT_TIMEOUT_CLOSE
    max_send_size: int = DEFAULT_MAX_SEND_SIZE
    max_receive_size: int = DEFAULT_MAX_RECEIVE_SIZE
    pool_size: int = DEFAULT_POOL_SIZE


@dataclass(frozen=True)
class ChannelReply:
    status: int
    body: bytes
    content_type: str = ""


class ConnectionFactory(Protocol):
    def __call__(
        self, host: str, port: int | None, *, timeout: float, context: ssl.SSLContext
    ) -> http.client.HTTPSConnection: ...


def _default_connection_factory(
    host: str, port: int | None, *, timeout: float, context: ssl.SSLContext
) -> http.client.HTTPSConnection:
    return http.client.HTTPSConnection(host, port, timeout=timeout, context=context)


# ── Error mapping ────────────────────────────────────────────────────


def _transport_error_kind(exc: BaseException) -> ErrorKind:
    """Tag a low-level exception with its failure category."""
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(exc, ssl.SSLEOFError):
        return ErrorKind.CONNECTION_FAILED
    if isinstance(exc, ssl.SSLError):
        return ErrorKind.TLS
    if isinstance(exc, (socket.gaierror, ConnectionRefusedError)):
        return ErrorKind.ENDPOINT_UNREACHABLE
    if isinstance(exc, ConnectionError):
        return ErrorKind.CONNECTION_FAILED
    if isinstance(exc, http.client.HTTPException):
        return ErrorKind.PROTOCOL
    if isinstance(exc, OSError) and exc.errno in _UNREACHABLE_ERRNOS:
        return ErrorKind.ENDPOINT_UNREACHABLE
    return ErrorKind.CONNECTION_FAILED


class _Readable(Protocol):
    def read(self, amt: int = ...) -> bytes: ...


def _read_with_limit(response: _Readable, limit: int, url: str) -> bytes:
    """Read a response body, refusing to buffer more than limit bytes."""
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = response.read(RECV_BUFFER_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > limit:
            raise CommunicationError(
                f"Response from {url} exceeds {limit // BYTES_PER_MB} MB limit",
                kind=ErrorKind.MESSAGE_TOO_LARGE,
            )
        chunks.append(chunk)
    return b"".join(chunks)


# ── Channel ──────────────────────────────────────────────────────────


class GatewayChannel:
    """One logical connection to the gateway endpoint.

    Thread-safe: state transitions and the idle-connection pool are
    guarded by an internal lock; the network exchange itself runs
    outside it.
    """

    def __init__(
        self,
        endpoint_url: str,
        ssl_context: ssl.SSLContext,
        settings: ChannelSettings | None = None,
        *,
        connection_factory: ConnectionFactory = _default_connection_factory,
    ) -> None:
        parsed = urlparse(endpoint_url)
        if not parsed.hostname:
            raise ConfigurationError(f"Cannot extract hostname from URL: {endpoint_url}")
        self.endpoint_url = endpoint_url
        self.channel_id = next(_channel_ids)
        self.settings = settings or ChannelSettings()
        self._host = parsed.hostname
        self._port = parsed.port
        self._path = parsed.path or "/"
        if parsed.query:
            self._path = f"{self._path}?{parsed.query}"
        self._ssl_context = ssl_context
        self._connection_factory = connection_factory
        self._lock = threading.Lock()
        self._state = ChannelState.CREATED
        self._idle: list[http.client.HTTPSConnection] = []

    def __repr__(self) -> str:
        return f"<GatewayChannel #{self.channel_id} {self._state.value} {self.endpoint_url}>"

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    # ── lifecycle ──

    def open(self) -> None:
        """Move Created -> Open. Opening an open channel is a no-op.

        Raises:
            CommunicationError: If the channel is already faulted or closed.
        """
        with self._lock:
            if self._state is ChannelState.CREATED:
                self._state = ChannelState.OPEN
                _logger.debug("Channel #%d opened", self.channel_id)
            elif self._state in TERMINAL_STATES:
                raise CommunicationError(
                    f"Channel #{self.channel_id} is {self._state.value} and cannot be used",
                    kind=ErrorKind.CONNECTION_FAILED,
                )

    def close(self) -> None:
        """Graceful shutdown of an open channel.

        In-flight calls finish; their connections are closed on return.

        Raises:
            DisposalError: If the channel is not open or a socket fails to shut down.
        """
        with self._lock:
            if self._state in TERMINAL_STATES:
                raise DisposalError(
                    f"Channel #{self.channel_id} is {self._state.value}; only abort is possible"
                )
            self._state = ChannelState.CLOSED
            idle, self._idle = self._idle, []

        failures: list[str] = []
        for conn in idle:
            sock = conn.sock
            try:
                if sock is not None:
                    sock.settimeout(self.settings.close_timeout)
                    sock.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                if e.errno != errno.ENOTCONN:
                    failures.append(str(e))
            finally:
                conn.close()

        _logger.info("Channel #%d closed", self.channel_id)
        if failures:
            raise DisposalError(
                f"Channel #{self.channel_id} did not shut down cleanly: {'; '.join(failures)}"
            )

    def abort(self) -> None:
        """Drop every connection immediately. Never raises."""
        with self._lock:
            if self._state is not ChannelState.FAULTED:
                self._state = ChannelState.CLOSED
            idle, self._idle = self._idle, []
        for conn in idle:
            _drop(conn)
        _logger.debug("Channel #%d aborted", self.channel_id)

    def _fault(self, exc: CommunicationError) -> None:
        with self._lock:
            if self._state in TERMINAL_STATES:
                return
            self._state = ChannelState.FAULTED
            idle, self._idle = self._idle, []
        for conn in idle:
            _drop(conn)
        _logger.warning("Channel #%d faulted (%s): %s", self.channel_id, exc.kind.value, exc)

    # ── connection pool ──

    def _new_connection(self) -> http.client.HTTPSConnection:
        return self._connection_factory(
            self._host,
            self._port,
            timeout=self.settings.open_timeout,
            context=self._ssl_context,
        )

    def _checkout(self) -> tuple[http.client.HTTPSConnection, bool]:
        """Return (connection, whether it was reused from the pool)."""
        with self._lock:
            if self._idle:
                return self._idle.pop(), True
        return self._new_connection(), False

    def _checkin(self, conn: http.client.HTTPSConnection) -> None:
        with self._lock:
            if self._state is ChannelState.OPEN and len(self._idle) < self.settings.pool_size:
                self._idle.append(conn)
                return
        _drop(conn)

    # ── exchange ──

    def call(self, soap_action: str, body: bytes) -> ChannelReply:
        """POST a SOAP message and return the raw reply.

        HTTP error statuses are returned, not raised: they are valid
        replies and leave the channel open.

        Raises:
            CommunicationError: Tagged with an ErrorKind. Every transport
                failure also faults the channel; an oversize request is
                refused before anything is sent and does not.
        """
        if len(body) > self.settings.max_send_size:
            raise CommunicationError(
                f"Request of {len(body)} bytes exceeds the "
                f"{self.settings.max_send_size // BYTES_PER_MB} MB send limit",
                kind=ErrorKind.MESSAGE_TOO_LARGE,
            )
        self.open()

        conn, reused = self._checkout()
        try:
            try:
                self._send(conn, soap_action, body)
            except (ConnectionResetError, BrokenPipeError):
                if not reused:
                    raise
                # Idle keep-alive connection dropped before the request was written.
                _logger.debug("Channel #%d: stale pooled connection, reconnecting", self.channel_id)
                _drop(conn)
                conn = self._new_connection()
                self._send(conn, soap_action, body)
            reply, must_close = self._receive(conn, soap_action)
        except CommunicationError as exc:
            _drop(conn)
            self._fault(exc)
            raise
        except (OSError, http.client.HTTPException) as exc:
            _drop(conn)
            error = CommunicationError(
                f"{soap_action} to {self.endpoint_url} failed: {exc}",
                kind=_transport_error_kind(exc),
            )
            self._fault(error)
            raise error from exc

        if must_close:
            _drop(conn)
        else:
            self._checkin(conn)
        return reply

    def _send(self, conn: http.client.HTTPSConnection, soap_action: str, body: bytes) -> None:
        if conn.sock is None:
            conn.connect()
        sock = conn.sock
        if sock is not None:
            sock.settimeout(self.settings.send_timeout)
        conn.request(
            "POST",
            self._path,
            body=body,
            headers={
                "Content-Type": "text/xml; charset=utf-8",
                "SOAPAction": f'"{soap_action}"',
            },
        )

    def _receive(
        self, conn: http.client.HTTPSConnection, soap_action: str
    ) -> tuple[ChannelReply, bool]:
        """Await the reply on conn. Returns (reply, connection must close)."""
        sock = conn.sock
        if sock is not None:
            sock.settimeout(self.settings.receive_timeout)
        response = conn.getresponse()

        declared = response.getheader("Content-Length")
        if declared and declared.isdigit() and int(declared) > self.settings.max_receive_size:
            raise CommunicationError(
                f"Response from {self.endpoint_url} declares {declared} bytes, over the "
                f"{self.settings.max_receive_size // BYTES_PER_MB} MB limit",
                kind=ErrorKind.MESSAGE_TOO_LARGE,
            )
        data = _read_with_limit(response, self.settings.max_receive_size, self.endpoint_url)
        _logger.debug(
            "Channel #%d: %s -> HTTP %d, %d bytes",
            self.channel_id,
            soap_action,
            response.status,
            len(data),
        )
        reply = ChannelReply(
            status=response.status,
            body=data,
            content_type=response.getheader("Content-Type") or "",
        )
        return reply, bool(response.will_close)


def _drop(conn: http.client.HTTPSConnection) -> None:
    try:
        conn.close()
    except OSError as e:
        _logger.debug("Ignoring error while dropping connection: %s", e)


# ── Factory ──────────────────────────────────────────────────────────


def normalize_endpoint_url(url: str) -> str:
    """Force the https scheme; a rewritten URL uses the default port.

    Raises:
        ConfigurationError: If the URL has no hostname.
    """
    parsed = urlparse(url)
    host = parsed.hostname
    if not host:
        raise ConfigurationError(f"Cannot extract hostname from URL: {url}")
    if parsed.scheme.lower() == "https":
        return url
    netloc = f"[{host}]" if ":" in host else host
    secure = parsed._replace(scheme="https", netloc=netloc).geturl()
    _logger.warning("Endpoint %s is not HTTPS; using %s", url, secure)
    return secure


def _write_private(path: Path, data: bytes) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


def build_ssl_context(
    certificate: ClientCertificate, *, verify_server: bool = True
) -> ssl.SSLContext:
    """TLS context presenting the client certificate to the gateway.

    ``ssl`` only loads key material from files, so the chain and an
    encrypted copy of the key live in a private temporary directory for
    the duration of the load.

    Raises:
        CertificateLoadError: If OpenSSL rejects the key material.
    """
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    if not verify_server:
        _logger.warning(
            "Server certificate validation is DISABLED for the signing gateway. "
            "Never run like this in production."
        )
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    passphrase = secrets.token_hex(32).encode("ascii")
    cert_pem, key_pem = certificate.export_pem(passphrase)
    with tempfile.TemporaryDirectory(prefix="msign-") as tmp:
        cert_file = Path(tmp) / "client.crt"
        key_file = Path(tmp) / "client.key"
        _write_private(cert_file, cert_pem)
        _write_private(key_file, key_pem)
        try:
            context.load_cert_chain(cert_file, key_file, password=passphrase)
        except ssl.SSLError as e:
            raise CertificateLoadError(f"TLS stack rejected the client certificate: {e}") from e
    return context


class ChannelFactory:
    """Builds channels bound to one gateway endpoint.

    Holds only immutable inputs; every create_channel() call returns a new,
    unused channel with its own TLS context.
    """

    def __init__(
        self,
        endpoint_url: str,
        certificate: ClientCertificate,
        *,
        settings: ChannelSettings | None = None,
        verify_server: bool = True,
        connection_factory: ConnectionFactory = _default_connection_factory,
    ) -> None:
        self.endpoint_url = normalize_endpoint_url(endpoint_url)
        self.certificate = certificate
        self.settings = settings or ChannelSettings()
        self.verify_server = verify_server
        self._connection_factory = connection_factory

    def create_channel(self) -> GatewayChannel:
        context = build_ssl_context(self.certificate, verify_server=self.verify_server)
        channel = GatewayChannel(
            self.endpoint_url,
            context,
            self.settings,
            connection_factory=self._connection_factory,
        )
        _logger.info("Created channel #%d to %s", channel.channel_id, self.endpoint_url)
        return channel
