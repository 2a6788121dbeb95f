"""
Application-wide constants for the MSign proxy.

All timeout values, size limits, gateway addresses, and environment
variable names are centralized here for easy maintenance.
"""

from __future__ import annotations

import importlib.metadata

try:
    __version__ = importlib.metadata.version("msign-proxy")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "BYTES_PER_MB",
    "CONTENT_TYPE_PDF",
    "DEFAULT_DESCRIPTION",
    "DEFAULT_ENDPOINT_URL",
    "DEFAULT_FILE_NAME",
    "DEFAULT_LANGUAGE",
    "DEFAULT_MAX_RECEIVE_SIZE",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_MAX_SEND_SIZE",
    "DEFAULT_POOL_SIZE",
    "DEFAULT_REDIRECT_BASE_URL",
    "DEFAULT_RETRY_BACKOFF",
    "DEFAULT_TIMEOUT_CLOSE",
    "DEFAULT_TIMEOUT_OPEN",
    "DEFAULT_TIMEOUT_RECEIVE",
    "DEFAULT_TIMEOUT_SEND",
    "ENV_CERT_PASSWORD",
    "ENV_CERT_PATH",
    "ENV_CONTENT_ROOT",
    "ENV_ENDPOINT_URL",
    "ENV_INSECURE_SKIP_VERIFY",
    "ENV_LANGUAGE",
    "ENV_LOG_LEVEL",
    "ENV_REDIRECT_BASE_URL",
    "ENV_SETTINGS_FILE",
    "KEYRING_SERVICE",
    "RECV_BUFFER_SIZE",
    "SETTINGS_FILE_NAME",
    "SETTINGS_SECTION",
    "SOAP_CONTRACT_NAMESPACE",
    "XML_PREVIEW_LENGTH",
    "__version__",
]

# ── Gateway addresses ─────────────────────────────────────────────────

# SOAP endpoint of the MSign staging gateway (basic HTTP binding)
DEFAULT_ENDPOINT_URL = "https://msign.staging.egov.md:8443/MSign.svc"

# User-facing signing page; the request id and return URL are appended
DEFAULT_REDIRECT_BASE_URL = "https://msign.staging.egov.md"

# Service contract namespace, also the SOAPAction prefix
SOAP_CONTRACT_NAMESPACE = "https://msign.gov.md/"


# ── Timeout values (seconds) ──────────────────────────────────────────

# TCP connect + TLS handshake
DEFAULT_TIMEOUT_OPEN = 15

# Writing a request body
DEFAULT_TIMEOUT_SEND = 45

# Waiting for and reading a response
DEFAULT_TIMEOUT_RECEIVE = 45

# Socket shutdown on graceful close
DEFAULT_TIMEOUT_CLOSE = 10


# ── Size units ────────────────────────────────────────────────────────

BYTES_PER_MB = 1024 * 1024


# ── Size limits (bytes) ───────────────────────────────────────────────

# Largest SOAP request the channel will send (documents travel base64-encoded)
DEFAULT_MAX_SEND_SIZE = 10 * BYTES_PER_MB

# Largest SOAP response the channel will accept
DEFAULT_MAX_RECEIVE_SIZE = 10 * BYTES_PER_MB

# Socket read chunk size
RECV_BUFFER_SIZE = 8192

# Idle persistent connections kept per channel
DEFAULT_POOL_SIZE = 8


# ── Retry configuration ───────────────────────────────────────────────

# Retries after the first attempt (4 attempts total)
DEFAULT_MAX_RETRIES = 3

# delay(attempt) = DEFAULT_RETRY_BACKOFF ** attempt seconds
DEFAULT_RETRY_BACKOFF = 2.0


# ── Protocol constants ────────────────────────────────────────────────

# Only PDF documents are relayed
CONTENT_TYPE_PDF = "Pdf"

# Language passed to GetSignResponse when the caller does not choose one
DEFAULT_LANGUAGE = "en"

DEFAULT_FILE_NAME = "document.pdf"
DEFAULT_DESCRIPTION = "Digital Signature Request"

# XML preview truncation length for error messages (characters)
XML_PREVIEW_LENGTH = 300


# ── Configuration sources ─────────────────────────────────────────────

SETTINGS_FILE_NAME = "appsettings.json"
SETTINGS_SECTION = "MSignConfig"
KEYRING_SERVICE = "msign-proxy"

ENV_CONTENT_ROOT = "MSIGN_CONTENT_ROOT"
ENV_SETTINGS_FILE = "MSIGN_SETTINGS_FILE"
ENV_CERT_PATH = "MSIGN_CERT_PATH"
ENV_CERT_PASSWORD = "MSIGN_CERT_PASSWORD"
ENV_ENDPOINT_URL = "MSIGN_ENDPOINT_URL"
ENV_REDIRECT_BASE_URL = "MSIGN_REDIRECT_BASE_URL"
ENV_LANGUAGE = "MSIGN_LANGUAGE"
ENV_INSECURE_SKIP_VERIFY = "MSIGN_INSECURE_SKIP_VERIFY"
ENV_LOG_LEVEL = "MSIGN_LOG_LEVEL"
