"""Gateway command handlers for the MSign proxy CLI."""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

from ...client import SigningClient
from ...config import (
    delete_keyring_password,
    get_credential_storage_info,
    load_settings,
    save_keyring_password,
)
from ...core.certificate import load_client_certificate
from ...errors import ConfigurationError
from ...models import SigningRequest
from ..helpers import format_certificate, format_sign_response, format_size_kb, safe_read_file

_PDF_MAGIC = b"%PDF-"


def _configured_cert_path() -> Path:
    path = load_settings().resolved_cert_path
    if path is None:
        raise ConfigurationError("CertPath is not configured.")
    return path


def cmd_initiate(args: argparse.Namespace) -> None:
    """Submit a PDF and print the signing redirect URL."""
    pdf_path = Path(args.file)
    content = safe_read_file(pdf_path, "PDF")
    if content is None:
        sys.exit(1)
    if not content.startswith(_PDF_MAGIC):
        print(f"Warning: {pdf_path.name} does not look like a PDF", file=sys.stderr)

    print(f"Submitting {pdf_path.name} ({format_size_kb(len(content))})...")
    request = SigningRequest(
        content=content,
        file_name=pdf_path.name,
        description=args.description,
        return_url=args.return_url,
    )
    with SigningClient.from_settings() as client:
        result = client.start_signing_process(request)

    print(f"  Request id:   {result.identifier}")
    print(f"  Redirect URL: {result.redirect_url}")


def cmd_status(args: argparse.Namespace) -> None:
    """Print the state of a signing request."""
    with SigningClient.from_settings() as client:
        response = client.get_sign_response(args.request_id, args.language)

    for line in format_sign_response(response):
        print(f"  {line}")


def cmd_cert_info() -> None:
    """Load the configured client certificate and show its details."""
    settings = load_settings()
    cert = load_client_certificate(
        settings.cert_path, settings.cert_password, settings.content_root
    )
    print(f"Certificate: {cert.path}")
    for line in format_certificate(cert):
        print(f"  {line}")


def cmd_set_password() -> None:
    """Store the certificate password in the system keychain."""
    cert_path = _configured_cert_path()
    try:
        password = getpass.getpass(f"Password for {cert_path.name}: ")
    except (EOFError, KeyboardInterrupt):
        print()
        sys.exit(1)
    if not password:
        print("Error: empty password, nothing stored.", file=sys.stderr)
        sys.exit(1)

    save_keyring_password(cert_path, password)
    print(f"Password saved to {get_credential_storage_info()}.")


def cmd_clear_password() -> None:
    """Remove the stored certificate password."""
    cert_path = _configured_cert_path()
    if delete_keyring_password(cert_path):
        print(f"Password for {cert_path.name} removed.")
    else:
        print(f"No stored password for {cert_path.name}.")
