"""Common CLI helper functions."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from ..core.certificate import ClientCertificate
    from ..models import SignResponse

__all__ = [
    "format_certificate",
    "format_sign_response",
    "format_size_kb",
    "safe_read_file",
]

_BYTES_PER_KB = 1024


def format_size_kb(size_bytes: int) -> str:
    """Format a byte count as a human-readable KB string (e.g. '123.4 KB')."""
    return f"{size_bytes / _BYTES_PER_KB:.1f} KB"


def safe_read_file(path: Path, kind: str = "file") -> bytes | None:
    """
    Read a file with uniform error handling.

    Returns:
        File contents as bytes, or None (after printing an error) if the
        file doesn't exist or can't be read.
    """
    if not path.exists():
        print(f"Error: {kind} not found: {path}", file=sys.stderr)
        return None

    try:
        return path.read_bytes()
    except OSError as e:
        print(f"Error reading {kind}: {e}", file=sys.stderr)
        return None


def format_certificate(cert: ClientCertificate) -> list[str]:
    """Lines describing a loaded client certificate."""
    status = "valid" if cert.is_valid_at() else "NOT VALID NOW"
    return [
        f"Subject:     {cert.subject}",
        f"Issuer:      {cert.issuer}",
        f"Serial:      {cert.serial_number:x}",
        f"Valid from:  {cert.not_valid_before:%Y-%m-%d %H:%M} UTC",
        f"Valid until: {cert.not_valid_after:%Y-%m-%d %H:%M} UTC ({status})",
        f"SHA-256:     {cert.fingerprint_sha256}",
    ]


def format_sign_response(response: SignResponse) -> list[str]:
    """Lines describing a gateway sign response."""
    lines = [f"Status:  {response.status.value}"]
    if response.message:
        lines.append(f"Message: {response.message}")
    for i, result in enumerate(response.results, 1):
        parts = []
        if result.signature is not None:
            parts.append(f"signature {format_size_kb(len(result.signature))}")
        if result.certificate is not None:
            parts.append(f"certificate {format_size_kb(len(result.certificate))}")
        lines.append(f"Result {i}: {', '.join(parts) or 'no data'}")
    return lines
