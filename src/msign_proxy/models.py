"""
Request and result types exchanged with the signing gateway.

Instances are built per call and never persisted.
"""

from __future__ import annotations

__all__ = [
    "SignInitiateResult",
    "SignResponse",
    "SignResult",
    "SignStatus",
    "SigningRequest",
    "build_redirect_url",
]

import base64
import enum
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, quote_plus

from .constants import CONTENT_TYPE_PDF, DEFAULT_DESCRIPTION, DEFAULT_FILE_NAME


class SignStatus(str, enum.Enum):
    """Gateway-reported state of a signing request."""

    PENDING = "Pending"
    SUCCESS = "Success"
    FAILURE = "Failure"
    EXPIRED = "Expired"


@dataclass(frozen=True)
class SigningRequest:
    """A document to submit for signing."""

    content: bytes
    file_name: str = DEFAULT_FILE_NAME
    description: str = DEFAULT_DESCRIPTION
    return_url: str = ""
    content_type: str = CONTENT_TYPE_PDF

    def __repr__(self) -> str:
        return (
            f"SigningRequest(file_name={self.file_name!r}, "
            f"content=<{len(self.content)} bytes>, return_url={self.return_url!r})"
        )


@dataclass(frozen=True)
class SignInitiateResult:
    """Identifier issued by the gateway plus the page the user must visit."""

    identifier: str
    redirect_url: str


@dataclass(frozen=True)
class SignResult:
    """One signed item of a completed request."""

    signature: bytes | None = None
    certificate: bytes | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.fields)
        data["signature"] = _b64(self.signature)
        data["certificate"] = _b64(self.certificate)
        return data


@dataclass(frozen=True)
class SignResponse:
    """Gateway answer to GetSignResponse, passed to callers unchanged.

    Attributes:
        status: Request state.
        message: Optional gateway message.
        results: Signed items (populated once status is Success).
        payload: Every element of the result as parsed from the wire.
    """

    status: SignStatus
    message: str | None = None
    results: tuple[SignResult, ...] = ()
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "results": [r.to_dict() for r in self.results],
            "payload": self.payload,
        }


def _b64(data: bytes | None) -> str | None:
    return base64.b64encode(data).decode("ascii") if data is not None else None


def build_redirect_url(base_url: str, identifier: str, return_url: str) -> str:
    """Build the user-facing signing URL.

    Format: ``<base>/<identifier>?returnUrl=<form-encoded return URL>``.
    Every reserved character of the return URL is encoded so the parameter
    decodes back to the exact original.
    """
    encoded_return = quote_plus(return_url, safe="")
    return f"{base_url.rstrip('/')}/{quote(identifier, safe='')}?returnUrl={encoded_return}"
