"""
SOAP exchange over a gateway channel.

Interprets the HTTP status of a reply: 200 is success, 500 usually
carries a SOAP fault, anything else is mapped to a tagged
CommunicationError.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import CommunicationError, ErrorKind
from .soap_envelope import (
    OPERATION_GET_SIGN_RESPONSE,
    OPERATION_POST_SIGN_REQUEST,
    build_get_sign_response_envelope,
    build_post_sign_request_envelope,
    soap_action,
    xml_escape,
)
from .soap_parsers import (
    element_to_dict,
    parse_get_sign_response,
    parse_post_sign_request_response,
    raise_for_fault,
)

if TYPE_CHECKING:
    from .channel import GatewayChannel

_logger = logging.getLogger(__name__)

__all__ = [
    "OPERATION_GET_SIGN_RESPONSE",
    "OPERATION_POST_SIGN_REQUEST",
    "build_get_sign_response_envelope",
    "build_post_sign_request_envelope",
    "element_to_dict",
    "parse_get_sign_response",
    "parse_post_sign_request_response",
    "send_soap",
    "soap_action",
    "xml_escape",
]

_STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.MALFORMED_REQUEST,
    404: ErrorKind.ENDPOINT_UNREACHABLE,
    413: ErrorKind.MALFORMED_REQUEST,
    415: ErrorKind.MALFORMED_REQUEST,
    502: ErrorKind.ENDPOINT_UNREACHABLE,
    503: ErrorKind.ENDPOINT_UNREACHABLE,
    504: ErrorKind.ENDPOINT_UNREACHABLE,
}


def send_soap(channel: GatewayChannel, operation: str, envelope: str) -> str:
    """
    Send a SOAP request for a contract operation.

    Returns the response body as string.
    Raises GatewayFault on SOAP faults, CommunicationError on everything else.
    """
    body = envelope.encode("utf-8")
    _logger.debug("SOAP request: operation=%s, %d bytes", operation, len(body))
    reply = channel.call(soap_action(operation), body)
    decoded = reply.body.decode("utf-8", errors="replace")

    if reply.status == 200:
        _logger.debug("SOAP response: %d bytes", len(decoded))
        return decoded

    if reply.status == 500 and decoded.strip():
        raise_for_fault(decoded)

    kind = _STATUS_KINDS.get(reply.status, ErrorKind.PROTOCOL)
    raise CommunicationError(f"{operation}: gateway returned HTTP {reply.status}", kind=kind)
