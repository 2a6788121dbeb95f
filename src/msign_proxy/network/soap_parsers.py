"""SOAP response parsers for the MSign gateway."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import TYPE_CHECKING, Any
from xml.etree.ElementTree import ParseError as _XMLParseError

import defusedxml.ElementTree as ET

from ..constants import XML_PREVIEW_LENGTH
from ..errors import CommunicationError, ErrorKind, GatewayFault
from ..models import SignResponse, SignResult, SignStatus

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

_logger = logging.getLogger(__name__)

_XSI_NIL = "{http://www.w3.org/2001/XMLSchema-instance}nil"

# Document payloads must never end up in logs or exception messages
_REDACT_CONTENT_PATTERN = r"<(\w+:)?Content>[^<]*</(\w+:)?Content>"
_REDACT_CONTENT_REPLACEMENT = "<Content>[REDACTED]</Content>"


def _strip_namespace(tag: str) -> str:
    """Strip XML namespace prefix from a tag name."""
    return tag.split("}")[-1] if "}" in tag else tag


def _redact_and_truncate_xml(xml_str: str) -> str:
    redacted = re.sub(_REDACT_CONTENT_PATTERN, _REDACT_CONTENT_REPLACEMENT, xml_str)
    return redacted[:XML_PREVIEW_LENGTH]


def _find(elem: Element, name: str) -> Element | None:
    """First descendant (or self) with the given local name."""
    for child in elem.iter():
        if _strip_namespace(child.tag) == name:
            return child
    return None


def _child_text(elem: Element, name: str) -> str | None:
    for child in elem:
        if _strip_namespace(child.tag) == name:
            text = (child.text or "").strip()
            return text or None
    return None


def _parse_document(xml_str: str) -> Element:
    """Parse XML and raise GatewayFault if the body carries a SOAP fault.

    Raises:
        GatewayFault: The gateway reported an error.
        CommunicationError: The response is not well-formed XML.
    """
    try:
        root = ET.fromstring(xml_str)
    except _XMLParseError as e:
        _logger.error("Invalid XML response from gateway: %s", e)
        raise CommunicationError(
            f"Invalid XML response: {e}\nRaw: {_redact_and_truncate_xml(xml_str)}",
            kind=ErrorKind.PROTOCOL,
        ) from e

    fault = _find(root, "Fault")
    if fault is not None:
        code = _child_text(fault, "faultcode")
        reason = _child_text(fault, "faultstring") or "Unknown gateway fault"
        _logger.warning("Gateway fault %s: %s", code, reason)
        raise GatewayFault(f"Gateway fault: {reason}", fault_code=code)
    return root


def raise_for_fault(xml_str: str) -> None:
    """Raise GatewayFault if xml_str is a SOAP fault; otherwise do nothing."""
    _parse_document(xml_str)


def _require_result(root: Element, name: str) -> Element:
    result = _find(root, name)
    if result is None:
        raise CommunicationError(
            f"Gateway response has no {name} element", kind=ErrorKind.PROTOCOL
        )
    return result


def element_to_dict(elem: Element) -> Any:
    """Convert an element to plain Python values.

    Leaves become strings (None for empty or xsi:nil); repeated child
    names become lists.
    """
    children = list(elem)
    if not children:
        if elem.get(_XSI_NIL) == "true":
            return None
        text = (elem.text or "").strip()
        return text or None

    data: dict[str, Any] = {}
    for child in children:
        key = _strip_namespace(child.tag)
        value = element_to_dict(child)
        if key in data:
            existing = data[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                data[key] = [existing, value]
        else:
            data[key] = value
    return data


def _decode_b64(value: str | None, field_name: str) -> bytes | None:
    if value is None:
        return None
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CommunicationError(
            f"Invalid Base64 in {field_name}: {e}", kind=ErrorKind.PROTOCOL
        ) from e


def parse_post_sign_request_response(xml_str: str) -> str:
    """
    Parse the PostSignRequest response.

    Returns:
        The signing request identifier.

    Raises:
        GatewayFault: If the gateway rejected the request.
        CommunicationError: If the response cannot be parsed.
    """
    root = _parse_document(xml_str)
    result = _require_result(root, "PostSignRequestResult")
    identifier = (result.text or "").strip()
    if not identifier:
        raise CommunicationError(
            "Gateway returned an empty signing request id", kind=ErrorKind.PROTOCOL
        )
    _logger.debug("Gateway issued signing request id %s", identifier)
    return identifier


def _parse_sign_result(elem: Element) -> SignResult:
    fields = element_to_dict(elem)
    if not isinstance(fields, dict):
        fields = {}
    signature = fields.pop("Signature", None)
    certificate = fields.pop("Certificate", None)
    return SignResult(
        signature=_decode_b64(signature, "Signature"),
        certificate=_decode_b64(certificate, "Certificate"),
        fields=fields,
    )


def parse_get_sign_response(xml_str: str) -> SignResponse:
    """
    Parse the GetSignResponse response.

    Raises:
        GatewayFault: If the gateway rejected the query.
        CommunicationError: If the response cannot be parsed or the status is unknown.
    """
    root = _parse_document(xml_str)
    result = _require_result(root, "GetSignResponseResult")

    status_text = _child_text(result, "Status")
    try:
        status = SignStatus(status_text)
    except ValueError as e:
        raise CommunicationError(
            f"Unknown signing status {status_text!r}", kind=ErrorKind.PROTOCOL
        ) from e

    results: list[SignResult] = []
    container = next(
        (child for child in result if _strip_namespace(child.tag) == "Results"), None
    )
    if container is not None:
        results = [_parse_sign_result(item) for item in container]

    payload = element_to_dict(result)
    response = SignResponse(
        status=status,
        message=_child_text(result, "Message"),
        results=tuple(results),
        payload=payload if isinstance(payload, dict) else {},
    )
    _logger.debug("Parsed sign response: status=%s, results=%d", status.value, len(results))
    return response
