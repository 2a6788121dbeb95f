"""SOAP envelope builders for MSign gateway requests."""

from __future__ import annotations

import base64
from xml.sax.saxutils import escape as _xml_escape

from ..constants import SOAP_CONTRACT_NAMESPACE

OPERATION_POST_SIGN_REQUEST = "PostSignRequest"
OPERATION_GET_SIGN_RESPONSE = "GetSignResponse"


def xml_escape(s: str) -> str:
    """Escape XML special characters in user input."""
    return _xml_escape(s, {'"': "&quot;", "'": "&apos;"})


def soap_action(operation: str) -> str:
    """SOAPAction URI for a contract operation."""
    return f"{SOAP_CONTRACT_NAMESPACE}IMSign/{operation}"


def _wrap(body: str) -> str:
    return f"""\
<?xml version="1.0" encoding="utf-8"?>
<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/"
               xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
  <soap:Body>
    {body}
  </soap:Body>
</soap:Envelope>"""


def build_post_sign_request_envelope(
    content: bytes,
    file_name: str,
    description: str,
    content_type: str,
) -> str:
    """Build the PostSignRequest envelope for a single document.

    All strings are XML-escaped internally; the document travels base64.
    """
    content_b64 = base64.b64encode(content).decode("ascii")
    return _wrap(
        f"""<{OPERATION_POST_SIGN_REQUEST} xmlns="{SOAP_CONTRACT_NAMESPACE}">
      <request>
        <ContentType>{xml_escape(content_type)}</ContentType>
        <Contents>
          <SignContent>
            <Content>{content_b64}</Content>
            <Name>{xml_escape(file_name)}</Name>
          </SignContent>
        </Contents>
        <ShortContentDescription>{xml_escape(description)}</ShortContentDescription>
      </request>
    </{OPERATION_POST_SIGN_REQUEST}>"""
    )


def build_get_sign_response_envelope(request_id: str, language: str) -> str:
    """Build the GetSignResponse envelope."""
    return _wrap(
        f"""<{OPERATION_GET_SIGN_RESPONSE} xmlns="{SOAP_CONTRACT_NAMESPACE}">
      <requestID>{xml_escape(request_id)}</requestID>
      <language>{xml_escape(language)}</language>
    </{OPERATION_GET_SIGN_RESPONSE}>"""
    )
