from __future__ import annotations

import re
from typing import Optional
import xml.etree.ElementTree as ET

from .models import ParsedEnvelope, SoapRequest
from .security import Clock, NonceSource, generate_token, render_security_header


SOAP_ENV = "http://www.w3.org/2003/05/soap-envelope"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

_BETWEEN_TAGS = re.compile(r">\s+<")


def collapse_whitespace(document: str) -> str:
    """Drop whitespace that only separates tags; text nodes stay intact."""
    return _BETWEEN_TAGS.sub("><", document).strip()


def build_envelope(
    request: SoapRequest,
    *,
    nonce_source: Optional[NonceSource] = None,
    clock: Optional[Clock] = None,
) -> str:
    declarations = " ".join([f'xmlns:s="{SOAP_ENV}"', *request.namespaces])

    header = ""
    if request.authenticated and request.use_ws_security:
        token = generate_token(
            request.username,
            request.secret,
            request.token_freshness_offset,
            nonce_source=nonce_source,
            clock=clock,
        )
        header = f"<s:Header>{render_security_header(token)}</s:Header>"

    document = f"""{XML_DECLARATION}
<s:Envelope {declarations}>{header}
  <s:Body>
    {request.body}
  </s:Body>
</s:Envelope>
"""
    return collapse_whitespace(document)


def parse_envelope(raw: bytes | str) -> ParsedEnvelope:
    """Decode a SOAP document; raises ``ET.ParseError`` on malformed input."""
    return ET.fromstring(raw)


def local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def find_path(root: ParsedEnvelope, path: str) -> Optional[ET.Element]:
    """
    Follow a dotted path of local element names, ignoring namespaces.

    The first segment names the root itself, so ``"Envelope.Body.Fault"``
    starts at the document element. Where siblings share a name the first
    one is followed.
    """
    parts = path.split(".")
    if not parts or local_name(root.tag) != parts[0]:
        return None
    node = root
    for part in parts[1:]:
        node = next((child for child in node if local_name(child.tag) == part), None)
        if node is None:
            return None
    return node


def value_for_path(root: ParsedEnvelope, path: str) -> Optional[str]:
    el = find_path(root, path)
    if el is None or el.text is None:
        return None
    return el.text.strip()


__all__ = [
    "SOAP_ENV",
    "collapse_whitespace",
    "build_envelope",
    "parse_envelope",
    "local_name",
    "find_path",
    "value_for_path",
]
