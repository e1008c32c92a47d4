from __future__ import annotations

from typing import Iterable
from urllib.parse import unquote
import xml.etree.ElementTree as ET

from .envelope import parse_envelope, value_for_path
from .errors import MalformedResponseError, NoServiceAddressError, UnrelatedResponseError
from .models import Device


RELATES_TO_PATH = "Envelope.Header.RelatesTo"
PROBE_MATCH_PATH = "Envelope.Body.ProbeMatches.ProbeMatch"
DEVICE_ID_PREFIX = "urn:uuid:"
NAME_SCOPE_PREFIX = "onvif://www.onvif.org/name/"


def name_from_scopes(scopes: Iterable[str]) -> str:
    for scope in scopes:
        if scope.startswith(NAME_SCOPE_PREFIX):
            return unquote(scope[len(NAME_SCOPE_PREFIX):]).replace("_", " ")
    return ""


def parse_probe_match(expected_message_id: str, raw: bytes) -> Device:
    """
    Decode one ProbeMatches datagram into a ``Device``.

    Raises ``UnrelatedResponseError`` when the datagram answers someone
    else's probe; callers sharing the multicast group should just drop it.
    """
    try:
        root = parse_envelope(raw)
    except ET.ParseError as e:
        raise MalformedResponseError(f"undecodable discovery response: {e}", cause=e) from e

    relates_to = value_for_path(root, RELATES_TO_PATH)
    if relates_to != expected_message_id:
        raise UnrelatedResponseError(expected_message_id, relates_to)

    address = value_for_path(root, f"{PROBE_MATCH_PATH}.EndpointReference.Address")
    if not address:
        raise MalformedResponseError("ProbeMatch has no EndpointReference address")
    device_id = address[len(DEVICE_ID_PREFIX):] if address.startswith(DEVICE_ID_PREFIX) else address

    scopes = (value_for_path(root, f"{PROBE_MATCH_PATH}.Scopes") or "").split()
    xaddrs = (value_for_path(root, f"{PROBE_MATCH_PATH}.XAddrs") or "").split()
    if not xaddrs:
        raise NoServiceAddressError(f"device {device_id} does not have any xAddr")

    return Device(id=device_id, name=name_from_scopes(scopes), service_address=xaddrs[0])


__all__ = [
    "DEVICE_ID_PREFIX",
    "NAME_SCOPE_PREFIX",
    "name_from_scopes",
    "parse_probe_match",
]
