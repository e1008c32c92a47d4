from __future__ import annotations

import base64
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional, Tuple
import xml.etree.ElementTree as ET


# Decoded XML document returned by the SOAP transport.
ParsedEnvelope = ET.Element


def new_message_id() -> str:
    return f"uuid:{uuid.uuid4()}"


@dataclass(frozen=True, slots=True)
class Device:
    id: str
    name: str
    service_address: str


@dataclass(frozen=True, slots=True)
class DiscoveryRequest:
    message_id: str

    @classmethod
    def new(cls, factory: Optional[Callable[[], str]] = None) -> "DiscoveryRequest":
        return cls(message_id=(factory or new_message_id)())


@dataclass(frozen=True, slots=True)
class SoapRequest:
    """
    One SOAP operation supplied by a service binding.

    ``namespaces`` are raw attribute declarations (``'xmlns:tds="..."'``)
    copied onto the envelope root as-is.
    """

    body: str
    namespaces: Tuple[str, ...] = ()
    username: str = ""
    secret: str = ""
    token_freshness_offset: timedelta = field(default_factory=timedelta)
    use_ws_security: bool = True
    use_http_auth: bool = True

    def __post_init__(self) -> None:
        # Accept any iterable from callers but keep the stored value immutable.
        object.__setattr__(self, "namespaces", tuple(self.namespaces))

    @property
    def authenticated(self) -> bool:
        return bool(self.username)


@dataclass(frozen=True, slots=True)
class SecurityToken:
    username: str
    nonce: bytes
    created: str
    digest: str

    @property
    def nonce_b64(self) -> str:
        return base64.b64encode(self.nonce).decode("ascii")


__all__ = [
    "ParsedEnvelope",
    "Device",
    "DiscoveryRequest",
    "SoapRequest",
    "SecurityToken",
    "new_message_id",
]
