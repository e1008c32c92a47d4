"""
Minimal ONVIF client core: WS-Discovery probing and authenticated SOAP requests.
"""

from .config import DiscoveryConfig, TransportConfig
from .discovery import DiscoveryEngine, discover
from .errors import (
    DiscoveryError,
    DiscoverySetupError,
    ErrorKind,
    InvalidServiceAddressError,
    MalformedResponseError,
    NoServiceAddressError,
    OnvifError,
    SoapFaultError,
    TokenGenerationError,
    TransportError,
    TransportTimeoutError,
    UnrelatedResponseError,
)
from .log import configure_logging
from .models import Device, DiscoveryRequest, ParsedEnvelope, SecurityToken, SoapRequest
from .soap_client import SoapTransport, send_request

__all__ = [
    "discover",
    "send_request",
    "DiscoveryEngine",
    "SoapTransport",
    "DiscoveryConfig",
    "TransportConfig",
    "Device",
    "DiscoveryRequest",
    "ParsedEnvelope",
    "SecurityToken",
    "SoapRequest",
    "configure_logging",
    "ErrorKind",
    "OnvifError",
    "TokenGenerationError",
    "DiscoverySetupError",
    "DiscoveryError",
    "InvalidServiceAddressError",
    "TransportError",
    "TransportTimeoutError",
    "SoapFaultError",
    "MalformedResponseError",
    "NoServiceAddressError",
    "UnrelatedResponseError",
]
