from __future__ import annotations

import enum
from typing import Optional


class ErrorKind(enum.Enum):
    TOKEN_GENERATION = "token_generation"
    SETUP = "setup"
    TRANSPORT = "transport"
    TRANSPORT_TIMEOUT = "transport_timeout"
    SOAP_FAULT = "soap_fault"
    MALFORMED_RESPONSE = "malformed_response"
    UNRELATED_RESPONSE = "unrelated_response"
    NO_SERVICE_ADDRESS = "no_service_address"


class OnvifError(Exception):
    """
    Base class for every failure raised by the discovery and SOAP engines.

    Callers branch on ``kind`` rather than on the message text.
    """

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TokenGenerationError(OnvifError):
    kind = ErrorKind.TOKEN_GENERATION


class DiscoverySetupError(OnvifError):
    """Interface enumeration, bind or probe send failed."""

    kind = ErrorKind.SETUP


class InvalidServiceAddressError(OnvifError):
    kind = ErrorKind.SETUP

    def __init__(self, address: str, detail: str = "not an absolute URL"):
        self.address = address
        super().__init__(f"invalid service address {address!r}: {detail}")


class TransportError(OnvifError):
    kind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class DiscoveryError(OnvifError):
    """Socket failure while collecting discovery responses."""

    kind = ErrorKind.TRANSPORT


class TransportTimeoutError(OnvifError):
    kind = ErrorKind.TRANSPORT_TIMEOUT


class SoapFaultError(OnvifError):
    kind = ErrorKind.SOAP_FAULT

    def __init__(self, reason: str, *, status_code: Optional[int] = None):
        self.reason = str(reason)
        self.status_code = status_code
        super().__init__(self.reason)


class MalformedResponseError(OnvifError):
    kind = ErrorKind.MALFORMED_RESPONSE


class NoServiceAddressError(MalformedResponseError):
    kind = ErrorKind.NO_SERVICE_ADDRESS


class UnrelatedResponseError(OnvifError):
    kind = ErrorKind.UNRELATED_RESPONSE

    def __init__(self, expected: str, got: Optional[str]):
        self.expected = expected
        self.got = got
        super().__init__(f"response relates to {got!r}, expected {expected!r}")


__all__ = [
    "ErrorKind",
    "OnvifError",
    "TokenGenerationError",
    "DiscoverySetupError",
    "InvalidServiceAddressError",
    "TransportError",
    "DiscoveryError",
    "TransportTimeoutError",
    "SoapFaultError",
    "MalformedResponseError",
    "NoServiceAddressError",
    "UnrelatedResponseError",
]
