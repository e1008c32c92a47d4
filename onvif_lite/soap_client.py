from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional
from urllib.parse import quote, urlsplit, urlunsplit
import xml.etree.ElementTree as ET

import requests
from requests import exceptions as req_exc

from .config import TransportConfig
from .envelope import build_envelope, parse_envelope, value_for_path
from .errors import (
    InvalidServiceAddressError,
    SoapFaultError,
    TransportError,
    TransportTimeoutError,
)
from .models import ParsedEnvelope, SoapRequest
from .security import Clock, NonceSource

logger = logging.getLogger(__name__)

FAULT_REASON_PATH = "Envelope.Body.Fault.Reason.Text"
# SOAP 1.1 devices still answer with a bare faultstring.
FAULT_STRING_PATH = "Envelope.Body.Fault.faultstring"
BODY_CHUNK_SIZE = 8192


def with_basic_credentials(service_address: str, username: str, secret: str) -> str:
    """
    Put ``username:secret@`` into the URL authority.

    requests turns URL userinfo into an HTTP Basic ``Authorization`` header.
    Any userinfo already present in the address is replaced.
    """
    parts = urlsplit(service_address)
    host = parts.netloc.rsplit("@", 1)[-1]
    userinfo = f"{quote(username, safe='')}:{quote(secret, safe='')}"
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{host}"))


def _validate_address(service_address: str) -> None:
    try:
        parts = urlsplit(service_address)
    except ValueError as e:
        raise InvalidServiceAddressError(service_address, str(e)) from e
    if parts.scheme not in ("http", "https"):
        raise InvalidServiceAddressError(service_address, "scheme must be http or https")
    if not parts.hostname:
        raise InvalidServiceAddressError(service_address, "missing host")
    try:
        parts.port
    except ValueError as e:
        raise InvalidServiceAddressError(service_address, str(e)) from e


def fault_reason(root: ParsedEnvelope) -> Optional[str]:
    return value_for_path(root, FAULT_REASON_PATH) or value_for_path(root, FAULT_STRING_PATH) or None


class SoapTransport:
    """
    Sends SOAP 1.2 envelopes over HTTP and classifies the outcome.

    Success returns the parsed response document. A SOAP Fault raises
    ``SoapFaultError``; everything network or parse related raises
    ``TransportError`` or ``TransportTimeoutError``. Nothing is retried.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        *,
        session: Optional[requests.Session] = None,
        nonce_source: Optional[NonceSource] = None,
        clock: Optional[Clock] = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.config = config or TransportConfig()
        self.session = session or requests.Session()
        self._nonce_source = nonce_source
        self._clock = clock
        self._timer = timer

    def __enter__(self) -> "SoapTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": self.config.content_type,
            "Charset": self.config.charset,
        }
        if self.config.user_agent:
            headers["User-Agent"] = self.config.user_agent
        return headers

    def _timeout(self, service_address: str, cause: Optional[BaseException] = None) -> TransportTimeoutError:
        return TransportTimeoutError(
            f"timeout after {self.config.request_timeout_s}s talking to {service_address}",
            cause=cause,
        )

    def _read_body(self, resp: requests.Response, service_address: str, deadline: float) -> bytes:
        # requests applies its timeout per socket read; the deadline caps the whole exchange.
        chunks = []
        try:
            for chunk in resp.iter_content(chunk_size=BODY_CHUNK_SIZE):
                chunks.append(chunk)
                if self._timer() > deadline:
                    raise self._timeout(service_address)
        except req_exc.RequestException as e:
            if self._timer() > deadline:
                raise self._timeout(service_address, e) from e
            raise TransportError(
                f"reading response from {service_address} failed: {e}",
                status_code=resp.status_code,
                cause=e,
            ) from e
        finally:
            resp.close()
        return b"".join(chunks)

    def send(self, service_address: str, request: SoapRequest) -> ParsedEnvelope:
        _validate_address(service_address)
        document = build_envelope(request, nonce_source=self._nonce_source, clock=self._clock)

        url = service_address
        if request.authenticated and request.use_http_auth:
            url = with_basic_credentials(service_address, request.username, request.secret)

        logger.debug("POST %s (%d bytes)", service_address, len(document))
        deadline = self._timer() + self.config.request_timeout_s
        try:
            resp = self.session.post(
                url,
                data=document.encode("utf-8"),
                headers=self._headers(),
                timeout=self.config.request_timeout_s,
                stream=True,
            )
        except req_exc.Timeout as e:
            raise self._timeout(service_address, e) from e
        except req_exc.RequestException as e:
            raise TransportError(f"request failed to {service_address}: {e}", cause=e) from e

        status = resp.status_code
        content = self._read_body(resp, service_address, deadline)
        try:
            root = parse_envelope(content)
        except ET.ParseError as e:
            raise TransportError(
                f"invalid XML response from {service_address} (HTTP {status})",
                status_code=status,
                cause=e,
            ) from e

        reason = fault_reason(root)
        if reason:
            logger.warning("SOAP fault from %s: %s", service_address, reason)
            raise SoapFaultError(reason, status_code=status)

        if not (200 <= status < 300):
            raise TransportError(
                f"bad status {status} from {service_address}",
                status_code=status,
            )
        return root


def send_request(
    service_address: str,
    request: SoapRequest,
    *,
    config: Optional[TransportConfig] = None,
) -> ParsedEnvelope:
    with SoapTransport(config) as transport:
        return transport.send(service_address, request)


__all__ = [
    "FAULT_REASON_PATH",
    "SoapTransport",
    "send_request",
    "with_basic_credentials",
    "fault_reason",
]
