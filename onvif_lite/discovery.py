from __future__ import annotations

import logging
import socket
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta
from typing import Callable, Iterable, List, Optional, Union

from .config import DiscoveryConfig
from .envelope import collapse_whitespace
from .errors import (
    DiscoveryError,
    DiscoverySetupError,
    MalformedResponseError,
    UnrelatedResponseError,
)
from .interfaces import eligible_ipv4_addresses
from .models import Device, DiscoveryRequest
from .probe_match import parse_probe_match

logger = logging.getLogger(__name__)

AddressProvider = Callable[[], List[str]]
SocketFactory = Callable[[], socket.socket]
StopCheck = Callable[[], bool]
Duration = Union[float, int, timedelta]


def build_probe(message_id: str, probe_types: str) -> bytes:
    return collapse_whitespace(f"""<?xml version="1.0" encoding="UTF-8"?>
<e:Envelope xmlns:e="http://www.w3.org/2003/05/soap-envelope"
            xmlns:w="http://schemas.xmlsoap.org/ws/2004/08/addressing"
            xmlns:d="http://schemas.xmlsoap.org/ws/2005/04/discovery"
            xmlns:dn="http://www.onvif.org/ver10/network/wsdl">
  <e:Header>
    <w:MessageID>{message_id}</w:MessageID>
    <w:To e:mustUnderstand="true">urn:schemas-xmlsoap-org:ws:2005:04:discovery</w:To>
    <w:Action e:mustUnderstand="true">http://schemas.xmlsoap.org/ws/2005/04/discovery/Probe</w:Action>
  </e:Header>
  <e:Body>
    <d:Probe>
      <d:Types>{probe_types}</d:Types>
    </d:Probe>
  </e:Body>
</e:Envelope>
""").encode("utf-8")


def _udp_socket() -> socket.socket:
    return socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)


def _seconds(duration: Duration) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


def _merge(batches: Iterable[List[Device]]) -> List[Device]:
    merged: List[Device] = []
    seen: set[Device] = set()
    for batch in batches:
        for device in batch:
            if device not in seen:
                seen.add(device)
                merged.append(device)
    return merged


class DiscoveryEngine:
    """
    WS-Discovery client: one probe per eligible local address, then collect
    ProbeMatches until the deadline.

    Any failure on any address aborts the whole call. Responses to other
    probes on the same multicast group are dropped silently.
    """

    def __init__(
        self,
        config: Optional[DiscoveryConfig] = None,
        *,
        address_provider: Optional[AddressProvider] = None,
        socket_factory: Optional[SocketFactory] = None,
        message_id_factory: Optional[Callable[[], str]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or DiscoveryConfig()
        self._address_provider = address_provider or eligible_ipv4_addresses
        self._socket_factory = socket_factory or _udp_socket
        self._message_id_factory = message_id_factory
        self._clock = clock

    def discover(self, duration: Duration, *, stop_event: Optional[threading.Event] = None) -> List[Device]:
        seconds = _seconds(duration)
        addresses = self._address_provider()
        if not addresses:
            logger.info("no eligible IPv4 interface for discovery")
            return []

        def caller_stop() -> bool:
            return stop_event is not None and stop_event.is_set()

        if self.config.concurrent and len(addresses) > 1:
            batches = self._discover_concurrently(addresses, seconds, caller_stop)
        else:
            batches = [self.discover_on(addr, seconds, should_stop=caller_stop) for addr in addresses]

        devices = _merge(batches)
        logger.info("discovery finished: %d device(s) on %d address(es)", len(devices), len(addresses))
        return devices

    def _discover_concurrently(
        self, addresses: List[str], seconds: float, caller_stop: StopCheck
    ) -> List[List[Device]]:
        abort = threading.Event()

        def should_stop() -> bool:
            return abort.is_set() or caller_stop()

        batches: List[List[Device]] = []
        first_error: Optional[BaseException] = None
        with ThreadPoolExecutor(max_workers=len(addresses)) as pool:
            futures = [pool.submit(self.discover_on, addr, seconds, should_stop=should_stop) for addr in addresses]
            for fut in as_completed(futures):
                try:
                    batches.append(fut.result())
                except Exception as e:
                    # Stop the other sessions early; their sockets close on the way out.
                    abort.set()
                    if first_error is None:
                        first_error = e
        if first_error is not None:
            raise first_error
        return batches

    def discover_on(
        self,
        address: str,
        duration: Duration,
        *,
        should_stop: Optional[StopCheck] = None,
    ) -> List[Device]:
        """Run one probe/collect session bound to ``address``."""
        request = DiscoveryRequest.new(self._message_id_factory)
        probe = build_probe(request.message_id, self.config.probe_types)

        try:
            sock = self._socket_factory()
        except OSError as e:
            raise DiscoverySetupError(f"cannot create UDP socket: {e}", cause=e) from e
        try:
            try:
                sock.bind((address, 0))
            except OSError as e:
                raise DiscoverySetupError(f"cannot bind UDP socket on {address}: {e}", cause=e) from e
            try:
                # Multicast otherwise leaves through the default route, not this interface.
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(address))
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.config.multicast_ttl)
            except OSError as e:
                raise DiscoverySetupError(f"cannot route multicast via {address}: {e}", cause=e) from e
            try:
                sock.sendto(probe, self.config.multicast_address)
            except OSError as e:
                raise DiscoverySetupError(f"cannot send probe from {address}: {e}", cause=e) from e
            logger.debug("probe %s sent from %s", request.message_id, address)

            deadline = self._clock() + _seconds(duration)
            return self._collect(sock, request, deadline, should_stop or (lambda: False))
        finally:
            sock.close()

    def _collect(
        self,
        sock: socket.socket,
        request: DiscoveryRequest,
        deadline: float,
        should_stop: StopCheck,
    ) -> List[Device]:
        devices: List[Device] = []
        poll = self.config.poll_interval_s
        while not should_stop():
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            sock.settimeout(min(remaining, poll) if poll > 0 else remaining)
            try:
                data, sender = sock.recvfrom(self.config.max_datagram_size)
            except socket.timeout:
                continue
            except OSError as e:
                raise DiscoveryError(f"receive failed: {e}", cause=e) from e

            src_ip = sender[0] if sender else "?"
            try:
                device = parse_probe_match(request.message_id, data)
            except UnrelatedResponseError as e:
                logger.debug("dropping response from %s: %s", src_ip, e)
                continue
            except MalformedResponseError as e:
                if not self.config.skip_malformed:
                    raise
                logger.warning("skipping malformed response from %s: %s", src_ip, e)
                continue

            if device not in devices:
                logger.debug("found %s (%s) at %s", device.id, device.name or "-", device.service_address)
                devices.append(device)
        return devices


def discover(
    duration: Duration,
    *,
    config: Optional[DiscoveryConfig] = None,
    stop_event: Optional[threading.Event] = None,
) -> List[Device]:
    return DiscoveryEngine(config).discover(duration, stop_event=stop_event)


__all__ = [
    "DiscoveryEngine",
    "build_probe",
    "discover",
]
