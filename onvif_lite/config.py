from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


WS_DISCOVERY_GROUP = "239.255.255.250"
WS_DISCOVERY_PORT = 3702
NETWORK_VIDEO_TRANSMITTER = "dn:NetworkVideoTransmitter"


@dataclass(slots=True)
class TransportConfig:
    """
    HTTP settings for the SOAP transport.

    Held by each ``SoapTransport`` instead of living in a module-level client,
    so tests and callers can pick their own timeout.

    ``request_timeout_s`` bounds the whole exchange: it is handed to requests
    for connect and each read, and the body is streamed against the same
    deadline so a device trickling bytes cannot outlast it.
    """

    request_timeout_s: float = 5.0
    content_type: str = "application/soap+xml"
    charset: str = "utf-8"
    user_agent: Optional[str] = None


@dataclass(slots=True)
class DiscoveryConfig:
    multicast_group: str = WS_DISCOVERY_GROUP
    multicast_port: int = WS_DISCOVERY_PORT
    probe_types: str = NETWORK_VIDEO_TRANSMITTER
    # Probes stay on the local segment.
    multicast_ttl: int = 1
    max_datagram_size: int = 65535
    # Receive calls wake up at least this often to check the stop event.
    poll_interval_s: float = 0.25
    # Probe every local address at the same time instead of one after another.
    concurrent: bool = False
    # Log and drop undecodable datagrams instead of failing the whole call.
    skip_malformed: bool = False

    @property
    def multicast_address(self) -> tuple[str, int]:
        return (self.multicast_group, self.multicast_port)


__all__ = [
    "WS_DISCOVERY_GROUP",
    "WS_DISCOVERY_PORT",
    "NETWORK_VIDEO_TRANSMITTER",
    "TransportConfig",
    "DiscoveryConfig",
]
