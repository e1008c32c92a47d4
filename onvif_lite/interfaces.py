from __future__ import annotations

import ipaddress
import logging
from typing import Iterable, List

import netifaces

from .errors import DiscoverySetupError

logger = logging.getLogger(__name__)


def is_eligible(address: str) -> bool:
    """IPv4, not loopback, not link-local (169.254/16)."""
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return ip.version == 4 and not ip.is_loopback and not ip.is_link_local


def _interface_ipv4_addresses() -> Iterable[str]:
    for if_name in netifaces.interfaces():
        iface_info = netifaces.ifaddresses(if_name)
        for addr_dict in iface_info.get(netifaces.AF_INET, []):
            addr = addr_dict.get("addr")
            if addr:
                yield addr


def eligible_ipv4_addresses() -> List[str]:
    """Local addresses a discovery probe should be sent from."""
    try:
        candidates = list(_interface_ipv4_addresses())
    except (OSError, ValueError) as e:
        raise DiscoverySetupError(f"cannot enumerate network interfaces: {e}", cause=e) from e

    result: List[str] = []
    for addr in candidates:
        if is_eligible(addr) and addr not in result:
            result.append(addr)
    logger.debug("eligible local addresses: %s", result)
    return result


__all__ = ["is_eligible", "eligible_ipv4_addresses"]
