"""
DNS lookups used for crawler verification.

The system resolver calls (``gethostbyaddr``, ``getaddrinfo``) block, so they
run on the event loop's default executor. Callers bound them with
``asyncio.wait_for``; on expiry the awaiting coroutine returns immediately
and the executor thread finishes on its own, its result discarded.
"""

import asyncio
import ipaddress
import logging
import socket
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    """Anything that can do reverse and forward lookups."""

    async def reverse(self, ip: str) -> Optional[str]:
        """Return the hostname for ``ip`` or None."""
        ...

    async def forward(self, hostname: str) -> List[str]:
        """Return every address ``hostname`` resolves to (v4 and v6)."""
        ...


def normalize_ip(ip: str) -> str:
    """
    Canonical text form of an address, so equal addresses compare equal.

    - IPv6 is compressed and lowercased ("2001:DB8:0::1" -> "2001:db8::1")
    - IPv4-mapped IPv6 is unwrapped ("::ffff:192.0.2.1" -> "192.0.2.1")
    - Scope ids are dropped ("fe80::1%eth0" -> "fe80::1")

    Strings that are not addresses are returned unchanged.
    """
    try:
        address = ipaddress.ip_address(ip.split("%", 1)[0])
    except ValueError:
        return ip

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        address = address.ipv4_mapped
    return address.compressed


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value.split("%", 1)[0])
    except ValueError:
        return False
    return True


class SystemResolver:
    """Resolver backed by the host's libc resolver."""

    async def reverse(self, ip: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            hostname, _aliases, _addresses = await loop.run_in_executor(
                None, socket.gethostbyaddr, ip
            )
        except OSError as e:
            logger.debug(f"Reverse lookup for {ip} failed: {e}")
            return None
        return hostname

    async def forward(self, hostname: str) -> List[str]:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                hostname, None, type=socket.SOCK_STREAM
            )
        except OSError as e:
            logger.debug(f"Forward lookup for {hostname} failed: {e}")
            return []

        addresses = []
        for _family, _type, _proto, _canonname, sockaddr in infos:
            addresses.append(sockaddr[0])
        return addresses
