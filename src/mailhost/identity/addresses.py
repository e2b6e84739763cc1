"""
Parsing of interface addresses.

Interface listings give addresses in CIDR form ("192.0.2.1/24"), and IPv6
addresses sometimes in brackets ("[2001:db8::1]/64"). parse_addr_ip turns
such a string into a NetworkAddress, or None when it cannot be parsed.
"""

import ipaddress
from dataclasses import dataclass
from typing import Optional, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# Only the RFC 1918 ranges and IPv6 unique local addresses count as private.
# ipaddress' is_private is much wider, it includes documentation and
# reserved ranges.
PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("fc00::/7"),
)


@dataclass(frozen=True)
class NetworkAddress:
    """An IP address found on a network interface."""

    ip: IPAddress

    def __str__(self) -> str:
        return str(self.ip)

    @property
    def is_loopback(self) -> bool:
        return self.ip.is_loopback

    @property
    def is_link_local(self) -> bool:
        return self.ip.is_link_local

    @property
    def is_multicast(self) -> bool:
        return self.ip.is_multicast

    @property
    def is_private(self) -> bool:
        return any(
            self.ip.version == network.version and self.ip in network
            for network in PRIVATE_NETWORKS
        )

    @property
    def is_ignored(self) -> bool:
        """Multicast and link-local addresses are never listened on."""
        return self.is_multicast or self.is_link_local

    @property
    def is_nonpublic(self) -> bool:
        return self.is_loopback or self.is_private


def parse_addr_ip(raw: str) -> Optional[NetworkAddress]:
    """
    Parse an interface address, returning None if it is malformed.

    Accepts plain addresses, CIDR notation and bracketed IPv6 literals
    with or without prefix length.
    """
    s = raw.strip()
    prefix = ""
    if "/" in s:
        s, prefix = s.split("/", 1)
        if not prefix.isdigit():
            return None
    if s.startswith("[") and s.endswith("]"):
        s = s[1:-1]

    try:
        ip = ipaddress.ip_address(s)
    except ValueError:
        return None

    if prefix and int(prefix) > ip.max_prefixlen:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.scope_id:
        ip = ipaddress.IPv6Address(s.split("%", 1)[0])
    return NetworkAddress(ip)
