"""
DNS resolver used for identity discovery.

Resolver is the small interface the discovery pipeline needs: reverse
lookups, forward lookups and DNS block list queries, each with a timeout
chosen by the caller. DNSPythonResolver implements it with dnspython.
"""

import ipaddress
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import dns.exception
import dns.resolver
import dns.reversename

from mailhost.common.exceptions import DNSLookupError

logger = logging.getLogger(__name__)

# Answers a DNSBL gives when it refuses to answer, e.g. to queries coming
# through large public resolvers, instead of a listing.
BLOCKLIST_REFUSAL_NETWORK = ipaddress.ip_network("127.255.255.0/24")
BLOCKLIST_LISTED_NETWORK = ipaddress.ip_network("127.0.0.0/8")


class BlocklistStatus(str, Enum):
    """Outcome of a DNS block list query."""

    PASS = "pass"
    LISTED = "listed"
    ERROR = "error"


@dataclass(frozen=True)
class BlocklistLookup:
    """Answer of a single DNS block list query."""

    status: BlocklistStatus
    explanation: str = ""
    error: Optional[str] = None


class Resolver(ABC):
    """DNS operations needed to discover and verify a host's identity."""

    @abstractmethod
    def lookup_addr(self, ip: str, timeout: float) -> list[str]:
        """
        Return the reverse (PTR) names of an IP address.

        Raises:
            DNSLookupError: If the lookup fails or times out.
        """

    @abstractmethod
    def lookup_ip_addr(self, fqdn: str, timeout: float) -> list[str]:
        """
        Return the IPv4 and IPv6 addresses of a name.

        Raises:
            DNSLookupError: If the lookup fails or times out.
        """

    @abstractmethod
    def lookup_blocklist(self, zone: str, ip: str, timeout: float) -> BlocklistLookup:
        """Query DNS block list zone for ip. Never raises for DNS failures."""


def blocklist_query_name(zone: str, ip: str) -> str:
    """
    Return the name to query for ip in a DNSBL zone.

    IPv4 addresses have their octets reversed, IPv6 addresses their
    nibbles, as in the reverse DNS trees.
    """
    reverse = dns.reversename.from_address(ip)
    # Drop "in-addr.arpa." or "ip6.arpa." including the root label.
    labels = [label.decode("ascii") for label in reverse.labels[:-3]]
    return ".".join(labels + [zone.rstrip(".")])


class DNSPythonResolver(Resolver):
    """
    Resolver backed by dnspython.

    Every lookup is bounded by the timeout passed in, which is used as the
    dnspython lifetime for the whole query including retries.
    """

    def __init__(self, nameservers: Optional[list[str]] = None) -> None:
        """
        Initialize the resolver.

        Args:
            nameservers: Custom DNS resolver addresses, the system
                configuration is used when empty.
        """
        self._resolver = dns.resolver.Resolver()
        if nameservers:
            self._resolver.nameservers = list(nameservers)

        logger.debug(f"Initialized DNS resolver with {self._resolver.nameservers}")

    def lookup_addr(self, ip: str, timeout: float) -> list[str]:
        try:
            answers = self._resolver.resolve_address(ip, lifetime=timeout)
        except dns.resolver.NXDOMAIN:
            raise DNSLookupError(ip, "PTR", {"reason": "no reverse name"})
        except dns.resolver.NoAnswer:
            raise DNSLookupError(ip, "PTR", {"reason": "no answer"})
        except dns.exception.Timeout:
            raise DNSLookupError(ip, "PTR", {"reason": "timeout"})
        except (dns.exception.DNSException, ValueError) as e:
            raise DNSLookupError(ip, "PTR", {"reason": str(e)})

        return [rdata.target.to_text() for rdata in answers]

    def lookup_ip_addr(self, fqdn: str, timeout: float) -> list[str]:
        try:
            answers = self._resolver.resolve_name(fqdn, lifetime=timeout)
        except dns.resolver.NXDOMAIN:
            raise DNSLookupError(fqdn, "A/AAAA", {"reason": "domain not found"})
        except dns.resolver.NoAnswer:
            raise DNSLookupError(fqdn, "A/AAAA", {"reason": "no answer"})
        except dns.exception.Timeout:
            raise DNSLookupError(fqdn, "A/AAAA", {"reason": "timeout"})
        except dns.exception.DNSException as e:
            raise DNSLookupError(fqdn, "A/AAAA", {"reason": str(e)})

        return list(answers.addresses())

    def lookup_blocklist(self, zone: str, ip: str, timeout: float) -> BlocklistLookup:
        started = time.monotonic()
        try:
            query = blocklist_query_name(zone, ip)
        except (dns.exception.DNSException, ValueError) as e:
            return BlocklistLookup(BlocklistStatus.ERROR, error=f"invalid address: {e}")

        try:
            answers = self._resolver.resolve(query, "A", lifetime=timeout)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            return BlocklistLookup(BlocklistStatus.PASS)
        except dns.exception.Timeout:
            return BlocklistLookup(BlocklistStatus.ERROR, error="timeout")
        except dns.exception.DNSException as e:
            return BlocklistLookup(BlocklistStatus.ERROR, error=str(e))

        codes = [rdata.address for rdata in answers]
        for code in codes:
            address = ipaddress.ip_address(code)
            if address in BLOCKLIST_REFUSAL_NETWORK or address not in BLOCKLIST_LISTED_NETWORK:
                return BlocklistLookup(
                    BlocklistStatus.ERROR,
                    error=f"unexpected return code {code}, query refused by block list",
                )

        remaining = max(timeout - (time.monotonic() - started), 0.1)
        return BlocklistLookup(
            BlocklistStatus.LISTED,
            explanation=self._txt_reason(query, remaining) or ", ".join(codes),
        )

    def _txt_reason(self, query: str, timeout: float) -> str:
        """Fetch the listing reason from the zone's TXT record, if any."""
        try:
            answers = self._resolver.resolve(query, "TXT", lifetime=timeout)
        except dns.exception.DNSException as e:
            logger.debug(f"No TXT reason for {query}: {e}")
            return ""

        reasons = []
        for rdata in answers:
            reasons.append("".join(
                s.decode("utf-8", errors="replace") for s in rdata.strings
            ))
        return "; ".join(reasons)
