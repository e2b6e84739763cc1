"""
Pytest fixtures for mailhost tests.

This module provides a scripted resolver and short-timeout settings, so
no test touches the network or the interfaces of the machine it runs on.
"""

import os
import sys
import threading
import time
from typing import Optional

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from mailhost.common.config import DNSSettings, Settings  # noqa: E402
from mailhost.common.exceptions import DNSLookupError  # noqa: E402
from mailhost.dns.resolver import BlocklistLookup, BlocklistStatus, Resolver  # noqa: E402
from mailhost.identity.interfaces import RawInterface  # noqa: E402


class StubResolver(Resolver):
    """
    Resolver answering from tables instead of DNS.

    Table values are either the answer or an exception to raise. Keys in
    `delays` make a lookup sleep first, keys in `hang` make it block until
    `release` is set.
    """

    def __init__(
        self,
        reverse: Optional[dict] = None,
        forward: Optional[dict] = None,
        blocklist: Optional[dict] = None,
        delays: Optional[dict] = None,
        hang: Optional[set] = None,
    ) -> None:
        self.reverse = reverse or {}
        self.forward = forward or {}
        self.blocklist = blocklist or {}
        self.delays = delays or {}
        self.hang = hang or set()
        self.release = threading.Event()
        self.calls: list[tuple] = []
        self.timeouts: list[float] = []

    def _wait(self, key: tuple, timeout: float) -> None:
        self.calls.append(key)
        self.timeouts.append(timeout)
        if key in self.hang:
            self.release.wait(10)
        if key in self.delays:
            time.sleep(self.delays[key])

    def lookup_addr(self, ip: str, timeout: float) -> list[str]:
        key = ("PTR", ip)
        self._wait(key, timeout)
        value = self.reverse.get(
            ip, DNSLookupError(ip, "PTR", {"reason": "no reverse name"})
        )
        if isinstance(value, Exception):
            raise value
        return list(value)

    def lookup_ip_addr(self, fqdn: str, timeout: float) -> list[str]:
        name = fqdn.rstrip(".")
        key = ("A/AAAA", name)
        self._wait(key, timeout)
        value = self.forward.get(
            name, DNSLookupError(name, "A/AAAA", {"reason": "domain not found"})
        )
        if isinstance(value, Exception):
            raise value
        return list(value)

    def lookup_blocklist(self, zone: str, ip: str, timeout: float) -> BlocklistLookup:
        key = ("DNSBL", zone, ip)
        self._wait(key, timeout)
        value = self.blocklist.get((zone, ip), BlocklistLookup(BlocklistStatus.PASS))
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def resolver():
    """Provide an empty StubResolver, releasing hung lookups afterwards."""
    stub = StubResolver()
    yield stub
    stub.release.set()


@pytest.fixture
def settings():
    """Settings with short timeouts and the default block list zones."""
    return Settings(dns=DNSSettings(timeout=3.0, probe_timeout=1.0, nameservers=[]))


@pytest.fixture
def public_interfaces():
    """A machine with loopback, one public and one private interface."""
    return [
        RawInterface("lo", True, ["127.0.0.1/8", "::1/128"]),
        RawInterface("eth0", True, ["198.51.100.5/24", "fe80::1/64"]),
        RawInterface("eth1", True, ["10.0.0.5/24"]),
    ]
