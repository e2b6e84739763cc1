"""
Network interfaces of this machine and their public/private classification.

Interfaces are listed with `ip -br addr`. Classification works per
interface: if any address on an interface is loopback or in a private
range, all addresses on that interface are considered private. A public
listener then never ends up on an interface that is (also) internal.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from typing import Iterable, Optional

from mailhost.common.exceptions import InterfaceEnumerationError

from .addresses import NetworkAddress, parse_addr_ip

logger = logging.getLogger(__name__)

IP_BRIEF_COMMAND = ["ip", "-br", "addr"]

# `ip -br` reports UNKNOWN for interfaces without carrier detection, such
# as loopback and tunnels, which are up nonetheless.
UP_STATES = ("UP", "UNKNOWN")


@dataclass
class RawInterface:
    """An interface as reported by the system, addresses unparsed."""

    name: str
    up: bool
    addresses: list[str] = field(default_factory=list)


@dataclass
class InterfaceObservation:
    """The parsed addresses of one interface that is up."""

    name: str
    addresses: list[NetworkAddress] = field(default_factory=list)

    @property
    def nonpublic(self) -> bool:
        return any(
            addr.is_nonpublic for addr in self.addresses if not addr.is_ignored
        )


@dataclass
class AddressClassification:
    """Addresses of this machine, split into public and private."""

    public: list[str] = field(default_factory=list)
    private: list[str] = field(default_factory=list)


def parse_ip_brief(output: str) -> list[RawInterface]:
    """
    Parse the output of `ip -br addr`.

    Each line holds an interface name, its state, and its addresses:

        lo               UNKNOWN        127.0.0.1/8 ::1/128
        eth0             UP             192.0.2.10/24 fe80::1/64
    """
    interfaces: list[RawInterface] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        name, state = parts[0], parts[1]
        interfaces.append(RawInterface(
            name=name.split("@", 1)[0],
            up=state in UP_STATES,
            addresses=parts[2:],
        ))
    return interfaces


def list_interfaces(timeout: float = 5.0) -> list[RawInterface]:
    """
    List the network interfaces of this machine.

    Raises:
        InterfaceEnumerationError: If the interfaces cannot be listed.
    """
    try:
        result = subprocess.run(
            IP_BRIEF_COMMAND,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise InterfaceEnumerationError(
            f"listing network interfaces: command not available: {' '.join(IP_BRIEF_COMMAND)}"
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise InterfaceEnumerationError(f"listing network interfaces: {e}")

    if result.returncode != 0:
        raise InterfaceEnumerationError(
            "listing network interfaces: command failed",
            {"returncode": result.returncode, "stderr": result.stderr.strip()},
        )

    interfaces = parse_ip_brief(result.stdout)
    logger.debug(f"Found {len(interfaces)} network interface(s)")
    return interfaces


def observe(raw: RawInterface) -> Optional[InterfaceObservation]:
    """Parse the addresses of an interface, None if it is down."""
    if not raw.up:
        return None

    addresses = []
    for s in raw.addresses:
        addr = parse_addr_ip(s)
        if addr is None:
            logger.debug(f"Skipping unparsable address {s!r} on {raw.name}")
            continue
        addresses.append(addr)
    return InterfaceObservation(name=raw.name, addresses=addresses)


def classify(interfaces: Iterable[RawInterface]) -> AddressClassification:
    """
    Split the addresses of all interfaces that are up into public and private.

    Multicast and link-local addresses are left out. An address that
    shows up on both a private and a public interface is only private.
    """
    public: list[str] = []
    private: list[str] = []

    for raw in interfaces:
        observation = observe(raw)
        if observation is None:
            continue

        target = private if observation.nonpublic else public
        for addr in observation.addresses:
            if addr.is_ignored:
                continue
            s = str(addr)
            if s not in target:
                target.append(s)

    private_set = set(private)
    public = [ip for ip in public if ip not in private_set]

    logger.info(f"Classified addresses: public {public}, private {private}")
    return AddressClassification(public=public, private=private)
