"""
Identity discovery pipeline.

Runs the stages in order: interface classification, hostname derivation,
forward/reverse consistency and block list checks. All DNS work shares
one time budget from the settings, so broken name resolution cannot make
setup hang. Only invalid operator input and a failure to list the network
interfaces abort discovery, everything else ends up as a warning. With an
explicit hostname the interfaces are not listed at all.
"""

import logging
import socket
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from email_validator import EmailNotValidError, validate_email

from mailhost.common.config import Settings, load_settings
from mailhost.common.exceptions import InvalidAddressError, InvalidHostnameError
from mailhost.dns.names import Domain, parse_domain
from mailhost.dns.resolver import DNSPythonResolver, Resolver

from .consistency import verify_consistency
from .hostname import derive_hostname
from .interfaces import AddressClassification, RawInterface, classify, list_interfaces
from .probe import Deadline
from .reputation import check_blocklists
from .result import DiscoveryWarning, IdentityResult, Stage, WarningKind

logger = logging.getLogger(__name__)

InterfaceLister = Callable[[], Iterable[RawInterface]]


@dataclass(frozen=True)
class MailAddress:
    """The operator's email address, split in account name and mail domain."""

    localpart: str
    domain: Domain

    def __str__(self) -> str:
        return f"{self.localpart}@{self.domain.name}"


def parse_address(address: str) -> MailAddress:
    """
    Parse the email address the mail server is set up for.

    Raises:
        InvalidAddressError: If the address is not a valid email address.
    """
    try:
        info = validate_email(address, check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidAddressError(address, str(e))

    try:
        domain = parse_domain(info.ascii_domain)
    except InvalidHostnameError as e:
        raise InvalidAddressError(address, e.reason)
    return MailAddress(localpart=info.local_part, domain=domain)


def discover(
    address: str,
    settings: Optional[Settings] = None,
    *,
    explicit_hostname: Optional[str] = None,
    resolver: Optional[Resolver] = None,
    interfaces: Optional[InterfaceLister] = None,
    system_hostname: Optional[str] = None,
) -> IdentityResult:
    """
    Discover the network identity of this host and check its DNS.

    Args:
        address: Email address of the first account, e.g. user@example.org.
        settings: Settings, loaded from the environment if not given.
        explicit_hostname: Hostname given by the operator. The public IPs
            are then taken from its DNS records instead of the interfaces.
        resolver: Resolver to use, dnspython with the configured
            nameservers if not given.
        interfaces: Function listing the network interfaces, `ip -br addr`
            if not given. Not called when explicit_hostname is given.
        system_hostname: Hostname of this machine, socket.gethostname()
            if not given.

    Returns:
        IdentityResult with the hostname, IPs, checks and warnings.

    Raises:
        InvalidAddressError: If the email address cannot be parsed.
        InvalidHostnameError: If the hostname cannot be parsed.
        InterfaceEnumerationError: If the interfaces cannot be listed
            while looking for the public IPs.
    """
    if settings is None:
        settings = load_settings()
    dns_settings = settings.dns
    if resolver is None:
        resolver = DNSPythonResolver(nameservers=dns_settings.nameservers)
    if interfaces is None:
        interfaces = list_interfaces
    if system_hostname is None:
        system_hostname = socket.gethostname()

    mail_address = parse_address(address)
    notes: list[str] = []
    if not mail_address.localpart.isascii():
        notes.append(
            f"username {mail_address.localpart!r} is not ASCII-only. It is "
            "recommended you also configure an ASCII-only alias, both for delivery "
            "of email from other systems and for logging in with IMAP."
        )

    deadline = Deadline(dns_settings.timeout)

    classifier_warnings: list[DiscoveryWarning] = []
    if explicit_hostname:
        # The public IPs come from the hostname's DNS records and the
        # internal listener stays on localhost, so interfaces are not listed.
        classification = AddressClassification()
    else:
        classification = classify(interfaces())
    if not classification.public and not explicit_hostname:
        message = (
            "no public IPs found on the network interfaces of this machine, the "
            "public listener will use all IPs"
        )
        logger.warning(message)
        classifier_warnings.append(DiscoveryWarning(
            stage=Stage.CLASSIFIER,
            kind=WarningKind.NO_PUBLIC_IPS,
            message=message,
        ))
    if not classification.private and not explicit_hostname:
        notes.append("no private IPs found on network interfaces, internal listener uses localhost")

    hostname_result = derive_hostname(
        explicit_hostname,
        system_hostname,
        classification.public,
        mail_address.domain,
        resolver,
        deadline,
        dns_settings.probe_timeout,
        dns_settings.max_workers,
    )
    hostname = hostname_result.hostname
    notes.extend(hostname_result.notes)

    consistency = verify_consistency(
        hostname,
        resolver,
        deadline,
        dns_settings.probe_timeout,
        dns_settings.max_workers,
    )

    public_ips = list(classification.public)
    if explicit_hostname:
        # Assume we will run on a machine with the IPs of the given hostname.
        public_ips = consistency.addresses
        notes.append(f"using the IPs of hostname {hostname} as public IPs")

    reputation = check_blocklists(
        public_ips,
        dns_settings.blocklist_zones,
        resolver,
        deadline,
        dns_settings.probe_timeout,
        dns_settings.max_workers,
    )

    warnings = (
        classifier_warnings
        + hostname_result.warnings
        + consistency.warnings
        + reputation.warnings
    )
    logger.info(f"Discovery finished for {hostname} with {len(warnings)} warning(s)")

    return IdentityResult(
        hostname=hostname,
        mail_domain=mail_address.domain,
        account=mail_address.localpart,
        public_ips=tuple(public_ips),
        private_ips=tuple(classification.private),
        hostname_resolved=consistency.resolved,
        checks=tuple(consistency.checks),
        reputation=tuple(reputation.findings),
        blocklist_zones=tuple(dns_settings.blocklist_zones),
        warnings=tuple(warnings),
        notes=tuple(notes),
    )
