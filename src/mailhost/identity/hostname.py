"""
Hostname derivation.

The hostname the mail server runs as comes from, in order of preference:
the operator, the system hostname if it is fully qualified, or the
reverse DNS names of the public IPs of this machine. Many Linux machines
only have the first label configured as hostname (e.g. "mail"), which is
why the reverse lookups are needed. If those give nothing, the hostname
is guessed from the system name and the mail domain.
"""

import logging
from functools import partial
from typing import Optional, Sequence

from mailhost.common.exceptions import InvalidHostnameError
from mailhost.dns.names import Domain, parse_hostname, strip_trailing_dots
from mailhost.dns.resolver import Resolver

from .probe import Deadline, fan_out
from .result import DiscoveryWarning, HostnameResult, Stage, WarningKind

logger = logging.getLogger(__name__)


def _warning(kind: WarningKind, message: str, ip: Optional[str] = None) -> DiscoveryWarning:
    logger.warning(message)
    return DiscoveryWarning(stage=Stage.HOSTNAME, kind=kind, message=message, ip=ip)


def reverse_names(
    public_ips: Sequence[str],
    resolver: Resolver,
    deadline: Deadline,
    probe_timeout: float,
    max_workers: int = 20,
) -> tuple[list[str], list[DiscoveryWarning]]:
    """
    Look up the reverse names of all public IPs concurrently.

    Returns the distinct fully qualified names, without trailing dot and
    sorted, plus a warning for each lookup that failed.
    """
    warnings: list[DiscoveryWarning] = []
    names: set[str] = set()

    probes = [partial(resolver.lookup_addr, ip) for ip in public_ips]
    outcomes = fan_out(probes, deadline, probe_timeout, max_workers)

    for ip, outcome in zip(public_ips, outcomes):
        if not outcome.ok:
            warnings.append(_warning(
                WarningKind.REVERSE_LOOKUP_FAILED,
                f"looking up reverse name(s) for {ip}: {outcome.error}",
                ip,
            ))
            continue
        for name in outcome.value or []:
            name = strip_trailing_dots(name)
            if "." in name:
                names.add(name.lower())

    return sorted(names), warnings


def derive_hostname(
    explicit_hostname: Optional[str],
    system_hostname: str,
    public_ips: Sequence[str],
    mail_domain: Domain,
    resolver: Resolver,
    deadline: Deadline,
    probe_timeout: float,
    max_workers: int = 20,
) -> HostnameResult:
    """
    Determine the fully qualified hostname of this machine.

    Args:
        explicit_hostname: Hostname given by the operator, if any.
        system_hostname: The hostname configured on this machine.
        public_ips: Public IPs of this machine, for reverse lookups.
        mail_domain: Domain of the email address, for the fallback guess.
        resolver: Resolver for the reverse lookups.
        deadline: Overall deadline of discovery.
        probe_timeout: Timeout for each reverse lookup.
        max_workers: Maximum number of concurrent lookups.

    Returns:
        HostnameResult with the hostname, warnings and notes.

    Raises:
        InvalidHostnameError: If the explicit hostname, the fully qualified
            system hostname or the guessed hostname cannot be parsed.
    """
    if explicit_hostname:
        return HostnameResult(hostname=parse_hostname(explicit_hostname))

    if "." in system_hostname:
        return HostnameResult(hostname=parse_hostname(system_hostname))

    result = HostnameResult()
    if public_ips:
        logger.info(
            f"Trying to find hostname by reverse lookup of public IPs {', '.join(public_ips)}"
        )

    names, warnings = reverse_names(
        public_ips, resolver, deadline, probe_timeout, max_workers
    )
    result.warnings.extend(warnings)

    hostname: Optional[Domain] = None
    for name in names:
        try:
            domain = parse_hostname(name)
        except InvalidHostnameError as e:
            result.warnings.append(_warning(
                WarningKind.REVERSE_LOOKUP_FAILED,
                f"ignoring reverse name {name!r}: {e.reason}",
            ))
            continue
        if domain.ascii in result.candidates:
            continue
        result.candidates.append(domain.ascii)
        if hostname is None:
            hostname = domain

    if hostname is None:
        hostname = parse_hostname(f"{system_hostname}.{mail_domain.ascii}")
        result.warnings.append(_warning(
            WarningKind.HOSTNAME_GUESSED,
            "cannot determine hostname because the system name is not an FQDN and "
            "no public IPs resolving to an FQDN were found. The hostname was "
            f"guessed as {hostname}. If it is not correct, specify the hostname "
            "explicitly.",
        ))
    elif len(result.candidates) > 1:
        result.warnings.append(_warning(
            WarningKind.AMBIGUOUS_HOSTNAME,
            "multiple hostnames found for the public IPs, using the first of: "
            f"{', '.join(result.candidates)}. If this is not correct, specify "
            "the hostname explicitly and review the reverse DNS (PTR) records.",
        ))
    else:
        result.notes.append(f"found hostname {hostname} by reverse lookup of public IPs")

    result.hostname = hostname
    logger.info(f"Using hostname {hostname}")
    return result
