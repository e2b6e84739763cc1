"""
Forward/reverse DNS consistency of the hostname.

Other mail servers check that the IP a connection comes from has a
reverse name, and that this name matches the hostname given in the SMTP
greeting. This module resolves the hostname, then looks up the reverse
names of each of its addresses and compares them with the hostname.
"""

import ipaddress
import logging
from functools import partial
from typing import Optional

from mailhost.common.exceptions import DNSLookupError, InvalidHostnameError
from mailhost.dns.names import Domain, parse_domain, strip_trailing_dots
from mailhost.dns.resolver import Resolver

from .probe import Deadline, fan_out
from .result import ConsistencyReport, DiscoveryWarning, IPCheck, Stage, WarningKind

logger = logging.getLogger(__name__)


def _warn(
    report: ConsistencyReport,
    kind: WarningKind,
    message: str,
    ip: Optional[str] = None,
) -> None:
    logger.warning(message)
    report.warnings.append(
        DiscoveryWarning(stage=Stage.CONSISTENCY, kind=kind, message=message, ip=ip)
    )


def _is_loopback(ip: str) -> bool:
    try:
        return ipaddress.ip_address(ip).is_loopback
    except ValueError:
        return False


def resolve_hostname(
    hostname: Domain,
    resolver: Resolver,
    deadline: Deadline,
    probe_timeout: float,
    report: ConsistencyReport,
) -> list[str]:
    """
    Forward resolve the hostname, returning its usable addresses.

    Loopback addresses are left out with a warning. A hostname without
    usable addresses gets an unresolved-hostname warning.
    """
    logger.info(f"Looking up IPs for hostname {hostname}")

    error: Optional[str] = None
    ips: list[str] = []
    (outcome,) = fan_out(
        [partial(resolver.lookup_ip_addr, hostname.ascii + ".")],
        deadline,
        probe_timeout,
    )
    if isinstance(outcome.error, DNSLookupError):
        error = outcome.error.reason
    elif outcome.error is not None:
        error = str(outcome.error)
    else:
        ips = list(outcome.value or [])

    usable: list[str] = []
    for ip in ips:
        # During Linux installs, /etc/hosts often gets an alias for the full
        # hostname pointing to 127.0.1.1, which hides the real addresses.
        if _is_loopback(ip):
            _warn(
                report,
                WarningKind.LOOPBACK_FORWARD,
                f"hostname {hostname} resolves to loopback IP address {ip}. This "
                "likely breaks email delivery to local accounts. /etc/hosts likely "
                f"contains a line like \"{ip} {hostname.ascii}\". Either replace it "
                "with your actual IP(s), or remove the line.",
                ip,
            )
            continue
        if ip not in usable:
            usable.append(ip)

    if error is None and not usable:
        error = "hostname not in DNS, probably only in /etc/hosts"

    if error is not None:
        _warn(
            report,
            WarningKind.UNRESOLVED_HOSTNAME,
            f"assumed the hostname of this machine is {hostname}, but could not "
            f"retrieve that name from DNS: {error}. Either there are no DNS records "
            "for this machine yet and you should add them, or the hostname is not "
            "the correct name of this machine. Make sure your hostname resolves to "
            "your public IPs, and your public IPs resolve back (reverse) to your "
            "hostname.",
        )
    else:
        report.resolved = True
    return usable


def check_reverse(
    ip: str,
    names: list[str],
    hostname: Domain,
    report: ConsistencyReport,
) -> IPCheck:
    """Compare the reverse names of one address with the hostname."""
    reverse_names = tuple(strip_trailing_dots(name) for name in names)
    matched = False

    if len(names) != 1:
        _warn(
            report,
            WarningKind.PTR_COUNT,
            f"expected exactly 1 reverse name for {ip}, got {len(names)} "
            f"({', '.join(reverse_names)})",
            ip,
        )

    for name in reverse_names:
        try:
            domain = parse_domain(name)
        except InvalidHostnameError as e:
            _warn(
                report,
                WarningKind.PTR_UNPARSABLE,
                f"parsing reverse name {name!r} for {ip}: {e.reason}",
                ip,
            )
            continue
        if domain == hostname:
            matched = True

    if not matched:
        _warn(
            report,
            WarningKind.PTR_MISMATCH,
            f"reverse name(s) {', '.join(reverse_names) or '(none)'} for IP "
            f"{ip} do not match hostname {hostname}, which will cause other "
            "mail servers to reject incoming messages from this IP",
            ip,
        )
    return IPCheck(ip=ip, reverse_names=reverse_names, matched=matched)


def verify_consistency(
    hostname: Domain,
    resolver: Resolver,
    deadline: Deadline,
    probe_timeout: float,
    max_workers: int = 20,
) -> ConsistencyReport:
    """
    Check that the hostname resolves, and its addresses resolve back to it.

    The checks in the report are in the order of the forward lookup
    answer, independent of the order the reverse lookups finish in.
    Problems are reported as warnings, nothing here raises.
    """
    report = ConsistencyReport()
    ips = resolve_hostname(hostname, resolver, deadline, probe_timeout, report)
    if not ips:
        return report

    logger.info(f"Looking up reverse names for IP(s) {', '.join(ips)}")
    probes = [partial(resolver.lookup_addr, ip) for ip in ips]
    outcomes = fan_out(probes, deadline, probe_timeout, max_workers)

    for ip, outcome in zip(ips, outcomes):
        if not outcome.ok:
            report.checks.append(IPCheck(ip=ip, error=str(outcome.error)))
            _warn(
                report,
                WarningKind.REVERSE_LOOKUP_FAILED,
                f"looking up reverse name for {ip}: {outcome.error}. Other mail "
                "servers will likely reject messages from this IP.",
                ip,
            )
            continue
        report.checks.append(
            check_reverse(ip, list(outcome.value or []), hostname, report)
        )

    return report
