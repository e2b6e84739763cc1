"""
DNS block list checks of the public IPs.

Other mail servers are likely to reject email from IPs that are in a
block list. Listings are only advisory here: they are reported, but do
not stop the setup. An IP may be listed only temporarily.
"""

import logging
from functools import partial
from typing import Sequence
from urllib.parse import quote

from mailhost.dns.resolver import BlocklistLookup, BlocklistStatus, Resolver

from .probe import Deadline, fan_out
from .result import DiscoveryWarning, ReputationFinding, ReputationReport, Stage, WarningKind

logger = logging.getLogger(__name__)

MULTIRBL_LOOKUP_URL = "https://multirbl.valli.org/lookup/{ip}.html"


def multirbl_url(ip: str) -> str:
    """URL of a page that checks ip against many more block lists."""
    return MULTIRBL_LOOKUP_URL.format(ip=quote(ip, safe=""))


def check_blocklists(
    public_ips: Sequence[str],
    zones: Sequence[str],
    resolver: Resolver,
    deadline: Deadline,
    probe_timeout: float,
    max_workers: int = 20,
) -> ReputationReport:
    """
    Query every block list zone for every public IP.

    Returns a report with a finding and a warning for each (zone, IP)
    pair that did not pass, ordered by zone and then by IP.
    """
    report = ReputationReport()
    pairs = [(zone, ip) for zone in zones for ip in public_ips]
    if not pairs:
        return report

    logger.info("Checking whether public IPs are listed in DNS block lists")
    probes = [partial(resolver.lookup_blocklist, zone, ip) for zone, ip in pairs]
    outcomes = fan_out(probes, deadline, probe_timeout, max_workers)
    report.checked = len(pairs)

    for (zone, ip), outcome in zip(pairs, outcomes):
        if outcome.ok and outcome.value is not None:
            lookup: BlocklistLookup = outcome.value
        else:
            lookup = BlocklistLookup(BlocklistStatus.ERROR, error=str(outcome.error))

        if lookup.status == BlocklistStatus.PASS:
            continue

        finding = ReputationFinding(
            zone=zone,
            ip=ip,
            status=lookup.status,
            explanation=lookup.explanation,
            error=lookup.error,
        )
        report.findings.append(finding)

        if lookup.status == BlocklistStatus.LISTED:
            kind = WarningKind.BLOCKLISTED
            message = (
                f"public IP {ip} is listed in DNS block list {zone}"
                f"{': ' + lookup.explanation if lookup.explanation else ''}. Other "
                "mail servers are likely to reject email from this IP."
            )
        else:
            kind = WarningKind.BLOCKLIST_ERROR
            message = (
                f"checking public IP {ip} in DNS block list {zone}: {lookup.error}. "
                "The listing status of this IP is unknown."
            )
        logger.warning(message)
        report.warnings.append(
            DiscoveryWarning(stage=Stage.REPUTATION, kind=kind, message=message, ip=ip)
        )

    return report
