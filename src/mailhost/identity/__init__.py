"""
Identity discovery for mailhost.

This package finds out the network identity of the machine a mail server
is about to run on, and checks DNS for it:
- Public/private classification of the interface addresses
- Hostname derivation, by reverse DNS if the system name is not an FQDN
- Forward/reverse DNS consistency of the hostname
- DNS block list checks of the public IPs
"""

from .addresses import NetworkAddress, parse_addr_ip
from .consistency import verify_consistency
from .discovery import MailAddress, discover, parse_address
from .hostname import derive_hostname
from .interfaces import (
    AddressClassification,
    InterfaceObservation,
    RawInterface,
    classify,
    list_interfaces,
    parse_ip_brief,
)
from .probe import Deadline, ProbeOutcome, fan_out
from .reputation import check_blocklists, multirbl_url
from .result import (
    ConsistencyReport,
    DiscoveryWarning,
    HostnameResult,
    IdentityResult,
    IPCheck,
    ReputationFinding,
    ReputationReport,
    Stage,
    WarningKind,
)

__all__ = [
    "AddressClassification",
    "ConsistencyReport",
    "Deadline",
    "DiscoveryWarning",
    "HostnameResult",
    "IPCheck",
    "IdentityResult",
    "InterfaceObservation",
    "MailAddress",
    "NetworkAddress",
    "ProbeOutcome",
    "RawInterface",
    "ReputationFinding",
    "ReputationReport",
    "Stage",
    "WarningKind",
    "check_blocklists",
    "classify",
    "derive_hostname",
    "discover",
    "fan_out",
    "list_interfaces",
    "multirbl_url",
    "parse_addr_ip",
    "parse_address",
    "parse_ip_brief",
    "verify_consistency",
]
