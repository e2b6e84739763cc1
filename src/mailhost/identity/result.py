"""
Results of identity discovery.

Each stage of the pipeline reports what it found together with warnings.
Warnings say what was expected, what was found and what the consequence
is, so they can be shown to the operator as they are.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from mailhost.dns.names import Domain
from mailhost.dns.resolver import BlocklistStatus

DEFAULT_PUBLIC_LISTENER_IPS = ("0.0.0.0", "::")
DEFAULT_PRIVATE_LISTENER_IPS = ("127.0.0.1", "::1")


class Stage(str, Enum):
    """Pipeline stage, in the order the stages run."""

    CLASSIFIER = "classifier"
    HOSTNAME = "hostname"
    CONSISTENCY = "consistency"
    REPUTATION = "reputation"


class WarningKind(str, Enum):
    """What a warning is about."""

    NO_PUBLIC_IPS = "no_public_ips"
    REVERSE_LOOKUP_FAILED = "reverse_lookup_failed"
    HOSTNAME_GUESSED = "hostname_guessed"
    AMBIGUOUS_HOSTNAME = "ambiguous_hostname"
    LOOPBACK_FORWARD = "loopback_forward"
    UNRESOLVED_HOSTNAME = "unresolved_hostname"
    PTR_COUNT = "ptr_count"
    PTR_UNPARSABLE = "ptr_unparsable"
    PTR_MISMATCH = "ptr_mismatch"
    BLOCKLISTED = "blocklisted"
    BLOCKLIST_ERROR = "blocklist_error"


@dataclass(frozen=True)
class DiscoveryWarning:
    """A problem found during discovery that does not stop it."""

    stage: Stage
    kind: WarningKind
    message: str
    ip: Optional[str] = None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "kind": self.kind.value,
            "message": self.message,
            "ip": self.ip,
        }


@dataclass
class StageReport:
    """Warnings and informational notes collected by one stage."""

    warnings: list[DiscoveryWarning] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)


@dataclass
class HostnameResult(StageReport):
    """Outcome of hostname derivation."""

    hostname: Optional[Domain] = None
    candidates: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class IPCheck:
    """Forward/reverse consistency of one address of the hostname."""

    ip: str
    reverse_names: tuple[str, ...] = ()
    matched: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ip": self.ip,
            "reverse_names": list(self.reverse_names),
            "matched": self.matched,
            "error": self.error,
        }


@dataclass
class ConsistencyReport(StageReport):
    """Per-address checks, in the order the forward lookup returned them."""

    checks: list[IPCheck] = field(default_factory=list)
    resolved: bool = False

    @property
    def any_warning(self) -> bool:
        return bool(self.warnings)

    @property
    def addresses(self) -> list[str]:
        """The usable (non-loopback) addresses of the hostname."""
        return [check.ip for check in self.checks]


@dataclass(frozen=True)
class ReputationFinding:
    """A non-passing DNS block list result for one (zone, IP) pair."""

    zone: str
    ip: str
    status: BlocklistStatus
    explanation: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "zone": self.zone,
            "ip": self.ip,
            "status": self.status.value,
            "explanation": self.explanation,
            "error": self.error,
        }


@dataclass
class ReputationReport(StageReport):
    """Block list findings, ordered by zone, then by IP."""

    findings: list[ReputationFinding] = field(default_factory=list)
    checked: int = 0


@dataclass(frozen=True)
class IdentityResult:
    """
    Everything discovery found out about this host.

    This is what configuration generation works from. Warnings are in
    stage order: classifier, hostname, consistency, reputation.
    The stage reports are copied into tuples, so a result cannot change
    once discovery returns it.
    """

    hostname: Domain
    mail_domain: Domain
    account: str
    public_ips: tuple[str, ...]
    private_ips: tuple[str, ...]
    hostname_resolved: bool
    checks: tuple[IPCheck, ...]
    reputation: tuple[ReputationFinding, ...]
    blocklist_zones: tuple[str, ...]
    warnings: tuple[DiscoveryWarning, ...] = ()
    notes: tuple[str, ...] = ()

    @property
    def public_listener_ips(self) -> tuple[str, ...]:
        return self.public_ips or DEFAULT_PUBLIC_LISTENER_IPS

    @property
    def private_listener_ips(self) -> tuple[str, ...]:
        return self.private_ips or DEFAULT_PRIVATE_LISTENER_IPS

    @property
    def warning_messages(self) -> list[str]:
        return [w.message for w in self.warnings]

    def warnings_for(self, stage: Stage) -> list[DiscoveryWarning]:
        return [w for w in self.warnings if w.stage == stage]

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary."""
        return {
            "hostname": self.hostname.ascii,
            "hostname_unicode": self.hostname.unicode or None,
            "mail_domain": self.mail_domain.ascii,
            "account": self.account,
            "public_ips": list(self.public_ips),
            "private_ips": list(self.private_ips),
            "listeners": {
                "public": list(self.public_listener_ips),
                "private": list(self.private_listener_ips),
            },
            "consistency": {
                "resolved": self.hostname_resolved,
                "checks": [check.to_dict() for check in self.checks],
            },
            "reputation": {
                "zones": list(self.blocklist_zones),
                "findings": [finding.to_dict() for finding in self.reputation],
            },
            "warnings": [w.to_dict() for w in self.warnings],
            "notes": list(self.notes),
        }
