"""
Custom exceptions for mailhost.

Only a few of these are fatal for identity discovery: an unparsable
hostname or email address given by the operator, and a failure to list
the network interfaces of this machine. Everything else that goes wrong
while probing DNS is turned into a warning on the result.
"""

from typing import Any, Optional


class MailhostError(Exception):
    """Base exception for all mailhost errors."""

    def __init__(self, message: str,
                 details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


# Configuration Exceptions
class ConfigurationError(MailhostError):
    """Base exception for configuration-related errors."""


class MissingConfigError(ConfigurationError):
    """Raised when required configuration is missing."""

    def __init__(
        self,
        config_key: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize missing config error.

        Args:
            config_key: The missing configuration key or file.
            details: Optional dictionary with additional error details.
        """
        super().__init__(f"Missing required configuration: {config_key}", details)
        self.config_key = config_key


class InvalidConfigError(ConfigurationError):
    """Raised when configuration value is invalid."""

    def __init__(
        self,
        config_key: str,
        value: Any,
        reason: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize invalid config error.

        Args:
            config_key: The configuration key with invalid value.
            value: The invalid value.
            reason: Why the value is invalid.
            details: Optional dictionary with additional error details.
        """
        message = f"Invalid configuration for '{config_key}': {reason}"
        super().__init__(message, details)
        self.config_key = config_key
        self.value = value
        self.reason = reason


# DNS Exceptions
class DNSError(MailhostError):
    """Base exception for DNS-related errors."""


class DNSLookupError(DNSError):
    """Raised when DNS lookup fails."""

    def __init__(
        self,
        domain: str,
        record_type: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Initialize DNS lookup error.

        Args:
            domain: The domain (or address) that was looked up.
            record_type: The type of DNS record requested.
            details: Optional dictionary with additional error details.
        """
        super().__init__(
            f"DNS lookup failed for {record_type} record of '{domain}'", details
        )
        self.domain = domain
        self.record_type = record_type

    @property
    def reason(self) -> str:
        return self.details.get("reason", "unknown error")


class ProbeTimeoutError(DNSError):
    """Raised for a network probe that did not finish before its deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"no response within {timeout:.1f}s")
        self.timeout = timeout


# Identity Exceptions
class InvalidHostnameError(MailhostError):
    """Raised when a hostname cannot be parsed as a fully qualified domain name."""

    def __init__(self, hostname: str, reason: str) -> None:
        super().__init__(f"invalid hostname {hostname!r}: {reason}")
        self.hostname = hostname
        self.reason = reason


class InvalidAddressError(MailhostError):
    """Raised when the operator's email address cannot be parsed."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"invalid email address {address!r}: {reason}")
        self.address = address
        self.reason = reason


class InterfaceEnumerationError(MailhostError):
    """Raised when the network interfaces of this machine cannot be listed."""
