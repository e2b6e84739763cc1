"""
DNS modules for mailhost.

This package provides:
- Domain name parsing (ASCII and unicode forms)
- The resolver interface used by identity discovery, with a dnspython
  implementation covering reverse, forward and DNS block list lookups
"""

from .names import Domain, parse_domain, parse_hostname, strip_trailing_dots
from .resolver import (
    BlocklistLookup,
    BlocklistStatus,
    DNSPythonResolver,
    Resolver,
    blocklist_query_name,
)

__all__ = [
    "BlocklistLookup",
    "BlocklistStatus",
    "DNSPythonResolver",
    "Domain",
    "Resolver",
    "blocklist_query_name",
    "parse_domain",
    "parse_hostname",
    "strip_trailing_dots",
]
