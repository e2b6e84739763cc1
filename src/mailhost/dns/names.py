"""
Domain name parsing.

Names are parsed with dnspython, which takes care of IDNA encoding and of
label and name length limits. On top of that every label of the ASCII
form must be a letters-digits-hyphen hostname label.
"""

import re
from dataclasses import dataclass, field

import dns.exception
import dns.name

from mailhost.common.exceptions import InvalidHostnameError

_LDH_LABEL = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")


@dataclass(frozen=True)
class Domain:
    """
    A parsed domain name.

    Two domains are equal when their lower-cased ASCII forms are equal,
    the unicode form is only for display.
    """

    ascii: str
    unicode: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.name

    @property
    def name(self) -> str:
        """Name for display: the unicode form if it differs, else ASCII."""
        return self.unicode or self.ascii

    @property
    def is_fqdn(self) -> bool:
        return "." in self.ascii


def parse_domain(text: str) -> Domain:
    """
    Parse a domain name in ASCII or unicode form.

    Raises:
        InvalidHostnameError: If the name is empty, ends with a dot or
            is not a valid hostname.
    """
    if not text:
        raise InvalidHostnameError(text, "empty name")
    if text.endswith("."):
        raise InvalidHostnameError(text, "trailing dot")

    try:
        name = dns.name.from_unicode(text)
        ascii_form = name.to_text(omit_final_dot=True).lower()
        unicode_form = name.to_unicode(omit_final_dot=True).lower()
    except (dns.exception.DNSException, UnicodeError, ValueError) as e:
        raise InvalidHostnameError(text, str(e) or type(e).__name__)

    for label in ascii_form.split("."):
        if not _LDH_LABEL.match(label):
            raise InvalidHostnameError(text, f"invalid label {label!r}")

    if unicode_form == ascii_form:
        unicode_form = ""
    return Domain(ascii=ascii_form, unicode=unicode_form)


def parse_hostname(text: str) -> Domain:
    """
    Parse a fully qualified hostname, with at least one dot.

    Raises:
        InvalidHostnameError: If the name is not a valid FQDN.
    """
    domain = parse_domain(text)
    if not domain.is_fqdn:
        raise InvalidHostnameError(text, "not fully qualified")
    return domain


def strip_trailing_dots(name: str) -> str:
    """Remove the root dot(s) that DNS responses carry."""
    return name.rstrip(".")
