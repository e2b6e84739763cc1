"""Tests for the dnspython resolver."""

from unittest.mock import MagicMock, patch

import dns.exception
import dns.resolver
import pytest

from mailhost.common.exceptions import DNSLookupError
from mailhost.dns.resolver import (
    BlocklistStatus,
    DNSPythonResolver,
    blocklist_query_name,
)


def test_blocklist_query_name_ipv4():
    assert blocklist_query_name("sbl.spamhaus.org", "192.0.2.1") == "1.2.0.192.sbl.spamhaus.org"
    assert blocklist_query_name("bl.spamcop.net.", "198.51.100.5") == "5.100.51.198.bl.spamcop.net"


def test_blocklist_query_name_ipv6():
    nibbles = ".".join(reversed("20010db8" + "0" * 23 + "1"))

    assert blocklist_query_name("sbl.spamhaus.org", "2001:db8::1") == f"{nibbles}.sbl.spamhaus.org"


@pytest.fixture
def dns_resolver():
    """DNSPythonResolver with dnspython's Resolver replaced by a mock."""
    with patch("dns.resolver.Resolver") as mock_class:
        mock = MagicMock()
        mock_class.return_value = mock
        yield DNSPythonResolver(nameservers=["192.0.2.53"]), mock


def rdata(**attrs):
    r = MagicMock()
    for name, value in attrs.items():
        setattr(r, name, value)
    return r


def test_custom_nameservers(dns_resolver):
    _, mock = dns_resolver

    assert mock.nameservers == ["192.0.2.53"]


def test_lookup_addr(dns_resolver):
    resolver, mock = dns_resolver
    target = MagicMock()
    target.to_text.return_value = "mail.example.org."
    mock.resolve_address.return_value = [rdata(target=target)]

    assert resolver.lookup_addr("198.51.100.5", 2.0) == ["mail.example.org."]
    mock.resolve_address.assert_called_once_with("198.51.100.5", lifetime=2.0)


@pytest.mark.parametrize(
    "error, reason",
    [
        (dns.resolver.NXDOMAIN(), "no reverse name"),
        (dns.resolver.NoAnswer(), "no answer"),
        (dns.exception.Timeout(), "timeout"),
    ],
)
def test_lookup_addr_errors(dns_resolver, error, reason):
    resolver, mock = dns_resolver
    mock.resolve_address.side_effect = error

    with pytest.raises(DNSLookupError) as exc_info:
        resolver.lookup_addr("198.51.100.5", 2.0)
    assert exc_info.value.reason == reason
    assert exc_info.value.record_type == "PTR"


def test_lookup_ip_addr(dns_resolver):
    resolver, mock = dns_resolver
    answers = MagicMock()
    answers.addresses.return_value = iter(["198.51.100.5", "2001:db8::5"])
    mock.resolve_name.return_value = answers

    assert resolver.lookup_ip_addr("mail.example.org.", 2.0) == ["198.51.100.5", "2001:db8::5"]


def test_lookup_ip_addr_not_found(dns_resolver):
    resolver, mock = dns_resolver
    mock.resolve_name.side_effect = dns.resolver.NXDOMAIN()

    with pytest.raises(DNSLookupError) as exc_info:
        resolver.lookup_ip_addr("mail.example.org.", 2.0)
    assert exc_info.value.reason == "domain not found"


def test_blocklist_not_listed(dns_resolver):
    resolver, mock = dns_resolver
    mock.resolve.side_effect = dns.resolver.NXDOMAIN()

    lookup = resolver.lookup_blocklist("sbl.spamhaus.org", "198.51.100.5", 2.0)

    assert lookup.status == BlocklistStatus.PASS
    assert mock.resolve.call_args[0] == ("5.100.51.198.sbl.spamhaus.org", "A")


def test_blocklist_listed_with_txt_reason(dns_resolver):
    resolver, mock = dns_resolver

    def resolve(name, rdtype, lifetime):
        if rdtype == "A":
            return [rdata(address="127.0.0.2")]
        return [rdata(strings=(b"Listed by SBL, ", b"see https://check.spamhaus.org/")),
                rdata(strings=(b"second reason",))]

    mock.resolve.side_effect = resolve

    lookup = resolver.lookup_blocklist("sbl.spamhaus.org", "198.51.100.5", 2.0)

    assert lookup.status == BlocklistStatus.LISTED
    assert lookup.explanation == (
        "Listed by SBL, see https://check.spamhaus.org/; second reason"
    )


def test_blocklist_listed_without_txt(dns_resolver):
    resolver, mock = dns_resolver

    def resolve(name, rdtype, lifetime):
        if rdtype == "A":
            return [rdata(address="127.0.0.2"), rdata(address="127.0.0.4")]
        raise dns.resolver.NoAnswer()

    mock.resolve.side_effect = resolve

    lookup = resolver.lookup_blocklist("bl.spamcop.net", "198.51.100.5", 2.0)

    assert lookup.status == BlocklistStatus.LISTED
    assert lookup.explanation == "127.0.0.2, 127.0.0.4"


@pytest.mark.parametrize("code", ["127.255.255.254", "127.255.255.255", "192.0.2.1"])
def test_blocklist_refusal_codes_are_errors(dns_resolver, code):
    resolver, mock = dns_resolver
    mock.resolve.return_value = [rdata(address=code)]

    lookup = resolver.lookup_blocklist("sbl.spamhaus.org", "198.51.100.5", 2.0)

    assert lookup.status == BlocklistStatus.ERROR
    assert code in lookup.error


def test_blocklist_timeout_is_error(dns_resolver):
    resolver, mock = dns_resolver
    mock.resolve.side_effect = dns.exception.Timeout()

    lookup = resolver.lookup_blocklist("sbl.spamhaus.org", "198.51.100.5", 2.0)

    assert lookup.status == BlocklistStatus.ERROR
    assert lookup.error == "timeout"


def test_blocklist_invalid_address(dns_resolver):
    resolver, mock = dns_resolver

    lookup = resolver.lookup_blocklist("sbl.spamhaus.org", "not-an-ip", 2.0)

    assert lookup.status == BlocklistStatus.ERROR
    mock.resolve.assert_not_called()
