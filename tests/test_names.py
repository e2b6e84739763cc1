"""Tests for domain name parsing."""

import pytest

from mailhost.common.exceptions import InvalidHostnameError
from mailhost.dns.names import parse_domain, parse_hostname, strip_trailing_dots


def test_parse_hostname_lowercases():
    domain = parse_hostname("Mail.Example.ORG")

    assert domain.ascii == "mail.example.org"
    assert str(domain) == "mail.example.org"
    assert domain.unicode == ""


def test_parse_hostname_unicode():
    domain = parse_hostname("mail.bücher.example")

    assert domain.ascii == "mail.xn--bcher-kva.example"
    assert domain.unicode == "mail.bücher.example"
    assert domain == parse_hostname("mail.xn--bcher-kva.example")


def test_domains_compare_case_insensitively():
    assert parse_hostname("MAIL.example.org") == parse_hostname("mail.EXAMPLE.org")
    assert len({parse_hostname("a.example"), parse_hostname("A.EXAMPLE")}) == 1


@pytest.mark.parametrize(
    "text",
    [
        "",
        "mail.example.org.",
        "mail..example.org",
        "mail_host.example.org",
        "mail host.example.org",
        "-mail.example.org",
        "mail-.example.org",
        "a" * 64 + ".example.org",
    ],
)
def test_parse_hostname_rejects_invalid(text):
    with pytest.raises(InvalidHostnameError):
        parse_hostname(text)


def test_parse_hostname_requires_fqdn():
    assert parse_domain("localhost").ascii == "localhost"

    with pytest.raises(InvalidHostnameError, match="not fully qualified"):
        parse_hostname("localhost")


def test_strip_trailing_dots():
    assert strip_trailing_dots("mail.example.org.") == "mail.example.org"
    assert strip_trailing_dots("mail.example.org") == "mail.example.org"
