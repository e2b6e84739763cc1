"""Tests for settings loading."""

import pytest

from mailhost.common.config import DEFAULT_BLOCKLIST_ZONES, DNSSettings, Settings, load_settings
from mailhost.common.exceptions import InvalidConfigError, MissingConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "MAILHOST_DEBUG",
        "MAILHOST_CONFIG_FILE",
        "DNS_NAMESERVERS",
        "DNS_TIMEOUT",
        "DNS_PROBE_TIMEOUT",
        "DNS_MAX_WORKERS",
        "DNS_BLOCKLIST_ZONES",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings()

    assert settings.debug is False
    assert settings.dns.timeout == 10.0
    assert settings.dns.probe_timeout == 5.0
    assert settings.dns.max_workers == 20
    assert settings.dns.nameservers == []
    assert settings.dns.blocklist_zones == DEFAULT_BLOCKLIST_ZONES
    assert settings.logging.level == "ERROR"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DNS_TIMEOUT", "4")
    monkeypatch.setenv("DNS_PROBE_TIMEOUT", "2")
    monkeypatch.setenv("DNS_NAMESERVERS", "192.0.2.53, 192.0.2.54")
    monkeypatch.setenv("DNS_BLOCKLIST_ZONES", "zen.spamhaus.org")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.dns.timeout == 4.0
    assert settings.dns.nameservers == ["192.0.2.53", "192.0.2.54"]
    assert settings.dns.blocklist_zones == ["zen.spamhaus.org"]
    assert settings.logging.level == "DEBUG"


def test_empty_blocklist_zones_disables_checks(monkeypatch):
    monkeypatch.setenv("DNS_BLOCKLIST_ZONES", "")

    assert DNSSettings().blocklist_zones == []


def test_probe_timeout_clamped_to_timeout(monkeypatch):
    monkeypatch.setenv("DNS_TIMEOUT", "3")

    settings = load_settings()

    assert settings.dns.timeout == 3.0
    assert settings.dns.probe_timeout == 3.0


def test_invalid_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "LOUD")

    with pytest.raises(InvalidConfigError):
        load_settings()


def test_from_toml(tmp_path):
    config = tmp_path / "mailhost.toml"
    config.write_text(
        """
[app]
debug = true

[dns]
timeout = 6
probe_timeout = 3
blocklist_zones = ["bl.example.net"]

[logging]
level = "INFO"
""",
        encoding="utf-8",
    )

    settings = load_settings(config)

    assert settings.debug is True
    assert settings.dns.timeout == 6.0
    assert settings.dns.blocklist_zones == ["bl.example.net"]
    assert settings.logging.level == "INFO"


def test_config_file_from_environment(tmp_path, monkeypatch):
    config = tmp_path / "mailhost.toml"
    config.write_text("[dns]\ntimeout = 7\n", encoding="utf-8")
    monkeypatch.setenv("MAILHOST_CONFIG_FILE", str(config))

    assert load_settings().dns.timeout == 7.0


def test_missing_config_file(tmp_path):
    with pytest.raises(MissingConfigError):
        load_settings(tmp_path / "absent.toml")


def test_unparsable_config_file(tmp_path):
    config = tmp_path / "broken.toml"
    config.write_text("[dns\ntimeout = ", encoding="utf-8")

    with pytest.raises(InvalidConfigError, match="Failed to parse TOML"):
        load_settings(config)
