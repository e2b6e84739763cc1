"""
Configuration management for mailhost.

Settings are loaded from environment variables and, optionally, from a
TOML configuration file. A Settings value is built once by the caller and
passed explicitly to discovery; nothing here is cached process-wide.
"""

import os
import tomllib
from pathlib import Path
from typing import Annotated, Any, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .exceptions import InvalidConfigError, MissingConfigError

DEFAULT_BLOCKLIST_ZONES = ["sbl.spamhaus.org", "bl.spamcop.net"]


def _split_list(v: Any) -> Any:
    if isinstance(v, str):
        if not v.strip():
            return []
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class DNSSettings(BaseSettings):
    """DNS probing settings."""

    model_config = SettingsConfigDict(
        env_prefix="DNS_",
        extra="ignore",
    )

    nameservers: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Resolver addresses, empty to use the system configuration",
    )
    timeout: float = Field(
        default=10.0, gt=0, description="Total time budget for discovery in seconds"
    )
    probe_timeout: float = Field(
        default=5.0, gt=0, description="Timeout for a single DNS probe in seconds"
    )
    max_workers: int = Field(
        default=20, ge=1, description="Maximum number of concurrent probes"
    )
    blocklist_zones: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKLIST_ZONES),
        description="DNS block list zones to check public IPs against",
    )

    @field_validator("nameservers", "blocklist_zones", mode="before")
    @classmethod
    def parse_lists(cls, v: Any) -> list[str]:
        """Parse comma-separated strings from the environment."""
        return _split_list(v)

    @model_validator(mode="after")
    def clamp_probe_timeout(self) -> "DNSSettings":
        """A single probe gets at most the time of the whole discovery."""
        if self.probe_timeout > self.timeout:
            self.probe_timeout = self.timeout
        return self


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore",
    )

    level: str = Field(default="ERROR", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper


class Settings(BaseSettings):
    """Main settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MAILHOST_",
        extra="ignore",
    )

    debug: bool = Field(default=False, description="Debug mode")

    dns: DNSSettings = Field(default_factory=DNSSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_toml(cls, path: str | Path) -> "Settings":
        """
        Load settings from a TOML configuration file.

        Args:
            path: Path to the TOML configuration file.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        path = Path(path)
        if not path.exists():
            raise MissingConfigError(str(path), {"reason": "file not found"})

        try:
            with open(path, "rb") as f:
                config_data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise InvalidConfigError(
                config_key="config_file",
                value=str(path),
                reason=f"Failed to parse TOML: {e}",
            )

        return cls._from_dict(config_data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Settings":
        """
        Create settings from a dictionary.

        Args:
            data: Configuration dictionary.

        Returns:
            Settings instance.
        """
        settings_kwargs: dict[str, Any] = {}

        if "app" in data:
            settings_kwargs.update(data["app"])

        if "dns" in data:
            settings_kwargs["dns"] = DNSSettings(**data["dns"])

        if "logging" in data:
            settings_kwargs["logging"] = LoggingSettings(**data["logging"])

        return cls(**settings_kwargs)


def load_settings(config_file: Optional[str | Path] = None) -> Settings:
    """
    Build settings from the environment and an optional config file.

    The file is taken from the argument, or from MAILHOST_CONFIG_FILE
    when no argument is given.

    Raises:
        ConfigurationError: If the file is missing, unparsable or holds
            invalid values.
    """
    if config_file is None:
        config_file = os.getenv("MAILHOST_CONFIG_FILE") or None

    try:
        if config_file is not None:
            return Settings.from_toml(config_file)
        return Settings()
    except ValidationError as e:
        raise InvalidConfigError(
            config_key=str(config_file or "environment"),
            value=None,
            reason=str(e),
        )
