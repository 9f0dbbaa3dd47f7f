"""
Configuration management for the dashboard gate.

This module handles all configuration loading from environment variables,
validation, and provides typed, frozen configuration objects. A single
AppConfig is built once at startup by load_config() and handed to each
component's constructor; no component reads the environment on its own.

The gate settings keep the bare environment names of the original
deployment (TZ, BASIC_USER, SECRET, ...). Notifier, server and logging
settings use prefixes.
"""

import datetime
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, BaseModel, Field, validator
from pydantic_settings import BaseSettings

from dashboard_gate.security.passwords import PasswordMode


class GateConfig(BaseSettings):
    """Access gate settings: allow-list, credentials and password mode."""

    tz: str = Field(
        default="Africa/Cairo",
        description="IANA time zone anchoring the daily password rotation"
    )
    basic_user: str = Field(
        default="sales",
        description="The single accepted Basic auth username"
    )
    password_mode: PasswordMode = Field(
        default=PasswordMode.DAILY,
        description="DAILY (rotating) or STATIC password"
    )
    secret: str = Field(
        default="changeme",
        description="Secret prefix of the daily password"
    )
    static_password: str = Field(
        default="supersecret",
        description="Password used in STATIC mode"
    )
    grace_yesterday: bool = Field(
        default=False,
        description="Also accept the previous day's password in DAILY mode"
    )
    allowlist_ips: str = Field(
        default="192.168.1.9/32",
        description="Comma-separated IPv4 CIDR blocks or bare addresses"
    )
    auth_realm: str = Field(
        default="SERP Viewer",
        description="Realm announced in the WWW-Authenticate challenge"
    )
    forwarded_header: str = Field(
        default="X-Forwarded-For",
        description="Header carrying the client address set by the reverse proxy"
    )
    trust_forwarded: bool = Field(
        default=True,
        description="Honour the forwarded header (exactly one trusted proxy)"
    )

    class Config:
        frozen = True

    @validator("tz")
    def validate_tz(cls, v: str) -> str:
        """Validate that the zone exists in the tz database."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {v!r}")
        return v

    @validator("password_mode", pre=True)
    def normalize_mode(cls, v):
        """Accept the mode in any letter case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.tz)

    def allowlist_entries(self) -> List[str]:
        """Split ALLOWLIST_IPS into trimmed, non-empty entries."""
        return [s.strip() for s in self.allowlist_ips.split(",") if s.strip()]


class NotifierConfig(BaseSettings):
    """Daily password webhook settings."""

    enabled: bool = Field(
        default=True,
        description="Schedule the daily webhook notification"
    )
    url: Optional[str] = Field(
        default=None,
        description="Webhook receiving {\"password\": ...} once a day"
    )
    time: datetime.time = Field(
        default=datetime.time(9, 0),
        description="Local time of day (in TZ) at which the password is sent"
    )
    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Webhook request timeout in seconds"
    )

    class Config:
        env_prefix = "PASSWORD_NOTIFY_"
        frozen = True


class ServerConfig(BaseSettings):
    """Dashboard HTTP server settings."""

    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind"
    )
    port: int = Field(
        default=3000,
        gt=0,
        lt=65536,
        validation_alias=AliasChoices("port", "SERVER_PORT", "PORT"),
        description="Port to listen on"
    )
    public_dir: Path = Field(
        default=Path("public"),
        description="Directory holding the dashboard's static files"
    )

    class Config:
        env_prefix = "SERVER_"
        frozen = True
        populate_by_name = True


class LoggingConfig(BaseSettings):
    """Logging configuration settings."""

    level: str = Field(
        default="INFO",
        description="Logging level"
    )
    format: str = Field(
        default="json",
        description="Log format: 'json' or 'text'"
    )

    class Config:
        env_prefix = "LOG_"
        frozen = True

    @validator("level")
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @validator("format")
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in {"json", "text"}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class AppConfig(BaseModel):
    """Main application configuration."""

    gate: GateConfig = Field(default_factory=GateConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    class Config:
        frozen = True


def load_config() -> AppConfig:
    """
    Load and validate application configuration.

    Loads a .env file from the working directory if present, then builds
    every settings group from the environment.

    Returns:
        AppConfig: Validated, frozen application configuration

    Raises:
        ValidationError: If configuration is invalid

    Example:
        ```python
        config = load_config()
        print(f"Password rotates at midnight in {config.gate.tz}")
        ```
    """
    env_file = Path(".env")
    if env_file.exists():
        from dotenv import load_dotenv
        load_dotenv(env_file)

    return AppConfig()
