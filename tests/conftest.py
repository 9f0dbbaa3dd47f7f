"""Test configuration and utilities."""

import asyncio
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from dashboard_gate.config import GateConfig


CAIRO = ZoneInfo("Africa/Cairo")

# Mid-January: Cairo is on UTC+2, no DST in play
NOW = datetime(2025, 1, 15, 12, 0, tzinfo=CAIRO)

CONFIG_ENV_VARS = (
    "TZ", "BASIC_USER", "PASSWORD_MODE", "SECRET", "STATIC_PASSWORD",
    "GRACE_YESTERDAY", "ALLOWLIST_IPS", "AUTH_REALM", "FORWARDED_HEADER",
    "TRUST_FORWARDED", "PASSWORD_NOTIFY_URL", "PASSWORD_NOTIFY_TIME",
    "PASSWORD_NOTIFY_TIMEOUT", "PASSWORD_NOTIFY_ENABLED", "SERVER_HOST",
    "SERVER_PORT", "PORT", "SERVER_PUBLIC_DIR", "LOG_LEVEL", "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the host environment out of every settings object."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def gate_config() -> GateConfig:
    """Gate configuration matching the calibration scenarios."""
    return GateConfig(
        tz="Africa/Cairo",
        basic_user="sales",
        password_mode="DAILY",
        secret="s3cret",
        static_password="supersecret",
        grace_yesterday=False,
        allowlist_ips="10.0.0.5/32",
        auth_realm="SERP Viewer",
        forwarded_header="X-Forwarded-For",
        trust_forwarded=True,
    )


class FakeClock:
    """Mutable clock with a matching sleep that only advances time."""

    def __init__(self, start: datetime) -> None:
        self.now = start
        self.sleeps = []

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now = self.now + timedelta(seconds=seconds)
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock():
    return FakeClock(datetime(2025, 1, 15, 8, 0, tzinfo=CAIRO))


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
