"""
Daily password derivation and verification.

The password is never stored. In DAILY mode it is recomputed from the
secret and the calendar date in the configured time zone, both when a
request is verified and when the notifier pushes it to the webhook, so
the two paths always agree.
"""

import secrets
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Union
from zoneinfo import ZoneInfo


class PasswordMode(str, Enum):
    """Which derivation rule the oracle applies."""
    DAILY = "DAILY"
    STATIC = "STATIC"


ZoneLike = Union[str, tzinfo]


def _as_zone(tz: ZoneLike) -> tzinfo:
    return ZoneInfo(tz) if isinstance(tz, str) else tz


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_date(now: datetime, tz: ZoneLike) -> date:
    """
    Calendar date of ``now`` in the given zone.

    Naive instants are taken as UTC, never as the server's local time.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(_as_zone(tz)).date()


def daily_password(secret: str, day: date) -> str:
    """``secret-YYYYMMDD`` for the given calendar date."""
    return f"{secret}-{day.strftime('%Y%m%d')}"


def derive_password(
    mode: PasswordMode,
    secret: str,
    static_password: str,
    now: datetime,
    tz: ZoneLike,
) -> str:
    """
    Compute the single valid password at ``now``.

    Args:
        mode: DAILY or STATIC
        secret: Prefix of the daily password
        static_password: Returned unchanged in STATIC mode
        now: The instant to evaluate
        tz: Zone whose midnight is the rotation boundary

    Example:
        ```python
        # 22:30 UTC is already the next day in Cairo (UTC+2)
        now = datetime(2024, 3, 1, 22, 30, tzinfo=timezone.utc)
        derive_password(PasswordMode.DAILY, "s3cret", "", now, "Africa/Cairo")
        # -> "s3cret-20240302"
        ```
    """
    if mode == PasswordMode.STATIC:
        return static_password
    return daily_password(secret, local_date(now, tz))


def constant_time_equal(candidate: str, expected: str) -> bool:
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def password_matches(
    candidate: str,
    mode: PasswordMode,
    secret: str,
    static_password: str,
    now: datetime,
    tz: ZoneLike,
    grace: bool = False,
) -> bool:
    """
    Check a candidate password at ``now``.

    In DAILY mode with ``grace`` enabled the previous calendar day's
    password (in the same zone) is accepted as well. Only one day back.
    """
    if candidate is None:
        return False
    if mode == PasswordMode.STATIC:
        return constant_time_equal(candidate, static_password)

    today = local_date(now, tz)
    if constant_time_equal(candidate, daily_password(secret, today)):
        return True
    if grace and constant_time_equal(candidate, daily_password(secret, today - timedelta(days=1))):
        return True
    return False


class PasswordOracle:
    """Password derivation and matching bound to one configuration."""

    def __init__(
        self,
        mode: PasswordMode,
        secret: str,
        static_password: str,
        tz: ZoneLike,
        grace: bool = False,
    ) -> None:
        self.mode = PasswordMode(mode)
        self.secret = secret
        self.static_password = static_password
        self.zone = _as_zone(tz)
        self.grace = grace

    @classmethod
    def from_config(cls, config) -> "PasswordOracle":
        """Build an oracle from a ``GateConfig``."""
        return cls(
            mode=config.password_mode,
            secret=config.secret,
            static_password=config.static_password,
            tz=config.zone,
            grace=config.grace_yesterday,
        )

    def derive(self, now: datetime) -> str:
        return derive_password(self.mode, self.secret, self.static_password, now, self.zone)

    def daily_password(self, now: datetime) -> str:
        """Today's DAILY-mode password, whatever the configured mode."""
        return daily_password(self.secret, local_date(now, self.zone))

    def matches(self, candidate: str, now: datetime) -> bool:
        return password_matches(
            candidate,
            self.mode,
            self.secret,
            self.static_password,
            now,
            self.zone,
            self.grace,
        )
