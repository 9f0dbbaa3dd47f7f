"""
Request-time access policy.

The gate runs in front of everything else the server does. Each request
goes through, in this order and stopping at the first failure:

1. IP allow-list check (403, no challenge)
2. Basic credentials present and decodable (401)
3. Username matches the configured user (401)
4. Password matches the oracle's derivation (401)

Every credential failure produces the same 401 so a client cannot tell
which field was wrong. Nothing in the gate has side effects besides
logging, so an abandoned request leaves nothing behind.
"""

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Mapping, Optional

from aiohttp import web
from aiohttp.web import Request, Response

from dashboard_gate.config import GateConfig
from dashboard_gate.security.cidr import build_ranges, ip_allowed
from dashboard_gate.security.client_ip import resolve_client_ip
from dashboard_gate.security.passwords import PasswordOracle, constant_time_equal, utc_now
from dashboard_gate.utils.logging import get_service_logger


FORBIDDEN_TEXT = "Forbidden (IP not allowed)"
CHALLENGE_TEXT = "Authentication required"


class GateDecision(str, Enum):
    ALLOW = "allow"
    FORBIDDEN = "forbidden"
    CHALLENGE = "challenge"


@dataclass(frozen=True)
class Credentials:
    """Username and password from one request's Authorization header."""
    user: str
    password: str = field(repr=False)


def parse_basic_auth(header: Optional[str]) -> Optional[Credentials]:
    """
    Parse a ``Basic`` Authorization header.

    The decoded payload is split on the first colon only: usernames cannot
    contain one, passwords can. Missing base64 padding is restored before
    decoding, since some clients strip it. Returns None for a missing header,
    another scheme, a payload that is not base64/UTF-8, or a payload without
    a colon.
    """
    if not header:
        return None
    scheme, _, payload = header.strip().partition(" ")
    if scheme.lower() != "basic":
        return None
    try:
        payload = payload.strip()
        payload += "=" * (-len(payload) % 4)
        raw = base64.b64decode(payload, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None
    user, sep, password = raw.partition(":")
    if not sep:
        return None
    return Credentials(user=user, password=password)


class AccessGate:
    """
    IP allow-list plus Basic auth with a daily rotating password.

    The allow-list ranges and the password oracle are built once from the
    configuration and only read afterwards, so concurrent requests share
    them without locking.

    Attributes:
        config: Gate configuration
        ranges: Parsed allow-list
        oracle: Password derivation bound to the configuration
    """

    def __init__(
        self,
        config: GateConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self.clock = clock
        self.logger = get_service_logger("gate")
        self.ranges = build_ranges(config.allowlist_entries())
        self.oracle = PasswordOracle.from_config(config)

        self.logger.info(
            "Access gate configured",
            ranges=[str(r) for r in self.ranges],
            mode=self.oracle.mode.value,
            tz=config.tz,
            grace_yesterday=config.grace_yesterday,
        )

    def client_ip(self, headers: Mapping[str, str], remote: Optional[str]) -> str:
        return resolve_client_ip(
            headers,
            remote,
            forwarded_header=self.config.forwarded_header,
            trust_forwarded=self.config.trust_forwarded,
        )

    def evaluate(
        self,
        headers: Mapping[str, str],
        remote: Optional[str],
        now: Optional[datetime] = None,
    ) -> GateDecision:
        """
        Decide what happens to one request.

        Args:
            headers: Request headers (case-insensitive mapping)
            remote: Raw connection address
            now: Instant used for the password check (defaults to the clock)
        """
        ip = self.client_ip(headers, remote)
        if not ip_allowed(ip, self.ranges):
            self.logger.info("Request rejected by IP allow-list", client_ip=ip)
            return GateDecision.FORBIDDEN

        creds = parse_basic_auth(headers.get("Authorization"))
        if creds is None:
            self.logger.debug("Missing or malformed credentials", client_ip=ip)
            return GateDecision.CHALLENGE
        if not constant_time_equal(creds.user, self.config.basic_user):
            self.logger.info("Authentication failed", client_ip=ip, reason="username")
            return GateDecision.CHALLENGE
        if not self.oracle.matches(creds.password, now or self.clock()):
            self.logger.info("Authentication failed", client_ip=ip, reason="password")
            return GateDecision.CHALLENGE

        return GateDecision.ALLOW

    def forbidden_response(self) -> Response:
        return web.Response(status=403, text=FORBIDDEN_TEXT)

    def challenge_response(self) -> Response:
        resp = web.Response(status=401, text=CHALLENGE_TEXT)
        resp.headers["WWW-Authenticate"] = f'Basic realm="{self.config.auth_realm}"'
        return resp

    @web.middleware
    async def middleware(self, request: Request, handler) -> web.StreamResponse:
        """aiohttp middleware applying the gate before any other handling."""
        decision = self.evaluate(request.headers, request.remote)
        if decision is GateDecision.FORBIDDEN:
            return self.forbidden_response()
        if decision is GateDecision.CHALLENGE:
            return self.challenge_response()
        return await handler(request)
