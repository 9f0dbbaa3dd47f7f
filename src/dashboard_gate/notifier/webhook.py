"""
Daily password delivery to the operator webhook.

Once a day the scheduler calls ``PasswordNotifier.fire``, which derives
today's password and POSTs ``{"password": "<value>"}`` to the configured
webhook. Failures are logged and swallowed. There is no retry queue: the
next chance is the following day's fire.
"""

import asyncio
import time
from datetime import datetime
from typing import Callable, Optional

import aiohttp

from dashboard_gate import __version__
from dashboard_gate.config import GateConfig, NotifierConfig
from dashboard_gate.security.passwords import PasswordOracle, local_date, utc_now
from dashboard_gate.utils.exceptions import NotificationError
from dashboard_gate.utils.logging import (
    generate_correlation_id,
    get_service_logger,
    log_error,
    log_http_request,
    log_http_response,
)


BODY_EXCERPT_CHARS = 200


class PasswordNotifier:
    """
    HTTP client pushing the daily password to a webhook.

    The password is always the DAILY-mode derivation, even when the gate
    runs in STATIC mode.

    Attributes:
        config: Notifier configuration (webhook URL, timeout)
        oracle: Password derivation shared with the access gate
        session: Async HTTP session, created on first use
    """

    def __init__(
        self,
        config: NotifierConfig,
        gate_config: GateConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self.oracle = PasswordOracle.from_config(gate_config)
        self.clock = clock
        self.logger = get_service_logger("notifier")
        self.session: Optional[aiohttp.ClientSession] = None
        self._closed = False

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise NotificationError("Password notifier has been closed")

        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers={"User-Agent": f"dashboard-gate/{__version__}"},
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                raise_for_status=False,
            )
            self.logger.debug("Created new HTTP session for notifier")

        return self.session

    async def deliver(self, password: str) -> None:
        """
        POST the password to the webhook.

        Raises:
            NotificationError: On network errors, timeouts and non-2xx responses
        """
        url = self.config.url
        if not url:
            raise NotificationError("No webhook URL configured",
                                    context={"env_var": "PASSWORD_NOTIFY_URL"})

        correlation_id = generate_correlation_id()
        payload = {"password": password}
        log_http_request(
            method="POST",
            url=url,
            headers={"Content-Type": "application/json"},
            body=payload,
            service="notifier",
            correlation_id=correlation_id,
        )

        start_time = time.time()
        try:
            session = await self._ensure_session()
            async with session.post(url, json=payload) as response:
                response_time_ms = (time.time() - start_time) * 1000
                if 200 <= response.status < 300:
                    log_http_response(
                        status_code=response.status,
                        response_time_ms=response_time_ms,
                        service="notifier",
                        correlation_id=correlation_id,
                    )
                    return

                text = await response.text(errors="replace")
                excerpt = text[:BODY_EXCERPT_CHARS]
                log_http_response(
                    status_code=response.status,
                    response_time_ms=response_time_ms,
                    body_excerpt=excerpt,
                    error=f"HTTP {response.status} error",
                    service="notifier",
                    correlation_id=correlation_id,
                )
                raise NotificationError(
                    "Webhook rejected the password notification",
                    context={"status_code": response.status, "body": excerpt},
                )

        except aiohttp.ClientError as e:
            log_http_response(
                status_code=0,
                response_time_ms=(time.time() - start_time) * 1000,
                error=f"{type(e).__name__}: {e}",
                service="notifier",
                correlation_id=correlation_id,
            )
            raise NotificationError(
                "Failed to reach webhook",
                context={"error_type": type(e).__name__},
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            log_http_response(
                status_code=0,
                response_time_ms=(time.time() - start_time) * 1000,
                error="Webhook request timed out",
                service="notifier",
                correlation_id=correlation_id,
            )
            raise NotificationError(
                "Webhook request timed out",
                context={"timeout": self.config.timeout},
                original_error=e,
            )

    async def fire(self, now: Optional[datetime] = None) -> bool:
        """
        Derive today's password and send it. Never raises on delivery failure.

        Args:
            now: Instant used for the derivation (defaults to the clock)

        Returns:
            True if the webhook accepted the notification
        """
        now = now or self.clock()
        password = self.oracle.daily_password(now)
        try:
            await self.deliver(password)
        except NotificationError as e:
            log_error(e, {"service": "notifier"})
            return False

        self.logger.info(
            "Password sent to webhook",
            tz=str(self.oracle.zone),
            for_date=local_date(now, self.oracle.zone).isoformat(),
        )
        return True

    async def close(self) -> None:
        """Close the HTTP session."""
        if not self._closed:
            if self.session and not self.session.closed:
                await self.session.close()
            self._closed = True
            self.logger.debug("Notifier closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
