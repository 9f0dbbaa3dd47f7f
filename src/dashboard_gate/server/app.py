"""
HTTP server hosting the dashboard behind the access gate.

The server is plain plumbing around the gate. Response hardening (security
headers, compression) wraps everything, so gate rejections and error pages
get the headers too; the gate itself decides before any handler runs. Behind
it sit a health check and the static dashboard files. The dashboard page is
served from memory so it can be compressed. The daily password notifier is
armed alongside the server and shares its lifetime.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from aiohttp import web
from aiohttp.web import Request, Response

from dashboard_gate.config import AppConfig
from dashboard_gate.notifier.scheduler import DailyScheduler
from dashboard_gate.notifier.webhook import PasswordNotifier
from dashboard_gate.security.gate import AccessGate
from dashboard_gate.security.passwords import utc_now
from dashboard_gate.utils.logging import get_service_logger


HEALTH_PATHS = ("/health", "/healthz", "/_health")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}

INDEX_FILE = "index.html"
ASSET_CACHE_CONTROL = "public, max-age=3600"


@web.middleware
async def hardening_middleware(request: Request, handler) -> web.StreamResponse:
    """Add security headers and compress in-memory responses."""
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        _add_security_headers(exc.headers)
        raise
    _add_security_headers(response.headers)
    if isinstance(response, web.Response) and not response.prepared:
        response.enable_compression()
    return response


def _add_security_headers(headers) -> None:
    for name, value in SECURITY_HEADERS.items():
        headers.setdefault(name, value)


class DashboardServer:
    """
    Dashboard web server with the access gate and the daily notifier.

    Lifecycle mirrors the rest of the service: ``start()`` builds the
    application, binds the site and arms the scheduler; ``stop()`` tears
    all of it down.
    """

    def __init__(self, config: AppConfig, clock: Callable[[], datetime] = utc_now):
        self.config = config
        self.logger = get_service_logger("server")
        self.public_dir = Path(config.server.public_dir).resolve()

        self.gate = AccessGate(config.gate, clock=clock)
        self.notifier = PasswordNotifier(config.notifier, config.gate, clock=clock)
        self.scheduler = DailyScheduler(
            at=config.notifier.time,
            tz=config.gate.zone,
            callback=self.notifier.fire,
            clock=clock,
        )

        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None

    def build_app(self) -> web.Application:
        """Create the aiohttp application, hardening outermost and the gate inside it."""
        app = web.Application(middlewares=[hardening_middleware, self.gate.middleware])
        for path in HEALTH_PATHS:
            app.router.add_get(path, self._health_check)
        app.router.add_get("/{tail:.*}", self._serve_public)
        return app

    @property
    def notifications_enabled(self) -> bool:
        return self.config.notifier.enabled and bool(self.config.notifier.url)

    async def start(self) -> None:
        """Start the HTTP server and the daily scheduler."""
        self.app = self.build_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.config.server.host, self.config.server.port)
        await self.site.start()

        self.logger.info("Dashboard server started",
                         host=self.config.server.host,
                         port=self.config.server.port,
                         public_dir=str(self.public_dir))

        if self.notifications_enabled:
            self.scheduler.start()
        else:
            self.logger.warning("Daily password notification disabled",
                                enabled=self.config.notifier.enabled,
                                url_configured=bool(self.config.notifier.url))

    async def stop(self) -> None:
        """Stop the scheduler, the notifier session and the HTTP server."""
        await self.scheduler.stop()
        await self.notifier.close()
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        self.logger.info("Dashboard server stopped")

    async def _health_check(self, request: Request) -> Response:
        return web.json_response({"ok": True})

    async def _serve_public(self, request: Request) -> web.StreamResponse:
        """Serve a file from the public directory, falling back to index.html."""
        tail = request.match_info.get("tail", "")
        path = (self.public_dir / tail).resolve()
        if not tail or not path.is_relative_to(self.public_dir) or not path.is_file():
            path = self.public_dir / INDEX_FILE
        if not path.is_file():
            raise web.HTTPNotFound()

        if path.name == INDEX_FILE:
            response = web.Response(body=path.read_bytes(), content_type="text/html", charset="utf-8")
            response.headers["Cache-Control"] = "no-store"
            return response

        response = web.FileResponse(path)
        response.headers["Cache-Control"] = ASSET_CACHE_CONTROL
        return response
