"""Tests for the dashboard host application."""

import aiohttp
import pytest
from aiohttp import BasicAuth

from conftest import NOW

from dashboard_gate.config import AppConfig, LoggingConfig, NotifierConfig, ServerConfig
from dashboard_gate.server.app import SECURITY_HEADERS, DashboardServer
from dashboard_gate.utils.exceptions import NotificationError


ALLOWED = {
    "X-Forwarded-For": "10.0.0.5",
    "Authorization": BasicAuth("sales", "s3cret-20250115").encode(),
}


@pytest.fixture
def public_dir(tmp_path):
    (tmp_path / "index.html").write_text("<h1>SERP Matrix</h1>")
    (tmp_path / "app.js").write_text("console.log('hi');")
    return tmp_path


@pytest.fixture
def app_config(gate_config, public_dir) -> AppConfig:
    return AppConfig(
        gate=gate_config,
        notifier=NotifierConfig(enabled=False),
        server=ServerConfig(public_dir=public_dir),
        logging=LoggingConfig(format="text"),
    )


@pytest.fixture
async def client(aiohttp_client, app_config):
    server = DashboardServer(app_config, clock=lambda: NOW)
    return await aiohttp_client(server.build_app())


@pytest.mark.parametrize("path", ["/health", "/healthz", "/_health"])
async def test_health_check(client, path):
    resp = await client.get(path, headers=ALLOWED)
    assert resp.status == 200
    assert await resp.json() == {"ok": True}


async def test_health_check_is_gated(client):
    resp = await client.get("/health", headers={"X-Forwarded-For": "10.0.0.6"})
    assert resp.status == 403


async def test_security_headers(client):
    resp = await client.get("/health", headers=ALLOWED)
    for name, value in SECURITY_HEADERS.items():
        assert resp.headers[name] == value


async def test_index_is_never_cached(client):
    resp = await client.get("/", headers=ALLOWED)
    assert resp.status == 200
    assert "SERP Matrix" in await resp.text()
    assert resp.headers["Cache-Control"] == "no-store"


async def test_assets_are_cacheable(client):
    resp = await client.get("/app.js", headers=ALLOWED)
    assert resp.status == 200
    assert await resp.text() == "console.log('hi');"
    assert resp.headers["Cache-Control"] == "public, max-age=3600"


async def test_unknown_path_falls_back_to_index(client):
    resp = await client.get("/reports/2025/q1", headers=ALLOWED)
    assert resp.status == 200
    assert "SERP Matrix" in await resp.text()
    assert resp.headers["Cache-Control"] == "no-store"


def test_notifications_disabled_without_url(app_config):
    server = DashboardServer(app_config)
    assert not server.notifications_enabled

    config = app_config.model_copy(
        update={"notifier": NotifierConfig(enabled=True, url="http://hooks.example/pw")}
    )
    assert DashboardServer(config).notifications_enabled


async def test_dashboard_is_compressed(client, public_dir):
    page = "<h1>SERP Matrix</h1>" + "<tr><td>keyword</td><td>1</td></tr>" * 1500
    (public_dir / "index.html").write_text(page)
    resp = await client.get("/", headers={**ALLOWED, "Accept-Encoding": "gzip"})
    assert resp.status == 200
    assert resp.headers["Content-Encoding"] == "gzip"
    assert resp.headers["Cache-Control"] == "no-store"
    assert await resp.text() == page


@pytest.mark.parametrize("headers, status", [
    ({"X-Forwarded-For": "10.0.0.6"}, 403),
    ({"X-Forwarded-For": "10.0.0.5"}, 401),
])
async def test_gate_rejections_carry_security_headers(client, headers, status):
    resp = await client.get("/", headers=headers)
    assert resp.status == status
    for name, value in SECURITY_HEADERS.items():
        assert resp.headers[name] == value


async def test_missing_index_is_404_with_security_headers(aiohttp_client, app_config, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    config = app_config.model_copy(update={"server": ServerConfig(public_dir=empty)})
    client = await aiohttp_client(DashboardServer(config, clock=lambda: NOW).build_app())
    resp = await client.get("/", headers=ALLOWED)
    assert resp.status == 404
    for name, value in SECURITY_HEADERS.items():
        assert resp.headers[name] == value


class TestLifecycle:
    @pytest.fixture
    def listening_config(self, app_config, public_dir, unused_tcp_port):
        server = ServerConfig(host="127.0.0.1", port=unused_tcp_port, public_dir=public_dir)
        return app_config.model_copy(update={"server": server})

    async def test_start_arms_scheduler_and_stop_discards_it(self, listening_config, unused_tcp_port):
        config = listening_config.model_copy(
            update={"notifier": NotifierConfig(enabled=True, url="http://127.0.0.1:9/hook")}
        )
        server = DashboardServer(config, clock=lambda: NOW)
        await server.start()
        try:
            assert server.scheduler.running
            async with aiohttp.ClientSession() as session:
                url = f"http://127.0.0.1:{unused_tcp_port}/health"
                async with session.get(url, headers=ALLOWED) as resp:
                    assert resp.status == 200
                    assert await resp.json() == {"ok": True}
        finally:
            await server.stop()

        assert not server.scheduler.running
        with pytest.raises(NotificationError, match="closed"):
            await server.notifier.deliver("pw")

    async def test_start_leaves_scheduler_unarmed_when_disabled(self, listening_config):
        config = listening_config.model_copy(
            update={"notifier": NotifierConfig(enabled=False, url="http://127.0.0.1:9/hook")}
        )
        server = DashboardServer(config, clock=lambda: NOW)
        await server.start()
        try:
            assert not server.notifications_enabled
            assert not server.scheduler.running
        finally:
            await server.stop()

        assert not server.scheduler.running
        with pytest.raises(NotificationError, match="closed"):
            await server.notifier.deliver("pw")
