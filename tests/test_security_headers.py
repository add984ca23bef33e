"""
Hypertube API — Security Header & Health Tests
===============================================

What:  X-Frame-Options / X-XSS-Protection on success, domain-error and
       fault responses; the /health probe.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient, ASGITransport

from hypertube import __version__
from hypertube.config import Settings
from hypertube.context import AppContext
from hypertube.exceptions import StoreUnavailableError
from hypertube.main import create_app


def assert_security_headers(response):
    assert response.headers["x-frame-options"] == "SAMEORIGIN"
    assert response.headers["x-xss-protection"] == "1; mode=block"


class TestSecurityHeaders:

    @pytest.mark.asyncio
    async def test_success_response(self, client, auth_cookie):
        response = await client.get("/api/movie/info/tt0133093", headers=auth_cookie)
        assert response.status_code == 200
        assert_security_headers(response)

    @pytest.mark.asyncio
    async def test_domain_error_response(self, client, auth_cookie):
        response = await client.get("/api/movie/info/tt9999999", headers=auth_cookie)
        assert response.json()["error"]
        assert_security_headers(response)

    @pytest.mark.asyncio
    async def test_unauthenticated_response(self, client):
        response = await client.get("/api/movie/info/tt0133093")
        assert response.status_code == 401
        assert_security_headers(response)

    @pytest.mark.asyncio
    async def test_body_parser_fault(self, client):
        response = await client.post(
            "/api/auth/login", content=b"[]", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert_security_headers(response)

    @pytest.mark.asyncio
    async def test_session_fault(self, client, context):
        with patch.object(context.sessions, "create", AsyncMock(side_effect=StoreUnavailableError())):
            response = await client.get("/api/movie/info/tt0133093")
        assert response.status_code == 503
        assert_security_headers(response)

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc12345"})
        assert response.headers["x-request-id"] == "abc12345"


class TestHealth:

    @pytest.mark.asyncio
    async def test_healthy(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["version"] == __version__

    @pytest.mark.asyncio
    async def test_unreachable_store(self, tmp_path):
        settings = Settings(
            database_url=f"sqlite+aiosqlite:///{tmp_path}/missing/dir/test.db",
            session_secret="test-secret",
            store_retry_attempts=1,
            store_retry_min_wait=0,
            store_retry_max_wait=0,
        )
        context = AppContext.from_settings(settings)
        transport = ASGITransport(app=create_app(context=context))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health")
        await context.close()

        assert response.status_code == 503
        assert_security_headers(response)
        assert "set-cookie" not in response.headers
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["database"] == "disconnected"
        assert body["version"] == __version__
