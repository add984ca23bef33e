"""
Hypertube API — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite file (sqlite+aiosqlite) and upload
       directories under tmp_path, an AppContext built on them, and an app
       created from that context. ASGITransport does not run the lifespan,
       so tables are created here.

Fixture Hierarchy:
    settings ── context ── app ── client
                   └── seeded (user u1 "neo", movie tt0133093)
                          └── auth_cookie (session bound to u1)
"""

import os
import tempfile
from http.cookies import SimpleCookie

# Read by the module-level app in hypertube.main; set before any app import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["UPLOAD_SNIFF_CONTENT"] = "false"
os.environ["UPLOAD_STAGING_DIR"] = tempfile.mkdtemp(prefix="hypertube_staging_")
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="hypertube_uploads_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from hypertube.config import Settings
from hypertube.context import AppContext
from hypertube.database import Base
from hypertube.main import create_app
from hypertube.middleware.session import sign, unsign
from hypertube.services.auth_service import hash_password

TEST_PASSWORD = "follow-the-white-rabbit"

# Low cost factor: hashing runs once per test session
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD, rounds=4)

MATRIX = {
    "title": "The Matrix",
    "year": 1999,
    "rating": 8.7,
    "genres": ["Action", "Sci-Fi"],
}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        session_secret="test-secret",
        upload_staging_dir=str(tmp_path / "uploads" / "tmp"),
        uploads_dir=str(tmp_path / "uploads"),
        upload_sniff_content=False,
        store_retry_attempts=1,
        store_retry_min_wait=0,
        store_retry_max_wait=0,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def context(settings):
    ctx = AppContext.from_settings(settings)
    async with ctx.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield ctx
    await ctx.close()


@pytest.fixture
def app(context):
    return create_app(context=context)


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def seeded(context):
    """User u1 (login "neo") and movie tt0133093."""
    await context.users.insert(
        {
            "id": "u1",
            "login": "neo",
            "email": "neo@example.com",
            "firstname": "Thomas",
            "lastname": "Anderson",
            "picture": None,
            "lang": "en",
            "password": TEST_PASSWORD_HASH,
        }
    )
    await context.movies.insert("tt0133093", MATRIX)
    return context


@pytest.fixture
def cookie_for(settings):
    """Builds the Cookie header for a session id, signed with the test secret."""

    def build(session_id: str) -> dict:
        signed = sign(session_id, settings.session_secret)
        return {"Cookie": f"{settings.session_cookie_name}={signed}"}

    return build


@pytest_asyncio.fixture
async def auth_cookie(seeded, cookie_for):
    """Cookie header of a live session bound to u1."""
    record = await seeded.sessions.create(identity_ref="u1")
    return cookie_for(record.session_id)


@pytest.fixture
def sample_jpeg_bytes():
    """SOI + JFIF header + EOI; the smallest thing libmagic calls a JPEG."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def sample_png_bytes():
    return b'\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00'


@pytest.fixture
def password():
    """Plain-text password of the seeded user u1."""
    return TEST_PASSWORD


def signed_cookie_value(response, name: str):
    """Value of cookie `name` from the response's Set-Cookie header, or None."""
    cookie = SimpleCookie(response.headers.get("set-cookie", ""))
    return cookie[name].value if name in cookie else None


@pytest.fixture
def issued_cookie(settings):
    """Reads the session cookie a response set: (raw value, session id)."""

    def read(response):
        raw = signed_cookie_value(response, settings.session_cookie_name)
        if raw is None:
            return None, None
        return raw, unsign(raw, settings.session_secret)

    return read
