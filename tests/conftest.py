"""
Shared fixtures for the test suite.

Every API test gets its own app built by ``create_app`` on an in-memory
SQLite database, with uploads written to a temporary directory and a rate
limiter that lets everything through.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.main import create_app
from core.catalog.types import MusicEntry
from core.config import AppConfig
from db.music_store import MusicStore
from infrastructure.rate_limiter import Quota

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TEST_SECRET = "test-secret"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
"""Small payload standing in for an uploaded image."""


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class AllowAllLimiter:
    """Rate limiter stand-in that never rejects and never touches Redis."""

    available = False
    max_requests = 100
    allowed = True

    def hit(self, client_id: str) -> Quota:
        remaining = self.max_requests - 1 if self.allowed else 0
        return Quota(self.allowed, self.max_requests, remaining, 900)


class DenyAllLimiter(AllowAllLimiter):
    allowed = False


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_config(tmp_path: Path, **overrides: object) -> AppConfig:
    settings: dict[str, object] = {
        "environment": "test",
        "database_url": "sqlite://",
        "jwt_secret": TEST_SECRET,
        "jwt_expires_in": "1h",
        "public_base_url": "http://testserver",
        "upload_dir": str(tmp_path / "uploads"),
        "auto_create_schema": True,
        "log_level": "WARNING",
    }
    settings.update(overrides)
    return AppConfig(**settings)


def make_entry(**overrides: object) -> MusicEntry:
    """Build a valid ``MusicEntry``; override any field by keyword."""
    defaults: dict[str, object] = {
        "id": "m-1",
        "title": "Song",
        "artist": "Artist",
        "album": "Album",
        "album_art": "http://testserver/uploads/1.png",
        "genres": ("Rock",),
    }
    defaults.update(overrides)
    return MusicEntry(**defaults)


def register(client: TestClient, username: str = "alice", email: str | None = None) -> dict:
    """Register a user through the API and return the response ``data``."""
    response = client.post(
        "/api/users/register",
        json={
            "email": email or f"{username}@example.com",
            "username": username,
            "password": "secret123",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def post_music(
    client: TestClient,
    headers: dict[str, str],
    *,
    title: str,
    artist: str,
    album: str,
    genres: list[str],
) -> dict:
    """Create a music entry through the multipart endpoint."""
    response = client.post(
        "/api/music",
        headers=headers,
        data={"title": title, "artist": artist, "album": album, "genres": genres},
        files={"albumArt": ("cover.png", PNG_BYTES, "image/png")},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["music"]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    return make_config(tmp_path)


@pytest.fixture()
def app(config: AppConfig) -> FastAPI:
    return create_app(config, rate_limiter=AllowAllLimiter())


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(client: TestClient) -> dict[str, str]:
    return bearer(register(client)["token"])


@pytest.fixture()
def music_store(app: FastAPI, client: TestClient) -> Iterator[MusicStore]:
    """A ``MusicStore`` on the same database the client talks to."""
    with app.state.database.session_scope() as session:
        yield MusicStore(session)
